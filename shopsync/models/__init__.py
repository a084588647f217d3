from shopsync.models.tenant import Shop, ShopType
from shopsync.models.shop_settings import ShopSettings
from shopsync.models.user import User
from shopsync.models.customer import Customer
from shopsync.models.product import Product
from shopsync.models.inventory_item import InventoryItem
from shopsync.models.transaction import Transaction, TransactionType
from shopsync.models.transaction_item import TransactionItem
from shopsync.models.buylist import Buylist, BuylistStatus
from shopsync.models.buylist_item import BuylistItem
from shopsync.models.store_credit_transaction import StoreCreditTransaction, CreditTransactionType
