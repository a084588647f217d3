"""
Buylist line item model
"""

from sqlmodel import Field, SQLModel
from decimal import Decimal
from typing import Optional
import uuid


class BuylistItem(SQLModel, table=True):
    """Single card offered on a buylist"""

    __tablename__ = "buylist_items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    buylist_id: uuid.UUID = Field(foreign_key="buylists.id", index=True)
    product_id: Optional[uuid.UUID] = Field(default=None, foreign_key="products.id", index=True)

    name: str = Field(max_length=255)
    condition: str = Field(default="near_mint", max_length=50)
    quantity: int = Field(default=1)
    offer_price: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
