"""
Inventory item model
Stock of a product held by a shop, per condition
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime
from decimal import Decimal
from datetime import datetime
from typing import Optional
import uuid

from shopsync.models.base import utc_now


class InventoryItem(SQLModel, table=True):
    """Stock line for a product"""

    __tablename__ = "inventory_items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    shop_id: str = Field(foreign_key="shops.id", index=True, description="Shop ID for multi-tenant isolation")
    product_id: uuid.UUID = Field(foreign_key="products.id", index=True)

    condition: str = Field(default="near_mint", max_length=50)
    quantity: int = Field(default=0)
    sell_price: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    buy_price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
