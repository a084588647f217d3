"""
Product (card or sealed item) catalog model
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime
from decimal import Decimal
from datetime import datetime
from typing import Optional
import uuid

from shopsync.models.base import utc_now


class Product(SQLModel, table=True):
    """Catalog entry owned by a shop"""

    __tablename__ = "products"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    shop_id: str = Field(foreign_key="shops.id", index=True, description="Shop ID for multi-tenant isolation")

    name: str = Field(max_length=255)
    tcg_line: Optional[str] = Field(default=None, max_length=100, description="e.g. Pokemon TCG, One Piece TCG")
    set_code: Optional[str] = Field(default=None, max_length=50)
    card_number: Optional[str] = Field(default=None, max_length=50)
    rarity: Optional[str] = Field(default=None, max_length=50)
    market_price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)

    # Timestamps
    last_price_update: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
