"""
Shop settings model (1:1 with Shop)
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime
from decimal import Decimal
from datetime import datetime
from typing import Optional
import uuid

from shopsync.models.base import utc_now


# Defaults applied whenever a shop gets its settings row
DEFAULT_CURRENCY = "USD"
DEFAULT_LOW_STOCK_THRESHOLD = 5
DEFAULT_MIN_CREDIT_AMOUNT = Decimal("0.00")
DEFAULT_MAX_CREDIT_AMOUNT = Decimal("1000.00")


class ShopSettings(SQLModel, table=True):
    """Per-shop configuration"""

    __tablename__ = "shop_settings"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    shop_id: str = Field(foreign_key="shops.id", unique=True, index=True)

    default_currency: str = Field(default=DEFAULT_CURRENCY, max_length=3)
    enable_notifications: bool = Field(default=True)
    auto_price_sync: bool = Field(default=True)
    low_stock_threshold: int = Field(default=DEFAULT_LOW_STOCK_THRESHOLD)

    # Store credit policy
    enable_store_credit: bool = Field(default=True)
    min_credit_amount: Decimal = Field(default=DEFAULT_MIN_CREDIT_AMOUNT, max_digits=10, decimal_places=2)
    max_credit_amount: Decimal = Field(default=DEFAULT_MAX_CREDIT_AMOUNT, max_digits=10, decimal_places=2)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
