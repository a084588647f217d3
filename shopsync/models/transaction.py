"""
Transaction model
Point-of-sale checkouts, buys and trades
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime
from decimal import Decimal
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid

from shopsync.models.base import utc_now


class TransactionType(str, Enum):
    """Kind of point-of-sale transaction"""
    CHECKOUT = "checkout"
    BUY = "buy"
    TRADE = "trade"


class Transaction(SQLModel, table=True):
    """Point-of-sale transaction"""

    __tablename__ = "transactions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    shop_id: str = Field(foreign_key="shops.id", index=True, description="Shop ID for multi-tenant isolation")
    customer_id: Optional[uuid.UUID] = Field(default=None, foreign_key="customers.id", index=True)

    type: TransactionType = Field(default=TransactionType.CHECKOUT, nullable=False)
    total_amount: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    payment_method: Optional[str] = Field(default=None, max_length=50)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
