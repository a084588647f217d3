"""
Buylist model
Cards a shop offers to buy from a customer
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime
from decimal import Decimal
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid

from shopsync.models.base import utc_now


class BuylistStatus(str, Enum):
    """Lifecycle of a buylist"""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Buylist(SQLModel, table=True):
    """Buy offer for a customer's cards"""

    __tablename__ = "buylists"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    shop_id: str = Field(foreign_key="shops.id", index=True, description="Shop ID for multi-tenant isolation")
    customer_id: Optional[uuid.UUID] = Field(default=None, foreign_key="customers.id", index=True)

    status: BuylistStatus = Field(default=BuylistStatus.DRAFT, nullable=False)
    total_offer: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
