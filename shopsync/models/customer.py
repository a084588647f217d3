"""
Customer model
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime, UniqueConstraint
from decimal import Decimal
from datetime import datetime
from typing import Optional
import uuid

from shopsync.models.base import utc_now


class Customer(SQLModel, table=True):
    """Shop customer with store credit balance"""

    __tablename__ = "customers"
    __table_args__ = (UniqueConstraint("shop_id", "phone", name="uq_customer_shop_phone"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    shop_id: str = Field(foreign_key="shops.id", index=True, description="Shop ID for multi-tenant isolation")

    name: str = Field(max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=2000)

    # Store credit
    current_credit: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
    total_earned: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)

    # Timestamps
    last_visit: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
