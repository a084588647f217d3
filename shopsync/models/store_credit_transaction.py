"""
Store credit ledger model
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime
from decimal import Decimal
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid

from shopsync.models.base import utc_now


class CreditTransactionType(str, Enum):
    """Direction of a store credit movement"""
    EARNED = "earned"
    SPENT = "spent"
    ADJUSTMENT = "adjustment"


class StoreCreditTransaction(SQLModel, table=True):
    """Store credit movement for a customer"""

    __tablename__ = "store_credit_transactions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    shop_id: str = Field(foreign_key="shops.id", index=True, description="Shop ID for multi-tenant isolation")
    customer_id: uuid.UUID = Field(foreign_key="customers.id", index=True)
    transaction_id: Optional[uuid.UUID] = Field(default=None, foreign_key="transactions.id", index=True)

    type: CreditTransactionType = Field(nullable=False)
    amount: Decimal = Field(max_digits=10, decimal_places=2)
    reason: Optional[str] = Field(default=None, max_length=500)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
