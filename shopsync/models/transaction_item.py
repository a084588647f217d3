"""
Transaction line item model
"""

from sqlmodel import Field, SQLModel
from decimal import Decimal
from typing import Optional
import uuid


class TransactionItem(SQLModel, table=True):
    """Line item of a transaction (price snapshot)"""

    __tablename__ = "transaction_items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    transaction_id: uuid.UUID = Field(foreign_key="transactions.id", index=True)
    product_id: Optional[uuid.UUID] = Field(default=None, foreign_key="products.id", index=True)

    name: str = Field(max_length=255, description="Item name (snapshot)")
    quantity: int = Field(default=1)
    unit_price: Decimal = Field(default=Decimal("0.00"), max_digits=10, decimal_places=2)
