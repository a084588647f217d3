"""
Shop model - Multi-tenancy foundation

The primary key IS the identity provider's organization id, so no mapping
table exists between provider organizations and shops.
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime
from datetime import datetime
from typing import Optional
from enum import Enum

from shopsync.models.base import utc_now


class ShopType(str, Enum):
    """Kind of card shop"""
    LOCAL = "local"
    ONLINE = "online"
    HYBRID = "hybrid"


class Shop(SQLModel, table=True):
    """Tenant model for multi-tenant architecture"""

    __tablename__ = "shops"

    id: str = Field(primary_key=True, max_length=255, description="Identity provider organization ID")
    name: str = Field(index=True, max_length=255)
    slug: str = Field(unique=True, index=True, max_length=255, description="Unique shop identifier for URLs")
    type: ShopType = Field(default=ShopType.LOCAL, nullable=False)
    description: Optional[str] = Field(default=None, max_length=2000)

    # Billing (pushed by the identity provider through organization private metadata)
    plan_id: Optional[str] = Field(default=None, max_length=50, description="Plan: starter, professional, enterprise")
    plan_status: Optional[str] = Field(default=None, max_length=50)
    subscription_id: Optional[str] = Field(default=None, max_length=255)
    trial_ends_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
