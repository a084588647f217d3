"""
User model with shop membership

Membership is not a table: it is the shop reference plus the raw role label
copied from the identity provider.
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import DateTime
from datetime import datetime
from typing import Optional
import uuid

from shopsync.models.base import utc_now
from shopsync.core.permissions import Role, normalize_role


class User(SQLModel, table=True):
    """User model linked to an identity provider account"""

    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # Identity
    external_id: Optional[str] = Field(
        default=None,
        unique=True,
        index=True,
        max_length=255,
        description="Identity provider user ID (unset until the user signs up)"
    )
    email: str = Field(unique=True, index=True, nullable=False, max_length=255)
    name: Optional[str] = Field(default=None, max_length=255)

    # Membership
    shop_id: Optional[str] = Field(default=None, foreign_key="shops.id", index=True)
    role: Optional[str] = Field(default=None, max_length=100, description="Raw provider role, e.g. org:admin")

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    @property
    def normalized_role(self) -> Optional[Role]:
        """Typed view of the stored role label"""
        return normalize_role(self.role)
