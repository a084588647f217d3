"""
Pydantic schemas for identity provider API responses
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional


class ProviderOrganization(BaseModel):
    """Organization as listed by the provider API"""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    slug: str
    members_count: Optional[int] = None
    private_metadata: Dict[str, Any] = Field(default_factory=dict)


class ProviderMembership(BaseModel):
    """Flattened organization membership"""
    organization_id: str
    email: Optional[str] = None
    role: Optional[str] = None
    user_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ProviderUser(BaseModel):
    """User resolved through the provider API"""
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
