"""
Pydantic schemas for identity provider webhook events
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone


class EventModel(BaseModel):
    """Base for payload models; unknown provider fields are ignored"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class WebhookEvent(EventModel):
    """Event envelope: {type, data}"""
    type: str = Field(..., min_length=1)
    data: Dict[str, Any]
    object: Optional[str] = None
    timestamp: Optional[int] = None


class EmailAddress(EventModel):
    id: Optional[str] = None
    email_address: str


class UserEventData(EventModel):
    """Payload of user.created / user.updated"""
    id: str
    email_addresses: List[EmailAddress] = Field(default_factory=list)
    primary_email_address_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None

    @property
    def primary_email(self) -> Optional[str]:
        """Primary address if flagged, else the first one"""
        if not self.email_addresses:
            return None
        for address in self.email_addresses:
            if address.id and address.id == self.primary_email_address_id:
                return address.email_address
        return self.email_addresses[0].email_address


class DeletedObjectData(EventModel):
    """Payload of user.deleted / organization.deleted"""
    id: str
    deleted: bool = True


class BillingMetadata(EventModel):
    """Billing fields carried in organization private metadata"""
    plan_id: Optional[str] = Field(default=None, alias="planId")
    plan_status: Optional[str] = Field(default=None, alias="planStatus")
    subscription_id: Optional[str] = Field(default=None, alias="subscriptionId")
    trial_ends_at: Optional[datetime] = Field(default=None, alias="trialEndsAt")

    @field_validator("trial_ends_at", mode="before")
    @classmethod
    def parse_epoch_millis(cls, value):
        # The provider sends either ISO-8601 or epoch milliseconds
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        return value


class OrganizationEventData(EventModel):
    """Payload of organization.created / organization.updated"""
    id: str
    name: str
    slug: str
    private_metadata: Optional[Dict[str, Any]] = None

    @property
    def billing(self) -> Optional[BillingMetadata]:
        if not self.private_metadata:
            return None
        return BillingMetadata.model_validate(self.private_metadata)


class OrganizationRef(EventModel):
    id: str
    name: Optional[str] = None
    slug: Optional[str] = None


class PublicUserData(EventModel):
    identifier: Optional[str] = None
    user_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class MembershipEventData(EventModel):
    """Payload of organizationMembership.*"""
    organization: OrganizationRef
    public_user_data: PublicUserData = Field(default_factory=PublicUserData)
    role: Optional[str] = None

    @property
    def email(self) -> Optional[str]:
        return self.public_user_data.identifier
