"""
Schemas for webhook payloads and identity provider responses
"""

from shopsync.schemas.webhook import (
    BillingMetadata,
    DeletedObjectData,
    MembershipEventData,
    OrganizationEventData,
    UserEventData,
    WebhookEvent,
)

__all__ = [
    "BillingMetadata",
    "DeletedObjectData",
    "MembershipEventData",
    "OrganizationEventData",
    "UserEventData",
    "WebhookEvent",
]
