"""
Webhook receiver for identity provider events
Verifies the signature, then routes each event to the reconciliation engine
"""

import json
from typing import Callable, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from fastapi.concurrency import run_in_threadpool
import structlog

from shopsync.core.config import Settings
from shopsync.core.dependencies import get_app_settings, get_reconciliation_service
from shopsync.core.webhook_signature import (
    MSG_ID_HEADER,
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    WebhookVerificationError,
    verify,
)
from shopsync.schemas.webhook import (
    BillingMetadata,
    DeletedObjectData,
    MembershipEventData,
    OrganizationEventData,
    UserEventData,
    WebhookEvent,
)
from shopsync.services.reconciliation import ReconciliationService, display_name

logger = structlog.get_logger(__name__)

router = APIRouter()


# =============================================================================
# Event handlers
# =============================================================================

def handle_user_upsert(service: ReconciliationService, data: dict) -> None:
    user = UserEventData.model_validate(data)
    service.upsert_user(
        user.id,
        user.primary_email,
        name=display_name(user.first_name, user.last_name, user.username),
    )


def handle_user_deleted(service: ReconciliationService, data: dict) -> None:
    service.delete_user(DeletedObjectData.model_validate(data).id)


def handle_organization_created(service: ReconciliationService, data: dict) -> None:
    org = OrganizationEventData.model_validate(data)
    service.upsert_tenant(org.id, org.name, org.slug)


def handle_organization_updated(service: ReconciliationService, data: dict) -> None:
    """Updates also carry billing metadata; absent fields fall back to plan defaults"""
    org = OrganizationEventData.model_validate(data)
    service.upsert_tenant(org.id, org.name, org.slug, billing=org.billing or BillingMetadata())


def handle_organization_deleted(service: ReconciliationService, data: dict) -> None:
    service.delete_tenant(DeletedObjectData.model_validate(data).id)


def handle_membership_upsert(service: ReconciliationService, data: dict) -> None:
    membership = MembershipEventData.model_validate(data)
    service.upsert_membership(
        membership.organization.id,
        membership.email,
        membership.role,
        name=display_name(
            membership.public_user_data.first_name,
            membership.public_user_data.last_name,
        ),
    )


def handle_membership_deleted(service: ReconciliationService, data: dict) -> None:
    membership = MembershipEventData.model_validate(data)
    service.delete_membership(membership.organization.id, membership.email)


EVENT_HANDLERS: Dict[str, Callable[[ReconciliationService, dict], None]] = {
    "user.created": handle_user_upsert,
    "user.updated": handle_user_upsert,
    "user.deleted": handle_user_deleted,
    "organization.created": handle_organization_created,
    "organization.updated": handle_organization_updated,
    "organization.deleted": handle_organization_deleted,
    "organizationMembership.created": handle_membership_upsert,
    "organizationMembership.updated": handle_membership_upsert,
    "organizationMembership.deleted": handle_membership_deleted,
}


# =============================================================================
# Endpoint
# =============================================================================

@router.post("")
async def receive_webhook(
    request: Request,
    service: ReconciliationService = Depends(get_reconciliation_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Handle a signed identity provider delivery

    Flow:
    1. Reject if the signing secret is not configured (500)
    2. Verify signature headers against the raw body (400 on failure)
    3. Parse the {type, data} envelope (400 if malformed)
    4. Dispatch to the handler in the threadpool; unknown types are acknowledged
    5. Database failures roll back and answer 500 so the provider retries
    """
    if not settings.WEBHOOK_SIGNING_SECRET:
        logger.error("WEBHOOK_SIGNING_SECRET is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook secret not configured"
        )

    body = await request.body()

    try:
        verify(
            settings.WEBHOOK_SIGNING_SECRET,
            body,
            request.headers.get(MSG_ID_HEADER),
            request.headers.get(TIMESTAMP_HEADER),
            request.headers.get(SIGNATURE_HEADER),
            tolerance=settings.WEBHOOK_TOLERANCE_SECONDS,
        )
    except WebhookVerificationError as e:
        logger.warning(f"Webhook verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid webhook: {e}"
        )

    try:
        event = WebhookEvent.model_validate(json.loads(body))
    except (ValueError, ValidationError) as e:
        logger.warning(f"Malformed webhook payload: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Malformed webhook payload"
        )

    msg_id = request.headers.get(MSG_ID_HEADER)
    handler = EVENT_HANDLERS.get(event.type)
    if handler is None:
        logger.info(f"Ignoring unhandled webhook event {event.type} ({msg_id})")
        return {"success": True, "handled": False}

    logger.info(f"Processing webhook event {event.type} ({msg_id})")

    try:
        await run_in_threadpool(handler, service, event.data)
    except ValidationError as e:
        logger.warning(f"Invalid {event.type} payload: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {event.type} payload"
        )
    except Exception as e:
        await run_in_threadpool(service.session.rollback)
        logger.error(f"Error processing webhook {event.type}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error processing webhook"
        )

    return {"success": True, "handled": True}
