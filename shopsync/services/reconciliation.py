"""
Reconciliation of identity provider state into the shop database

One method per event kind. Every method is idempotent: it keys on natural
identity (external id, email, organization id) so redelivery of the same
event converges to the same rows. Recoverable data problems (missing email,
unknown shop, row already gone) are logged and reported as a None/False
result instead of raising; database errors propagate after a rollback.
"""

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field
from sqlalchemy import delete, update
from sqlmodel import Session, select
import structlog

from shopsync.core.permissions import normalize_role
from shopsync.models import (
    Buylist,
    BuylistItem,
    Customer,
    InventoryItem,
    Product,
    Shop,
    ShopSettings,
    ShopType,
    StoreCreditTransaction,
    Transaction,
    TransactionItem,
    User,
)
from shopsync.models.base import utc_now
from shopsync.schemas.webhook import BillingMetadata

logger = structlog.get_logger(__name__)

DEFAULT_PLAN_ID = "starter"
DEFAULT_PLAN_STATUS = "active"


class TenantDeletionResult(BaseModel):
    """Rows removed by a cascading shop delete"""
    shop_id: str
    deleted: Dict[str, int] = Field(default_factory=dict)
    users_detached: int = 0


def display_name(
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    username: Optional[str] = None,
) -> Optional[str]:
    """'First Last' if any part is present, else the username"""
    name = " ".join(part for part in (first_name, last_name) if part).strip()
    return name or username or None


class ReconciliationService:
    """Idempotent upserts/deletes for users, shops and memberships"""

    def __init__(self, session: Session, autocommit: bool = True):
        """
        Args:
            session: Database session the operations run in
            autocommit: Commit after each operation. Batch callers pass False,
                get flushes only, and commit or roll back themselves.
        """
        self.session = session
        self.autocommit = autocommit

    @contextmanager
    def _unit_of_work(self, action: str) -> Iterator[None]:
        """Commit (or flush) on success, roll back and re-raise on failure"""
        try:
            yield
            if self.autocommit:
                self.session.commit()
            else:
                self.session.flush()
        except Exception as e:
            self.session.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.external_id == external_id)).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.email == email)).first()

    # =========================================================================
    # Users
    # =========================================================================

    def upsert_user(
        self,
        external_id: str,
        email: Optional[str],
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Optional[User]:
        """
        Create or update a user from provider data

        Resolution order: external id, then email (re-keys the row when the
        provider id rotated), then create. When the id-matched row and the
        email-matched row differ, the email row is kept and the stale id row
        is removed so both keys stay unique.

        Returns:
            The resulting User, or None when the event carries no email
        """
        if not email:
            logger.warning(f"Cannot sync user {external_id} without an email address")
            return None

        name = name or display_name(first_name, last_name)

        with self._unit_of_work(f"sync user {external_id}"):
            by_id = self.get_user_by_external_id(external_id)
            by_email = self.get_user_by_email(email)

            if by_id and by_email and by_id.id != by_email.id:
                logger.warning(
                    f"User {external_id} and email {email} resolve to different rows, "
                    f"keeping {by_email.id} and removing {by_id.id}"
                )
                if by_email.shop_id is None and by_id.shop_id is not None:
                    by_email.shop_id = by_id.shop_id
                    by_email.role = by_id.role
                self.session.delete(by_id)
                self.session.flush()
                by_id = None

            user = by_id or by_email

            if user:
                if user.external_id != external_id:
                    logger.info(f"Re-keying user {user.id}: {user.external_id} -> {external_id}")
                user.external_id = external_id
                user.email = email
                if name:
                    user.name = name
                user.updated_at = utc_now()
                logger.info(f"Updated user {external_id}")
            else:
                user = User(external_id=external_id, email=email, name=name)
                logger.info(f"Created user {external_id}")

            self.session.add(user)

        self.session.refresh(user)
        return user

    def delete_user(self, external_id: str) -> bool:
        """Delete the user with this external id; absent row is a no-op"""
        user = self.get_user_by_external_id(external_id)
        if not user:
            logger.warning(f"User {external_id} not found, nothing to delete")
            return False

        with self._unit_of_work(f"delete user {external_id}"):
            self.session.delete(user)

        logger.info(f"Deleted user {external_id}")
        return True

    # =========================================================================
    # Shops
    # =========================================================================

    def _add_default_settings(self, shop_id: str) -> ShopSettings:
        settings = ShopSettings(shop_id=shop_id)
        self.session.add(settings)
        return settings

    def has_settings(self, shop_id: str) -> bool:
        existing = self.session.exec(
            select(ShopSettings).where(ShopSettings.shop_id == shop_id)
        ).first()
        return existing is not None

    def upsert_tenant(
        self,
        external_org_id: str,
        name: str,
        slug: str,
        billing: Optional[BillingMetadata] = None,
    ) -> Shop:
        """
        Create or update a shop and make sure its settings row exists

        Billing fields are only written when billing metadata is passed;
        plan id and plan status then default to starter/active.
        """
        with self._unit_of_work(f"sync shop {external_org_id}"):
            shop = self.session.get(Shop, external_org_id)

            if shop:
                shop.name = name
                shop.slug = slug
                shop.updated_at = utc_now()
                logger.info(f"Updated shop {external_org_id}")
            else:
                shop = Shop(id=external_org_id, name=name, slug=slug, type=ShopType.LOCAL)
                logger.info(f"Created shop {external_org_id}")

            if billing is not None:
                shop.plan_id = billing.plan_id or DEFAULT_PLAN_ID
                shop.plan_status = billing.plan_status or DEFAULT_PLAN_STATUS
                shop.subscription_id = billing.subscription_id
                shop.trial_ends_at = billing.trial_ends_at

            self.session.add(shop)
            self.session.flush()

            if not self.has_settings(external_org_id):
                self._add_default_settings(external_org_id)
                logger.info(f"Created default settings for shop {external_org_id}")

        self.session.refresh(shop)
        return shop

    def ensure_tenant_settings(self, shop_id: str) -> bool:
        """Backfill a missing settings row; returns True if one was created"""
        if self.has_settings(shop_id):
            return False

        with self._unit_of_work(f"backfill settings for shop {shop_id}"):
            self._add_default_settings(shop_id)

        logger.info(f"Backfilled settings for shop {shop_id}")
        return True

    def _cascade_steps(self, shop_id: str) -> List[Tuple[str, object]]:
        """Child-first delete statements for everything a shop owns"""
        shop_transactions = select(Transaction.id).where(Transaction.shop_id == shop_id)
        shop_buylists = select(Buylist.id).where(Buylist.shop_id == shop_id)

        return [
            ("store_credit_transactions", delete(StoreCreditTransaction).where(StoreCreditTransaction.shop_id == shop_id)),
            ("transaction_items", delete(TransactionItem).where(TransactionItem.transaction_id.in_(shop_transactions))),
            ("transactions", delete(Transaction).where(Transaction.shop_id == shop_id)),
            ("buylist_items", delete(BuylistItem).where(BuylistItem.buylist_id.in_(shop_buylists))),
            ("buylists", delete(Buylist).where(Buylist.shop_id == shop_id)),
            ("inventory_items", delete(InventoryItem).where(InventoryItem.shop_id == shop_id)),
            ("products", delete(Product).where(Product.shop_id == shop_id)),
            ("customers", delete(Customer).where(Customer.shop_id == shop_id)),
            ("shop_settings", delete(ShopSettings).where(ShopSettings.shop_id == shop_id)),
        ]

    def delete_tenant(self, external_org_id: str) -> Optional[TenantDeletionResult]:
        """
        Delete a shop and everything it owns in one transaction

        Members are detached (shop reference and role cleared), not deleted.
        Any failure rolls the whole cascade back.
        """
        shop = self.session.get(Shop, external_org_id)
        if not shop:
            logger.warning(f"Shop {external_org_id} not found, nothing to delete")
            return None

        result = TenantDeletionResult(shop_id=external_org_id)

        with self._unit_of_work(f"delete shop {external_org_id}"):
            detached = self.session.execute(
                update(User)
                .where(User.shop_id == external_org_id)
                .values(shop_id=None, role=None, updated_at=utc_now())
            )
            result.users_detached = detached.rowcount or 0

            for label, statement in self._cascade_steps(external_org_id):
                deleted = self.session.execute(statement, execution_options={"synchronize_session": False})
                result.deleted[label] = deleted.rowcount or 0

            self.session.delete(shop)

        logger.info(
            f"Deleted shop {external_org_id}",
            deleted=result.deleted,
            users_detached=result.users_detached,
        )
        return result

    # =========================================================================
    # Memberships
    # =========================================================================

    def upsert_membership(
        self,
        external_org_id: str,
        user_email: Optional[str],
        role: Optional[str],
        name: Optional[str] = None,
    ) -> Optional[User]:
        """
        Link a user (by email) to a shop with the provider's role label

        Never creates the shop: if it is not known yet this is a no-op and
        the organization event or the auditor completes the link later.
        """
        if not user_email:
            logger.warning(f"Membership event for shop {external_org_id} has no user email")
            return None

        shop = self.session.get(Shop, external_org_id)
        if not shop:
            logger.warning(f"Shop {external_org_id} not found, skipping membership for {user_email}")
            return None

        user = self.get_user_by_email(user_email)
        if not user:
            logger.warning(f"User {user_email} not found, skipping membership for shop {external_org_id}")
            return None

        if role is not None and normalize_role(role) is None:
            logger.warning(f"Storing unrecognized role {role} for {user_email}")

        with self._unit_of_work(f"sync membership {user_email} in {external_org_id}"):
            user.shop_id = external_org_id
            if role is not None:
                user.role = role
            if name and not user.name:
                user.name = name
            user.updated_at = utc_now()
            self.session.add(user)

        self.session.refresh(user)
        logger.info(f"Linked {user_email} to shop {external_org_id} as {user.role}")
        return user

    def delete_membership(self, external_org_id: str, user_email: Optional[str]) -> bool:
        """Clear shop reference and role if the user is linked to this shop"""
        if not user_email:
            logger.warning(f"Membership deletion for shop {external_org_id} has no user email")
            return False

        user = self.get_user_by_email(user_email)
        if not user or user.shop_id != external_org_id:
            logger.warning(f"User {user_email} is not linked to shop {external_org_id}, nothing to remove")
            return False

        with self._unit_of_work(f"remove membership {user_email} from {external_org_id}"):
            user.shop_id = None
            user.role = None
            user.updated_at = utc_now()
            self.session.add(user)

        logger.info(f"Removed {user_email} from shop {external_org_id}")
        return True
