"""
Consistency auditor
Compares identity provider organizations/memberships with the shop database,
reports drift and optionally repairs the additive cases.

Destructive corrections (orphaned shops) are never applied by run(); they
need the explicit confirmation step delete_orphaned_tenants().
"""

from typing import Callable, Dict, Iterable, List, Optional, Protocol

from pydantic import BaseModel, Field
from sqlmodel import Session, select
import structlog

from shopsync.core.permissions import normalize_role
from shopsync.models import Shop, User
from shopsync.schemas.identity_provider import ProviderMembership, ProviderOrganization, ProviderUser
from shopsync.schemas.webhook import BillingMetadata
from shopsync.services.reconciliation import ReconciliationService, display_name

logger = structlog.get_logger(__name__)


class IdentityProvider(Protocol):
    """Read operations the auditor needs from the identity provider"""

    def list_organizations(self) -> List[ProviderOrganization]: ...

    def list_organization_memberships(self, organization_id: str) -> List[ProviderMembership]: ...

    def get_user(self, user_id: str) -> ProviderUser: ...


class TenantDrift(BaseModel):
    """Name/slug difference between provider and database"""
    shop_id: str
    persisted_name: str
    provider_name: str
    persisted_slug: str
    provider_slug: str
    repaired: bool = False


class RoleMismatch(BaseModel):
    shop_id: str
    email: str
    persisted_role: Optional[str] = None
    provider_role: Optional[str] = None
    repaired: bool = False


class UnlinkedMember(BaseModel):
    """Provider member whose database user is missing or points elsewhere"""
    shop_id: str
    email: str
    user_exists: bool
    persisted_shop_id: Optional[str] = None
    repaired: bool = False


class StaleMember(BaseModel):
    """Database user linked to a shop but not a member in the provider"""
    shop_id: str
    email: str


class SlugConflict(BaseModel):
    """Provider slug already held by another local shop"""
    shop_id: str
    slug: str
    holding_shop_id: str


class TenantFailure(BaseModel):
    shop_id: str
    error: str


class AuditReport(BaseModel):
    """Outcome of one auditor pass"""
    repair: bool = False

    missing_tenants: List[str] = Field(default_factory=list)
    orphaned_tenants: List[str] = Field(default_factory=list)
    renamed_tenants: List[TenantDrift] = Field(default_factory=list)
    tenants_created: List[str] = Field(default_factory=list)
    slug_conflicts: List[SlugConflict] = Field(default_factory=list)

    settings_missing: List[str] = Field(default_factory=list)
    settings_backfilled: List[str] = Field(default_factory=list)

    role_mismatches: List[RoleMismatch] = Field(default_factory=list)
    unlinked_members: List[UnlinkedMember] = Field(default_factory=list)
    stale_members: List[StaleMember] = Field(default_factory=list)
    users_created: List[str] = Field(default_factory=list)

    orphaned_users: List[str] = Field(default_factory=list)
    users_without_tenant: List[str] = Field(default_factory=list)

    failed_tenants: List[TenantFailure] = Field(default_factory=list)

    @property
    def has_drift(self) -> bool:
        """Anything detected, repaired or not"""
        return bool(
            self.missing_tenants
            or self.orphaned_tenants
            or self.renamed_tenants
            or self.slug_conflicts
            or self.settings_missing
            or self.role_mismatches
            or self.unlinked_members
            or self.stale_members
            or self.orphaned_users
            or self.failed_tenants
        )

    @property
    def has_unresolved_drift(self) -> bool:
        """Drift still present after this pass"""
        pending = (
            set(self.missing_tenants) - set(self.tenants_created)
            or set(self.settings_missing) - set(self.settings_backfilled)
            or any(not item.repaired for item in self.renamed_tenants)
            or any(not item.repaired for item in self.role_mismatches)
            or any(not item.repaired for item in self.unlinked_members)
        )
        return bool(
            pending
            or self.orphaned_tenants
            or self.slug_conflicts
            or self.stale_members
            or self.orphaned_users
            or self.failed_tenants
        )


def roles_match(persisted_role: Optional[str], provider_role: Optional[str]) -> bool:
    """Compare normalized roles when both are recognized, raw labels otherwise"""
    persisted = normalize_role(persisted_role)
    provider = normalize_role(provider_role)
    if persisted is not None and provider is not None:
        return persisted == provider
    return persisted_role == provider_role


def provider_billing(org: ProviderOrganization) -> Optional[BillingMetadata]:
    if not org.private_metadata:
        return None
    return BillingMetadata.model_validate(org.private_metadata)


class ConsistencyAuditor:
    """Batch drift detection and repair between provider and database"""

    def __init__(
        self,
        provider: IdentityProvider,
        session_factory: Callable[[], Session],
        repair: bool = False,
    ):
        self.provider = provider
        self.session_factory = session_factory
        self.repair = repair

    def run(self) -> AuditReport:
        """
        Run a full pass

        Provider organization listing failures abort the run. Failures while
        auditing a single shop are recorded and the pass continues.
        """
        report = AuditReport(repair=self.repair)
        logger.info(f"Starting consistency audit (repair={self.repair})")

        organizations = {org.id: org for org in self.provider.list_organizations()}

        with self.session_factory() as session:
            persisted_ids = set(session.exec(select(Shop.id)).all())

        report.missing_tenants = sorted(set(organizations) - persisted_ids)
        report.orphaned_tenants = sorted(persisted_ids - set(organizations))

        for shop_id in report.orphaned_tenants:
            logger.warning(f"Shop {shop_id} no longer exists in the identity provider (not deleted)")

        for shop_id in sorted(organizations):
            try:
                self._audit_tenant(organizations[shop_id], shop_id in persisted_ids, report)
            except Exception as e:
                logger.error(f"Audit of shop {shop_id} failed: {e}")
                report.failed_tenants.append(TenantFailure(shop_id=shop_id, error=str(e)))
                continue

        self._audit_users(report)

        logger.info(
            "Consistency audit complete",
            missing=len(report.missing_tenants),
            orphaned=len(report.orphaned_tenants),
            renamed=len(report.renamed_tenants),
            role_mismatches=len(report.role_mismatches),
            unlinked=len(report.unlinked_members),
            failed=len(report.failed_tenants),
        )
        return report

    def _audit_tenant(self, org: ProviderOrganization, exists: bool, report: AuditReport) -> None:
        """Audit (and optionally repair) one shop inside its own transaction"""
        # Merged into the report only once the shop transaction succeeds
        created: List[str] = []
        conflicts: List[SlugConflict] = []
        renamed: List[TenantDrift] = []
        settings_missing: List[str] = []
        backfilled: List[str] = []
        mismatches: List[RoleMismatch] = []
        unlinked: List[UnlinkedMember] = []
        stale: List[StaleMember] = []
        users_created: List[str] = []

        memberships = self.provider.list_organization_memberships(org.id)

        with self.session_factory() as session:
            service = ReconciliationService(session, autocommit=False)

            try:
                if not exists:
                    conflict = self._slug_conflict(session, org)
                    if conflict is not None:
                        conflicts.append(conflict)
                    elif self.repair:
                        service.upsert_tenant(org.id, org.name, org.slug, billing=provider_billing(org))
                        created.append(org.id)
                else:
                    shop = session.get(Shop, org.id)
                    if shop.name != org.name or shop.slug != org.slug:
                        drift = TenantDrift(
                            shop_id=org.id,
                            persisted_name=shop.name,
                            provider_name=org.name,
                            persisted_slug=shop.slug,
                            provider_slug=org.slug,
                        )
                        conflict = self._slug_conflict(session, org) if shop.slug != org.slug else None
                        if conflict is not None:
                            conflicts.append(conflict)
                        elif self.repair:
                            service.upsert_tenant(org.id, org.name, org.slug)
                            drift.repaired = True
                        renamed.append(drift)

                    if not service.has_settings(org.id):
                        settings_missing.append(org.id)
                        if self.repair and service.ensure_tenant_settings(org.id):
                            backfilled.append(org.id)

                provider_emails = set()
                for membership in memberships:
                    if not membership.email:
                        logger.warning(f"Member {membership.user_id} of shop {org.id} has no email")
                        continue
                    provider_emails.add(membership.email)
                    self._audit_membership(service, org.id, membership, mismatches, unlinked, users_created)

                linked_users = session.exec(select(User).where(User.shop_id == org.id)).all()
                for user in linked_users:
                    if user.email not in provider_emails:
                        stale.append(StaleMember(shop_id=org.id, email=user.email))

                if self.repair:
                    session.commit()
            except Exception:
                session.rollback()
                raise

        report.tenants_created.extend(created)
        report.slug_conflicts.extend(conflicts)
        report.renamed_tenants.extend(renamed)
        report.settings_missing.extend(settings_missing)
        report.settings_backfilled.extend(backfilled)
        report.role_mismatches.extend(mismatches)
        report.unlinked_members.extend(unlinked)
        report.stale_members.extend(stale)
        report.users_created.extend(users_created)

    def _slug_conflict(self, session: Session, org: ProviderOrganization) -> Optional[SlugConflict]:
        """Another local shop (typically the orphan of a re-issued organization) holding this slug"""
        holder = session.exec(
            select(Shop.id).where(Shop.slug == org.slug, Shop.id != org.id)
        ).first()
        if holder is None:
            return None

        logger.warning(
            f"Slug {org.slug} of shop {org.id} is held by shop {holder}; "
            f"delete {holder} with --delete-orphans before it can be repaired"
        )
        return SlugConflict(shop_id=org.id, slug=org.slug, holding_shop_id=holder)

    def _audit_membership(
        self,
        service: ReconciliationService,
        shop_id: str,
        membership: ProviderMembership,
        mismatches: List[RoleMismatch],
        unlinked: List[UnlinkedMember],
        users_created: List[str],
    ) -> None:
        user = service.get_user_by_email(membership.email)
        name = display_name(membership.first_name, membership.last_name)

        if user is None or user.shop_id != shop_id:
            entry = UnlinkedMember(
                shop_id=shop_id,
                email=membership.email,
                user_exists=user is not None,
                persisted_shop_id=user.shop_id if user else None,
            )
            if self.repair:
                if user is None and membership.user_id:
                    provider_user = self.provider.get_user(membership.user_id)
                    user = service.upsert_user(
                        provider_user.id,
                        provider_user.email or membership.email,
                        provider_user.first_name,
                        provider_user.last_name,
                    )
                    if user is not None:
                        users_created.append(user.email)
                if user is not None:
                    entry.repaired = service.upsert_membership(shop_id, user.email, membership.role, name) is not None
            unlinked.append(entry)
            return

        if not roles_match(user.role, membership.role):
            entry = RoleMismatch(
                shop_id=shop_id,
                email=membership.email,
                persisted_role=user.role,
                provider_role=membership.role,
            )
            if self.repair:
                entry.repaired = service.upsert_membership(shop_id, user.email, membership.role, name) is not None
            mismatches.append(entry)

    def _audit_users(self, report: AuditReport) -> None:
        """Users pointing at unknown shops, and users with no shop at all"""
        with self.session_factory() as session:
            known_shops = select(Shop.id)
            orphaned = session.exec(
                select(User.email).where(User.shop_id.is_not(None), User.shop_id.not_in(known_shops))
            ).all()
            unassigned = session.exec(select(User.email).where(User.shop_id.is_(None))).all()

        report.orphaned_users = sorted(orphaned)
        report.users_without_tenant = sorted(unassigned)

        for email in report.orphaned_users:
            logger.warning(f"User {email} references a shop that does not exist")

    def delete_orphaned_tenants(self, report: AuditReport, confirm_ids: Iterable[str]) -> Dict[str, bool]:
        """
        Explicit confirmation step for destructive repair

        Only shops that the report flagged as orphaned AND that the operator
        confirmed by id are deleted.
        """
        outcome: Dict[str, bool] = {}
        orphaned = set(report.orphaned_tenants)

        for shop_id in confirm_ids:
            if shop_id not in orphaned:
                logger.warning(f"Shop {shop_id} is not an orphan in this report, refusing to delete")
                outcome[shop_id] = False
                continue

            try:
                with self.session_factory() as session:
                    result = ReconciliationService(session).delete_tenant(shop_id)
            except Exception as e:
                logger.error(f"Deleting orphaned shop {shop_id} failed: {e}")
                outcome[shop_id] = False
                continue
            outcome[shop_id] = result is not None

        return outcome
