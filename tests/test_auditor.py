"""
Tests for the consistency auditor
"""

import pytest
from sqlalchemy import func
from sqlmodel import select

from conftest import FakeProvider
from shopsync.models import Shop, ShopSettings, User
from shopsync.schemas.identity_provider import ProviderOrganization, ProviderUser
from shopsync.services.auditor import ConsistencyAuditor, roles_match
from shopsync.services.identity_provider import IdentityProviderError
from shopsync.services.reconciliation import ReconciliationService


@pytest.fixture
def provider():
    return FakeProvider()


def count(db, model) -> int:
    return db.exec(select(func.count()).select_from(model)).one()


def seed_symmetry(db, provider):
    """Remote: A, B. Local: A, D. One overlapping, one remote-only, one local-only"""
    provider.add_organization("org_A", "Alpha Cards", "alpha-cards")
    provider.add_organization("org_B", "Beta Games", "beta-games")

    service = ReconciliationService(db)
    service.upsert_tenant("org_A", "Alpha Cards", "alpha-cards")
    service.upsert_tenant("org_D", "Delta Collectibles", "delta-collectibles")


def test_roles_match():
    assert roles_match("org:admin", "admin")
    assert roles_match("org:member", "org:member")
    assert not roles_match("org:admin", "org:member")
    assert roles_match("org:custom", "org:custom")
    assert not roles_match(None, "org:member")


def test_symmetry(db, provider, session_factory):
    """One missing, one orphaned; repair fixes missing and leaves the orphan"""
    seed_symmetry(db, provider)

    first = ConsistencyAuditor(provider, session_factory, repair=True).run()
    assert first.missing_tenants == ["org_B"]
    assert first.orphaned_tenants == ["org_D"]
    assert first.tenants_created == ["org_B"]

    second = ConsistencyAuditor(provider, session_factory, repair=True).run()
    assert second.missing_tenants == []
    assert second.orphaned_tenants == ["org_D"]
    assert second.has_unresolved_drift

    db.expire_all()
    assert db.get(Shop, "org_D") is not None
    assert db.get(Shop, "org_B").name == "Beta Games"
    assert count(db, ShopSettings) == 3


def test_report_only_writes_nothing(db, provider, session_factory, writes):
    seed_symmetry(db, provider)
    db.add(User(email="ash@shop.com", shop_id="org_A", role="org:member"))
    db.commit()
    provider.add_member("org_A", "ash@shop.com", "org:admin")
    provider.add_member("org_A", "misty@shop.com", "org:member", user_id="user_misty")
    provider.organizations[0] = ProviderOrganization(id="org_A", name="Alpha Cards & Games", slug="alpha-cards")
    writes.clear()

    report = ConsistencyAuditor(provider, session_factory).run()

    assert writes == []
    assert report.missing_tenants == ["org_B"]
    assert report.tenants_created == []
    assert [drift.provider_name for drift in report.renamed_tenants] == ["Alpha Cards & Games"]
    assert not report.renamed_tenants[0].repaired
    assert [(m.email, m.persisted_role, m.provider_role) for m in report.role_mismatches] == [
        ("ash@shop.com", "org:member", "org:admin"),
    ]
    assert [(m.email, m.user_exists) for m in report.unlinked_members] == [("misty@shop.com", False)]
    assert report.has_drift
    assert count(db, Shop) == 2


def test_repair_fixes_names_roles_and_members(db, provider, session_factory):
    seed_symmetry(db, provider)
    provider.organizations[0] = ProviderOrganization(id="org_A", name="Alpha Cards & Games", slug="alpha-games")

    ReconciliationService(db).upsert_user("user_ash", "ash@shop.com")
    ReconciliationService(db).upsert_membership("org_A", "ash@shop.com", "org:member")
    provider.add_member("org_A", "ash@shop.com", "org:admin", user_id="user_ash")
    provider.add_member("org_A", "misty@shop.com", "org:member", user_id="user_misty")
    provider.users["user_misty"] = ProviderUser(id="user_misty", email="misty@shop.com", first_name="Misty")

    report = ConsistencyAuditor(provider, session_factory, repair=True).run()

    assert report.renamed_tenants[0].repaired
    assert report.role_mismatches[0].repaired
    assert report.unlinked_members[0].repaired
    assert report.users_created == ["misty@shop.com"]

    db.expire_all()
    shop = db.get(Shop, "org_A")
    assert shop.name == "Alpha Cards & Games"
    assert shop.slug == "alpha-games"

    ash = db.exec(select(User).where(User.email == "ash@shop.com")).one()
    assert ash.role == "org:admin"

    misty = db.exec(select(User).where(User.email == "misty@shop.com")).one()
    assert misty.external_id == "user_misty"
    assert misty.shop_id == "org_A"
    assert misty.name == "Misty"


def test_settings_backfill(db, provider, session_factory):
    provider.add_organization("org_A", "Alpha Cards", "alpha-cards")
    db.add(Shop(id="org_A", name="Alpha Cards", slug="alpha-cards"))
    db.commit()

    report_only = ConsistencyAuditor(provider, session_factory).run()
    assert report_only.settings_missing == ["org_A"]
    assert report_only.settings_backfilled == []

    repaired = ConsistencyAuditor(provider, session_factory, repair=True).run()
    assert repaired.settings_backfilled == ["org_A"]
    assert not repaired.has_unresolved_drift
    assert count(db, ShopSettings) == 1


def test_stale_members_and_unassigned_users(db, provider, session_factory):
    provider.add_organization("org_A", "Alpha Cards", "alpha-cards")
    ReconciliationService(db).upsert_tenant("org_A", "Alpha Cards", "alpha-cards")
    db.add(User(email="gone@shop.com", shop_id="org_A", role="org:member"))
    db.add(User(email="floating@shop.com"))
    db.commit()

    report = ConsistencyAuditor(provider, session_factory, repair=True).run()

    assert [member.email for member in report.stale_members] == ["gone@shop.com"]
    assert report.users_without_tenant == ["floating@shop.com"]
    assert report.orphaned_users == []

    db.expire_all()
    assert db.exec(select(User).where(User.email == "gone@shop.com")).one().shop_id == "org_A"


def test_tenant_failure_is_isolated(db, provider, session_factory):
    """A failing shop is recorded and the others are still repaired"""
    provider.add_organization("org_A", "Alpha Cards", "alpha-cards")
    provider.add_organization("org_B", "Beta Games", "beta-games")
    provider.failing_organizations.add("org_A")

    report = ConsistencyAuditor(provider, session_factory, repair=True).run()

    assert [failure.shop_id for failure in report.failed_tenants] == ["org_A"]
    assert report.tenants_created == ["org_B"]
    assert report.has_unresolved_drift

    assert db.get(Shop, "org_A") is None
    assert db.get(Shop, "org_B") is not None


def test_listing_failure_is_fatal(provider, session_factory):
    def unavailable():
        raise IdentityProviderError("service unavailable", status_code=503)

    provider.list_organizations = unavailable

    with pytest.raises(IdentityProviderError):
        ConsistencyAuditor(provider, session_factory).run()


def test_delete_orphaned_tenants_requires_confirmation(db, provider, session_factory):
    seed_symmetry(db, provider)
    auditor = ConsistencyAuditor(provider, session_factory)
    report = auditor.run()

    outcome = auditor.delete_orphaned_tenants(report, ["org_D", "org_A"])

    assert outcome == {"org_D": True, "org_A": False}

    db.expire_all()
    assert db.get(Shop, "org_D") is None
    assert db.get(Shop, "org_A") is not None


def test_orphan_deletion_failure_is_isolated(db, provider, session_factory, monkeypatch):
    """A failing deletion is reported and the remaining confirmed orphans are still deleted"""
    service = ReconciliationService(db)
    service.upsert_tenant("org_D1", "Delta One", "delta-one")
    service.upsert_tenant("org_D2", "Delta Two", "delta-two")

    auditor = ConsistencyAuditor(provider, session_factory)
    report = auditor.run()
    assert report.orphaned_tenants == ["org_D1", "org_D2"]

    delete_tenant = ReconciliationService.delete_tenant

    def flaky_delete(self, external_org_id):
        if external_org_id == "org_D1":
            raise RuntimeError("db blip")
        return delete_tenant(self, external_org_id)

    monkeypatch.setattr(ReconciliationService, "delete_tenant", flaky_delete)

    outcome = auditor.delete_orphaned_tenants(report, ["org_D1", "org_D2"])

    assert outcome == {"org_D1": False, "org_D2": True}

    db.expire_all()
    assert db.get(Shop, "org_D1") is not None
    assert db.get(Shop, "org_D2") is None


def test_reissued_organization_with_same_slug(db, provider, session_factory):
    """The old shop keeps the slug until its deletion is confirmed; then repair creates the new one"""
    ReconciliationService(db).upsert_tenant("org_old", "Alpha Cards", "alpha-cards")
    provider.add_organization("org_new", "Alpha Cards", "alpha-cards")

    auditor = ConsistencyAuditor(provider, session_factory, repair=True)
    report = auditor.run()

    assert report.failed_tenants == []
    assert report.missing_tenants == ["org_new"]
    assert report.orphaned_tenants == ["org_old"]
    assert report.tenants_created == []
    assert [(c.shop_id, c.slug, c.holding_shop_id) for c in report.slug_conflicts] == [
        ("org_new", "alpha-cards", "org_old"),
    ]
    assert report.has_unresolved_drift

    assert auditor.delete_orphaned_tenants(report, ["org_old"]) == {"org_old": True}

    after = auditor.run()
    assert after.tenants_created == ["org_new"]
    assert after.slug_conflicts == []
    assert not after.has_unresolved_drift

    db.expire_all()
    assert db.get(Shop, "org_old") is None
    assert db.get(Shop, "org_new").slug == "alpha-cards"


def test_slug_conflict_blocks_rename_repair(db, provider, session_factory):
    service = ReconciliationService(db)
    service.upsert_tenant("org_A", "Alpha Cards", "alpha-cards")
    service.upsert_tenant("org_D", "Delta Collectibles", "delta-collectibles")
    provider.add_organization("org_A", "Alpha Cards", "delta-collectibles")

    report = ConsistencyAuditor(provider, session_factory, repair=True).run()

    assert report.failed_tenants == []
    assert [c.holding_shop_id for c in report.slug_conflicts] == ["org_D"]
    assert not report.renamed_tenants[0].repaired

    db.expire_all()
    assert db.get(Shop, "org_A").slug == "alpha-cards"


def test_repair_applies_provider_billing(db, provider, session_factory):
    provider.add_organization(
        "org_A",
        "Alpha Cards",
        "alpha-cards",
        private_metadata={"planId": "professional", "subscriptionId": "sub_42"},
    )
    provider.add_organization("org_B", "Beta Games", "beta-games")

    report = ConsistencyAuditor(provider, session_factory, repair=True).run()
    assert report.tenants_created == ["org_A", "org_B"]

    alpha = db.get(Shop, "org_A")
    assert alpha.plan_id == "professional"
    assert alpha.plan_status == "active"
    assert alpha.subscription_id == "sub_42"

    assert db.get(Shop, "org_B").plan_id is None
