"""
Test configuration for pytest
"""

import base64
import json
import os
import time
from typing import Any, Dict, Generator, List, Optional

import pytest

# Test environment variables (must be set before shopsync modules are imported)
TEST_SIGNING_SECRET = "whsec_" + base64.b64encode(b"test-signing-key-for-webhooks!!").decode("ascii")

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["WEBHOOK_SIGNING_SECRET"] = TEST_SIGNING_SECRET
os.environ["IDENTITY_PROVIDER_SECRET_KEY"] = "sk_test_key"

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

import shopsync.models  # noqa: F401
from shopsync.core.database import get_session
from shopsync.core.webhook_signature import MSG_ID_HEADER, SIGNATURE_HEADER, TIMESTAMP_HEADER, sign
from shopsync.schemas.identity_provider import ProviderMembership, ProviderOrganization, ProviderUser
from shopsync.services.identity_provider import IdentityProviderError
from shopsync.main import app

WRITE_PREFIXES = ("INSERT", "UPDATE", "DELETE")


@pytest.fixture(scope="function")
def engine():
    """In-memory SQLite engine shared by every session of one test"""
    test_engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(test_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    SQLModel.metadata.create_all(test_engine)
    yield test_engine
    SQLModel.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False)


@pytest.fixture(scope="function")
def db(session_factory) -> Generator[Session, None, None]:
    """Create a clean database session for each test"""
    with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
def writes(engine) -> List[str]:
    """Records every INSERT/UPDATE/DELETE issued against the test database"""
    statements: List[str] = []

    @event.listens_for(engine, "before_cursor_execute")
    def _record(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith(WRITE_PREFIXES):
            statements.append(statement)

    yield statements
    event.remove(engine, "before_cursor_execute", _record)


@pytest.fixture(scope="function")
def client(session_factory) -> Generator[TestClient, None, None]:
    """API client whose requests use the test database"""

    def _get_test_session():
        with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _get_test_session
    yield TestClient(app)
    app.dependency_overrides.clear()


def signed_headers(body: bytes, msg_id: str = "msg_test", secret: str = TEST_SIGNING_SECRET) -> Dict[str, str]:
    timestamp = str(int(time.time()))
    return {
        MSG_ID_HEADER: msg_id,
        TIMESTAMP_HEADER: timestamp,
        SIGNATURE_HEADER: sign(secret, msg_id, timestamp, body),
        "content-type": "application/json",
    }


@pytest.fixture(scope="function")
def deliver(client):
    """POST a correctly signed event to the webhook endpoint"""

    def _deliver(event_type: str, data: Dict[str, Any], msg_id: str = "msg_test"):
        body = json.dumps({"type": event_type, "object": "event", "data": data}).encode("utf-8")
        return client.post("/api/webhooks", content=body, headers=signed_headers(body, msg_id))

    return _deliver


# Provider-shaped payload builders

def user_payload(user_id: str, email: str = None, first_name: str = None, last_name: str = None, **extra) -> Dict[str, Any]:
    addresses = [{"id": f"idn_{user_id}", "email_address": email}] if email else []
    return {
        "id": user_id,
        "email_addresses": addresses,
        "primary_email_address_id": f"idn_{user_id}" if email else None,
        "first_name": first_name,
        "last_name": last_name,
        **extra,
    }


def organization_payload(org_id: str, name: str, slug: str, private_metadata: Dict[str, Any] = None) -> Dict[str, Any]:
    payload = {"id": org_id, "name": name, "slug": slug}
    if private_metadata is not None:
        payload["private_metadata"] = private_metadata
    return payload


def membership_payload(org_id: str, email: str, role: str = "org:member", user_id: str = None) -> Dict[str, Any]:
    return {
        "organization": {"id": org_id},
        "public_user_data": {"identifier": email, "user_id": user_id},
        "role": role,
    }


class FakeProvider:
    """In-memory identity provider"""

    def __init__(self):
        self.organizations: List[ProviderOrganization] = []
        self.memberships: Dict[str, List[ProviderMembership]] = {}
        self.users: Dict[str, ProviderUser] = {}
        self.failing_organizations = set()

    def add_organization(self, org_id: str, name: str, slug: str, private_metadata: Optional[Dict[str, Any]] = None) -> None:
        self.organizations.append(
            ProviderOrganization(id=org_id, name=name, slug=slug, private_metadata=private_metadata or {})
        )
        self.memberships.setdefault(org_id, [])

    def add_member(self, org_id: str, email: str, role: str, user_id: Optional[str] = None) -> None:
        self.memberships[org_id].append(
            ProviderMembership(organization_id=org_id, email=email, role=role, user_id=user_id)
        )

    def list_organizations(self) -> List[ProviderOrganization]:
        return list(self.organizations)

    def list_organization_memberships(self, organization_id: str) -> List[ProviderMembership]:
        if organization_id in self.failing_organizations:
            raise IdentityProviderError("upstream timeout", status_code=504)
        return list(self.memberships.get(organization_id, []))

    def get_user(self, user_id: str) -> ProviderUser:
        return self.users[user_id]
