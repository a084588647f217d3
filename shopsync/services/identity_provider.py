"""
Identity provider API client
Read-only access to organizations, memberships and users
"""

from typing import Any, Dict, Iterator, List, Optional

import httpx
import structlog

from shopsync.core.config import get_settings
from shopsync.schemas.identity_provider import ProviderMembership, ProviderOrganization, ProviderUser
from shopsync.schemas.webhook import MembershipEventData, UserEventData

logger = structlog.get_logger(__name__)


class IdentityProviderError(Exception):
    """Provider API call failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class IdentityProviderConfigError(IdentityProviderError):
    """Provider credentials are not configured"""


class IdentityProviderClient:
    """Thin wrapper around the provider's backend REST API"""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        page_size: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the provider client

        Args:
            secret_key: Backend API secret key (defaults to settings)
            base_url: API base URL (defaults to settings)
            page_size: Page size for list endpoints
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        settings = get_settings()
        self.secret_key = secret_key or settings.IDENTITY_PROVIDER_SECRET_KEY
        if not self.secret_key:
            raise IdentityProviderConfigError("IDENTITY_PROVIDER_SECRET_KEY is required")

        self.page_size = page_size or settings.IDENTITY_PROVIDER_PAGE_SIZE
        self._client = httpx.Client(
            base_url=(base_url or settings.IDENTITY_PROVIDER_API_URL).rstrip("/"),
            headers={
                "Authorization": f"Bearer {self.secret_key}",
                "Accept": "application/json",
            },
            timeout=timeout or settings.IDENTITY_PROVIDER_TIMEOUT_SECONDS,
            transport=transport,
        )

    def __enter__(self) -> "IdentityProviderClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise IdentityProviderError(f"Request to {path} failed: {e}") from e

        if response.status_code >= 400:
            raise IdentityProviderError(
                f"GET {path} returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise IdentityProviderError(f"GET {path} returned invalid JSON") from e

    def _paginate(self, path: str) -> Iterator[Dict[str, Any]]:
        """Walk limit/offset pages; accepts {data, total_count} or a bare list"""
        offset = 0
        while True:
            body = self._get(path, params={"limit": self.page_size, "offset": offset})

            if isinstance(body, list):
                items, total = body, None
            else:
                items, total = body.get("data") or [], body.get("total_count")

            yield from items

            offset += len(items)
            if len(items) < self.page_size or (total is not None and offset >= total):
                return

    def list_organizations(self) -> List[ProviderOrganization]:
        """All organizations known to the provider"""
        organizations = [
            ProviderOrganization.model_validate(item)
            for item in self._paginate("/organizations")
        ]
        logger.info(f"Fetched {len(organizations)} organizations from identity provider")
        return organizations

    def list_organization_memberships(self, organization_id: str) -> List[ProviderMembership]:
        """Members of one organization, with the raw role label"""
        memberships = []
        for item in self._paginate(f"/organizations/{organization_id}/memberships"):
            item.setdefault("organization", {"id": organization_id})
            data = MembershipEventData.model_validate(item)
            memberships.append(ProviderMembership(
                organization_id=data.organization.id,
                email=data.email,
                role=data.role,
                user_id=data.public_user_data.user_id,
                first_name=data.public_user_data.first_name,
                last_name=data.public_user_data.last_name,
            ))
        return memberships

    def get_user(self, user_id: str) -> ProviderUser:
        """Single user with its primary email"""
        data = UserEventData.model_validate(self._get(f"/users/{user_id}"))
        return ProviderUser(
            id=data.id,
            email=data.primary_email,
            first_name=data.first_name,
            last_name=data.last_name,
            username=data.username,
        )
