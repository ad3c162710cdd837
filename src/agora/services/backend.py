"""Client for a hosted membership backend.

This module provides the BackendClient class that handles communication
with a PostgREST-style database service, and RestMembershipStore, which
maps the membership store contract onto it:

- Remote procedures are called with ``POST /rest/v1/rpc/<name>`` and
  ``p_``-prefixed arguments.
- Table reads and writes use ``/rest/v1/<table>`` with ``col=eq.value``
  filters.
- No request is retried; failures surface as BackendError subclasses.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from agora.core.settings import settings
from agora.models.community import MemberStatus
from agora.schemas.community import (
    CommunityCreate,
    CommunityResponse,
    JoinAction,
    MembershipResponse,
)
from agora.schemas.notification import NotificationDraft, NotificationResponse
from agora.services.errors import (
    BackendAuthorizationError,
    BackendConflictError,
    BackendDisabledError,
    BackendError,
)
from agora.services.results import ProcedureResult, parse_procedure_result

# Configure logger for this module
logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_CONFLICT = 409

MEMBER_USER_EMBED = "*,users!community_members_user_id_fkey(name,email)"


@dataclass(frozen=True)
class BackendConfig:
    """Immutable configuration for backend operations."""

    base_url: str | None
    api_key: str | None
    timeout_seconds: float

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)


def load_backend_config() -> BackendConfig:
    """Build configuration object from global settings."""

    return BackendConfig(
        base_url=settings.backend_base_url,
        api_key=settings.backend_api_key,
        timeout_seconds=float(settings.backend_http_timeout_seconds),
    )


def _eq(value: Any) -> str:
    return f"eq.{value}"


def _parse_total(content_range: str | None) -> int:
    # PostgREST answers "0-9/42" or "*/0".
    if not content_range or "/" not in content_range:
        return 0
    total = content_range.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


class BackendClient:
    """HTTP client wrapper for the hosted database service."""

    def __init__(
        self,
        config: BackendConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_backend_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise BackendDisabledError("Membership backend URL is not configured")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url or "",
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )

        return self._client

    def _build_auth_headers(self, access_token: str | None = None) -> dict[str, str]:
        headers: dict[str, str] = {"Accept": "application/json"}
        if self.config.api_key:
            headers["apikey"] = self.config.api_key
        token = access_token or self.config.api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @dataclass
    class RequestParams:
        """Parameters for HTTP requests."""
        method: str
        path: str
        json_data: Any | None = None
        params: Mapping[str, Any] | None = None
        headers: dict[str, str] | None = None

    async def _request(self, params: RequestParams) -> httpx.Response:
        client = await self._ensure_client()
        headers = self._build_auth_headers()
        if params.headers:
            headers.update(params.headers)

        try:
            response = await client.request(
                params.method,
                params.path,
                json=params.json_data,
                params=params.params,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.warning("Backend request %s %s failed: %s", params.method, params.path, exc)
            raise BackendError(f"Backend request failed: {exc}") from exc

        if response.status_code in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
            raise BackendAuthorizationError(self._error_message(response))
        if response.status_code == HTTP_CONFLICT:
            raise BackendConflictError(self._error_message(response))
        if response.status_code >= HTTP_BAD_REQUEST:
            raise BackendError(
                f"Backend responded with {response.status_code}: {self._error_message(response)}"
            )
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, Mapping):
            return str(body.get("message") or body.get("details") or body)
        return str(body)

    async def rpc(self, name: str, arguments: Mapping[str, Any]) -> Any:
        """Call a remote procedure and return its decoded JSON result."""
        payload = {key: value for key, value in arguments.items() if value is not None}
        response = await self._request(
            self.RequestParams(method="POST", path=f"/rest/v1/rpc/{name}", json_data=payload)
        )
        return response.json() if response.content else None

    async def select(self, table: str, **query: Any) -> list[dict[str, Any]]:
        response = await self._request(
            self.RequestParams(method="GET", path=f"/rest/v1/{table}", params=query)
        )
        return list(response.json() or [])

    async def count(self, table: str, **filters: Any) -> int:
        response = await self._request(
            self.RequestParams(
                method="HEAD",
                path=f"/rest/v1/{table}",
                params={"select": "id", **filters},
                headers={"Prefer": "count=exact"},
            )
        )
        return _parse_total(response.headers.get("content-range"))

    async def insert(
        self, table: str, values: Mapping[str, Any] | Sequence[Mapping[str, Any]]
    ) -> list[dict[str, Any]]:
        """Insert one row or a batch of rows and return what was stored."""
        payload = dict(values) if isinstance(values, Mapping) else [dict(row) for row in values]
        response = await self._request(
            self.RequestParams(
                method="POST",
                path=f"/rest/v1/{table}",
                json_data=payload,
                headers={"Prefer": "return=representation"},
            )
        )
        return list(response.json() or [])

    async def upsert(
        self, table: str, rows: Sequence[Mapping[str, Any]], on_conflict: str
    ) -> list[dict[str, Any]]:
        """Insert ``rows``, merging into existing rows that clash on ``on_conflict``."""
        response = await self._request(
            self.RequestParams(
                method="POST",
                path=f"/rest/v1/{table}",
                json_data=[dict(row) for row in rows],
                params={"on_conflict": on_conflict},
                headers={"Prefer": "resolution=merge-duplicates,return=representation"},
            )
        )
        return list(response.json() or [])

    async def update(
        self, table: str, values: Mapping[str, Any], **filters: Any
    ) -> list[dict[str, Any]]:
        response = await self._request(
            self.RequestParams(
                method="PATCH",
                path=f"/rest/v1/{table}",
                json_data=dict(values),
                params=filters,
                headers={"Prefer": "return=representation"},
            )
        )
        return list(response.json() or [])

    async def delete(self, table: str, **filters: Any) -> list[dict[str, Any]]:
        response = await self._request(
            self.RequestParams(
                method="DELETE",
                path=f"/rest/v1/{table}",
                params=filters,
                headers={"Prefer": "return=representation"},
            )
        )
        return list(response.json() or [])

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""

        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


def _membership_from_row(row: Mapping[str, Any]) -> MembershipResponse:
    user = row.get("users") or {}
    return MembershipResponse(
        id=row["id"],
        community_id=row["community_id"],
        user_id=row["user_id"],
        role=row["role"],
        status=row["status"],
        joined_at=row.get("joined_at"),
        user_name=user.get("name"),
        user_email=user.get("email"),
    )


class RestMembershipStore:
    """Membership store that delegates to the hosted backend."""

    def __init__(self, client: BackendClient) -> None:
        self.client = client

    async def _with_member_count(self, row: Mapping[str, Any]) -> CommunityResponse:
        community = CommunityResponse.model_validate(row)
        community.member_count = await self.client.count(
            "community_members",
            community_id=_eq(community.id),
            status=_eq(MemberStatus.ACTIVE.value),
        )
        return community

    async def get_community(self, community_id: uuid.UUID) -> CommunityResponse | None:
        rows = await self.client.select("communities", id=_eq(community_id), limit=1)
        return await self._with_member_count(rows[0]) if rows else None

    async def get_community_by_slug(self, slug: str) -> CommunityResponse | None:
        rows = await self.client.select("communities", slug=_eq(slug), limit=1)
        return await self._with_member_count(rows[0]) if rows else None

    async def list_communities(self) -> list[CommunityResponse]:
        rows = await self.client.select("communities", order="created_at.desc")
        return [await self._with_member_count(row) for row in rows]

    async def create_community(
        self, owner_id: uuid.UUID, data: CommunityCreate
    ) -> CommunityResponse:
        # The hosted schema adds the owner's membership row in a trigger.
        rows = await self.client.insert(
            "communities",
            {
                "title": data.title,
                "slug": data.slug,
                "description": data.description,
                "visibility": data.visibility.value,
                "owner_id": str(owner_id),
            },
        )
        if not rows:
            raise BackendError("Backend did not return the created community")
        return await self._with_member_count(rows[0])

    async def get_membership(
        self, community_id: uuid.UUID, user_id: uuid.UUID
    ) -> MembershipResponse | None:
        rows = await self.client.select(
            "community_members",
            select=MEMBER_USER_EMBED,
            community_id=_eq(community_id),
            user_id=_eq(user_id),
            limit=1,
        )
        return _membership_from_row(rows[0]) if rows else None

    async def list_members(
        self, community_id: uuid.UUID, status: MemberStatus | None = None
    ) -> list[MembershipResponse]:
        query: dict[str, Any] = {
            "select": MEMBER_USER_EMBED,
            "community_id": _eq(community_id),
            "order": "joined_at.desc",
        }
        if status is not None:
            query["status"] = _eq(status.value)
        rows = await self.client.select("community_members", **query)
        return [_membership_from_row(row) for row in rows]

    async def handle_join_request(
        self, community_id: uuid.UUID, user_id: uuid.UUID | None
    ) -> ProcedureResult:
        payload = await self.client.rpc(
            "handle_join_request",
            {
                "p_community_id": str(community_id),
                "p_user_id": str(user_id) if user_id else None,
            },
        )
        return self._parse(payload)

    async def manage_join_request(
        self,
        community_id: uuid.UUID,
        user_id: uuid.UUID,
        action: JoinAction | str,
        moderator_id: uuid.UUID | None,
    ) -> ProcedureResult:
        payload = await self.client.rpc(
            "manage_join_request",
            {
                "p_community_id": str(community_id),
                "p_user_id": str(user_id),
                "p_action": str(action),
                "p_moderator_id": str(moderator_id) if moderator_id else None,
            },
        )
        return self._parse(payload)

    @staticmethod
    def _parse(payload: Any) -> ProcedureResult:
        try:
            return parse_procedure_result(payload)
        except ValueError as exc:
            raise BackendError(str(exc)) from exc

    async def create_notification(self, draft: NotificationDraft) -> uuid.UUID:
        values = draft.model_dump(mode="json")
        notification_id = await self.client.rpc(
            "create_notification",
            {f"p_{key}": value for key, value in values.items()},
        )
        try:
            return uuid.UUID(str(notification_id))
        except ValueError as exc:
            raise BackendError(f"Unexpected notification id: {notification_id!r}") from exc

    async def list_notifications(
        self, user_id: uuid.UUID, limit: int = 10
    ) -> list[NotificationResponse]:
        rows = await self.client.select(
            "notifications",
            user_id=_eq(user_id),
            order="created_at.desc",
            limit=limit,
        )
        return [NotificationResponse.model_validate(row) for row in rows]

    async def count_unread_notifications(self, user_id: uuid.UUID) -> int:
        return await self.client.count(
            "notifications", user_id=_eq(user_id), is_read=_eq("false")
        )

    async def mark_notification_read(
        self, notification_id: uuid.UUID, user_id: uuid.UUID
    ) -> bool:
        rows = await self.client.update(
            "notifications",
            {"is_read": True},
            id=_eq(notification_id),
            user_id=_eq(user_id),
        )
        return bool(rows)

    async def mark_all_notifications_read(self, user_id: uuid.UUID) -> int:
        rows = await self.client.update(
            "notifications",
            {"is_read": True},
            user_id=_eq(user_id),
            is_read=_eq("false"),
        )
        return len(rows)

    async def extract_mentions(self, content: str) -> list[str]:
        mentions = await self.client.rpc("extract_mentions", {"content": content})
        return [str(item) for item in mentions or []]


class _BackendClientSingleton:
    """Singleton wrapper for BackendClient."""

    _instance: BackendClient | None = None

    @classmethod
    def get_instance(cls) -> BackendClient:
        """Get or create the singleton BackendClient instance."""
        if cls._instance is None:
            cls._instance = BackendClient()
        return cls._instance


def get_backend_client() -> BackendClient:
    """Return a singleton backend client instance."""
    return _BackendClientSingleton.get_instance()
