"""
User directory client — asks the identity service whether a user exists,
is active, and holds a role.

Async httpx REST calls against the identity service's internal API.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

import httpx

from app.exceptions import UserDirectoryUnavailableError
from shared.constants import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryUser:
    user_id: UUID
    is_active: bool
    roles: frozenset[Role]

    def has_role(self, role: Role) -> bool:
        return role in self.roles


class UserDirectory:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def get_user(self, user_id: UUID) -> DirectoryUser | None:
        """Return the user record, or None when the identity service has no such user."""
        url = f"{self._base_url}/api/v1/internal/users/{user_id}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("User directory request failed for %s: %s", user_id, exc)
            raise UserDirectoryUnavailableError(str(exc)) from exc

        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            logger.warning(
                "User directory returned %s for %s: %s",
                resp.status_code, user_id, resp.text[:200],
            )
            raise UserDirectoryUnavailableError(f"identity service returned {resp.status_code}")

        data = resp.json()
        roles = frozenset(Role(r) for r in data.get("roles", []) if r in Role._value2member_map_)
        return DirectoryUser(
            user_id=UUID(str(data["id"])),
            is_active=bool(data.get("is_active", False)),
            roles=roles,
        )

    async def is_active_with_role(self, user_id: UUID, role: Role) -> bool:
        user = await self.get_user(user_id)
        return user is not None and user.is_active and user.has_role(role)
