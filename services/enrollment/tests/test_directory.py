from uuid import uuid4

import httpx
import pytest

from app.exceptions import UserDirectoryUnavailableError
from app.registry.directory import UserDirectory
from shared.constants import Role


def _directory(handler) -> UserDirectory:
    return UserDirectory("http://identity.test/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_active_student_found() -> None:
    user_id = uuid4()

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == f"/api/v1/internal/users/{user_id}"
        return httpx.Response(200, json={"id": str(user_id), "is_active": True, "roles": ["student"]})

    directory = _directory(handler)
    user = await directory.get_user(user_id)
    assert user is not None
    assert user.has_role(Role.STUDENT)
    assert await directory.is_active_with_role(user_id, Role.STUDENT)
    assert not await directory.is_active_with_role(user_id, Role.TEACHER)


@pytest.mark.asyncio
async def test_inactive_user_is_not_eligible() -> None:
    user_id = uuid4()
    directory = _directory(
        lambda request: httpx.Response(200, json={"id": str(user_id), "is_active": False, "roles": ["student"]})
    )
    assert not await directory.is_active_with_role(user_id, Role.STUDENT)


@pytest.mark.asyncio
async def test_unknown_roles_ignored() -> None:
    user_id = uuid4()
    directory = _directory(
        lambda request: httpx.Response(
            200, json={"id": str(user_id), "is_active": True, "roles": ["student", "super_admin"]}
        )
    )
    user = await directory.get_user(user_id)
    assert user.roles == frozenset({Role.STUDENT})


@pytest.mark.asyncio
async def test_missing_user_returns_none() -> None:
    directory = _directory(lambda request: httpx.Response(404, json={"detail": "User not found"}))
    assert await directory.get_user(uuid4()) is None
    assert not await directory.is_active_with_role(uuid4(), Role.STUDENT)


@pytest.mark.asyncio
async def test_server_error_raises_unavailable() -> None:
    directory = _directory(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(UserDirectoryUnavailableError):
        await directory.get_user(uuid4())


@pytest.mark.asyncio
async def test_connection_error_raises_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UserDirectoryUnavailableError):
        await _directory(handler).get_user(uuid4())
