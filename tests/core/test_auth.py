"""Tests for bearer token validation and role dependencies."""

from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from mosque_directory.core.auth import (
    Actor,
    ActorRole,
    get_current_actor,
    get_current_applicant,
    get_current_super_admin,
)
from mosque_directory.core.security import create_access_token, decode_token


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.mark.asyncio
async def test_token_maps_to_actor():
    account_id = uuid4()
    token = create_access_token(
        str(account_id), "admin", email="imam@example.com", name="Imam Yusuf"
    )

    actor = await get_current_actor(_credentials(token))

    assert actor == Actor(
        id=account_id, role=ActorRole.ADMIN, name="Imam Yusuf", email="imam@example.com"
    )


@pytest.mark.asyncio
async def test_expired_token_rejected():
    token = create_access_token(str(uuid4()), "super_admin", expires_delta=timedelta(seconds=-5))

    with pytest.raises(HTTPException) as exc_info:
        await get_current_actor(_credentials(token))

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail["error"] == "INVALID_TOKEN"


@pytest.mark.asyncio
@pytest.mark.parametrize("role", ["system", "owner", ""])
async def test_unknown_or_system_role_rejected(role):
    token = create_access_token(str(uuid4()), role)

    with pytest.raises(HTTPException) as exc_info:
        await get_current_actor(_credentials(token))

    assert exc_info.value.detail["error"] == "INVALID_TOKEN_CLAIMS"


@pytest.mark.asyncio
async def test_malformed_subject_rejected():
    token = create_access_token("not-a-uuid", "admin")

    with pytest.raises(HTTPException) as exc_info:
        await get_current_actor(_credentials(token))

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_super_admin_dependency():
    super_admin = Actor(id=uuid4(), role=ActorRole.SUPER_ADMIN)
    applicant = Actor(id=uuid4(), role=ActorRole.ADMIN)

    assert await get_current_super_admin(super_admin) is super_admin
    with pytest.raises(HTTPException) as exc_info:
        await get_current_super_admin(applicant)

    assert exc_info.value.status_code == 403
    assert exc_info.value.detail["error"] == "SUPER_ADMIN_ACCESS_REQUIRED"


@pytest.mark.asyncio
async def test_applicant_dependency():
    super_admin = Actor(id=uuid4(), role=ActorRole.SUPER_ADMIN)

    with pytest.raises(HTTPException) as exc_info:
        await get_current_applicant(super_admin)

    assert exc_info.value.detail["error"] == "APPLICANT_ACCESS_REQUIRED"


def test_decode_rejects_tampered_token():
    token = create_access_token(str(uuid4()), "admin")

    assert decode_token(token) is not None
    assert decode_token(token[:-2] + "xx") is None
