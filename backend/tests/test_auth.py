import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import jwt as pyjwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from autocrm.core.auth import (
    create_access_token, decode_access_token, get_current_user,
    hash_password, require_roles, verify_password,
)
from autocrm.models.master import MasterRole

DIRECTOR = SimpleNamespace(id=uuid.uuid4(), role=MasterRole.director, is_active=True)
MASTER = SimpleNamespace(id=uuid.uuid4(), role=MasterRole.master, is_active=True)


def bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def db_returning(user):
    db = AsyncMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = user
    db.execute.return_value = result
    return db


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_token_round_trip():
    payload = decode_access_token(create_access_token(DIRECTOR))
    assert payload["sub"] == str(DIRECTOR.id)
    assert payload["role"] == "director"


def test_expired_token_rejected():
    token = create_access_token(DIRECTOR, expires_minutes=-1)
    with pytest.raises(pyjwt.ExpiredSignatureError):
        decode_access_token(token)


@pytest.mark.asyncio
async def test_current_user_loaded_from_token():
    user = await get_current_user(bearer(create_access_token(MASTER)), db_returning(MASTER))
    assert user is MASTER


@pytest.mark.asyncio
async def test_garbage_token_is_401():
    with pytest.raises(HTTPException) as exc:
        await get_current_user(bearer("not-a-token"), db_returning(MASTER))
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_deactivated_account_is_401():
    inactive = SimpleNamespace(id=MASTER.id, role=MasterRole.master, is_active=False)
    with pytest.raises(HTTPException) as exc:
        await get_current_user(bearer(create_access_token(inactive)), db_returning(inactive))
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_role_guard():
    checker = require_roles(MasterRole.director, MasterRole.admin)
    assert await checker(user=DIRECTOR) is DIRECTOR
    with pytest.raises(HTTPException) as exc:
        await checker(user=MASTER)
    assert exc.value.status_code == 403
