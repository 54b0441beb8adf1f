import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from autocrm.core.auth import hash_password, verify_password
from autocrm.models.master import MasterRole
from autocrm.models.order import OrderStatus
from autocrm.services.master_service import (
    authenticate, change_password, create_master, delete_master, get_master_stats,
)

ALICE = uuid.uuid4()


def scalar_result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar_one.return_value = value
    return result


@pytest.mark.asyncio
async def test_create_master_hashes_password():
    db = AsyncMock()
    db.add = MagicMock()
    db.execute.return_value = scalar_result(None)

    master = await create_master(db, " Ivan Petrov ", "+70000000002", "secret123")

    assert master.full_name == "Ivan Petrov"
    assert master.role == MasterRole.master
    assert master.password_hash != "secret123"
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_master_duplicate_phone():
    db = AsyncMock()
    db.execute.return_value = scalar_result(SimpleNamespace(id=ALICE))
    with pytest.raises(ValueError):
        await create_master(db, "Ivan", "+70000000002", "secret123")
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_authenticate():
    master = SimpleNamespace(id=ALICE, password_hash=hash_password("secret123"))
    db = AsyncMock()
    db.execute.return_value = scalar_result(master)
    assert await authenticate(db, "+70000000002", "secret123") is master
    assert await authenticate(db, "+70000000002", "wrong") is None


@pytest.mark.asyncio
async def test_change_password_requires_current():
    master = SimpleNamespace(id=ALICE, password_hash=hash_password("secret123"))
    db = AsyncMock()
    with pytest.raises(ValueError):
        await change_password(db, master, "wrong", "newsecret")
    await change_password(db, master, "secret123", "newsecret")
    assert verify_password("newsecret", master.password_hash)
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_delete_deactivates_master():
    master = SimpleNamespace(id=ALICE, role=MasterRole.master, is_active=True)
    db = AsyncMock()
    db.get.return_value = master
    result = await delete_master(db, ALICE)
    assert result.is_active is False
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [MasterRole.director, MasterRole.admin])
async def test_managers_cannot_be_deleted(role):
    db = AsyncMock()
    db.get.return_value = SimpleNamespace(id=ALICE, role=role, is_active=True)
    with pytest.raises(ValueError):
        await delete_master(db, ALICE)
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_master_stats():
    db = AsyncMock()
    status_rows = MagicMock()
    status_rows.all.return_value = [
        (OrderStatus.completed, 2, Decimal("9000")),
        (OrderStatus.pending, 1, Decimal("0")),
    ]
    db.execute.side_effect = [status_rows, scalar_result(Decimal("2700"))]

    stats = await get_master_stats(db, ALICE)

    assert stats["total_orders"] == 3
    assert stats["orders_by_status"]["completed"] == 2
    assert stats["total_amount"] == Decimal("9000.00")
    assert stats["average_amount"] == Decimal("4500.00")
    assert stats["total_bonuses"] == Decimal("2700.00")
