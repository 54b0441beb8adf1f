import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from autocrm.models.master import MasterRole
from autocrm.models.order import ItemKind, OrderStatus
from autocrm.services.errors import (
    DuplicateAllocation, InconsistentPercentages, InvalidInput, InvalidTransition, OrderLocked,
)
from autocrm.services.order_service import (
    build_items, can_view_order, change_order_status, delete_order,
    resolve_work_percentages, update_order,
)

ORDER_ID = uuid.uuid4()
ALICE = uuid.uuid4()
BOB = uuid.uuid4()
CAROL = uuid.uuid4()


def scalar_result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


# --- work percentage resolution ---

def test_explicit_percentages_kept():
    resolved = resolve_work_percentages([
        {"master_id": ALICE, "work_percentage": Decimal("70")},
        {"master_id": BOB, "work_percentage": Decimal("30")},
    ])
    assert resolved == {ALICE: Decimal("70"), BOB: Decimal("30")}


def test_omitted_percentages_split_evenly():
    resolved = resolve_work_percentages([{"master_id": ALICE}, {"master_id": BOB}])
    assert resolved == {ALICE: Decimal("50.00"), BOB: Decimal("50.00")}


def test_omitted_percentages_share_remainder_to_the_cent():
    resolved = resolve_work_percentages([
        {"master_id": ALICE, "work_percentage": None},
        {"master_id": BOB, "work_percentage": None},
        {"master_id": CAROL, "work_percentage": None},
    ])
    assert sum(resolved.values()) == Decimal("100")
    assert sorted(resolved.values()) == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]


def test_mixed_explicit_and_omitted():
    resolved = resolve_work_percentages([
        {"master_id": ALICE, "work_percentage": Decimal("40")},
        {"master_id": BOB},
        {"master_id": CAROL},
    ])
    assert resolved == {ALICE: Decimal("40"), BOB: Decimal("30.00"), CAROL: Decimal("30.00")}


def test_percentages_not_summing_to_100_rejected():
    with pytest.raises(InconsistentPercentages):
        resolve_work_percentages([
            {"master_id": ALICE, "work_percentage": Decimal("60")},
            {"master_id": BOB, "work_percentage": Decimal("60")},
        ])


def test_explicit_over_100_with_omitted_rejected():
    with pytest.raises(InconsistentPercentages):
        resolve_work_percentages([
            {"master_id": ALICE, "work_percentage": Decimal("70")},
            {"master_id": BOB, "work_percentage": Decimal("40")},
            {"master_id": CAROL},
        ])


def test_sub_cent_percentages_rejected():
    # 33.333 + 33.333 + 33.334 would be stored as 33.33 x 3 = 99.99
    with pytest.raises(InvalidInput):
        resolve_work_percentages([
            {"master_id": ALICE, "work_percentage": Decimal("33.333")},
            {"master_id": BOB, "work_percentage": Decimal("33.333")},
            {"master_id": CAROL, "work_percentage": Decimal("33.334")},
        ])


def test_trailing_zero_percentages_accepted():
    resolved = resolve_work_percentages([
        {"master_id": ALICE, "work_percentage": Decimal("33.330")},
        {"master_id": BOB, "work_percentage": Decimal("66.670")},
    ])
    assert sum(resolved.values()) == Decimal("100")


def test_no_masters_rejected():
    with pytest.raises(InvalidInput):
        resolve_work_percentages([])


def test_duplicate_master_rejected():
    with pytest.raises(InvalidInput):
        resolve_work_percentages([{"master_id": ALICE}, {"master_id": ALICE}])


# --- items ---

def test_build_items_normalizes_labor_quantity_and_seller():
    items = build_items([
        {"kind": ItemKind.labor, "name": "Diagnostics", "price": Decimal("1500"), "quantity": Decimal("3"),
         "seller_id": ALICE},
        {"kind": ItemKind.part, "name": "Relay", "price": Decimal("300"), "quantity": Decimal("2"),
         "seller_id": BOB},
    ])
    assert items[0].quantity == Decimal("1")
    assert items[0].seller_id is None
    assert items[1].seller_id == BOB
    assert [i.sort_order for i in items] == [0, 1]


def test_build_items_rejects_negative_price():
    with pytest.raises(InvalidInput):
        build_items([{"kind": ItemKind.material, "name": "Fuse", "price": Decimal("-1"), "quantity": Decimal("1")}])


# --- visibility ---

def test_managers_see_every_order():
    order = SimpleNamespace(assignments=[])
    director = SimpleNamespace(id=ALICE, role=MasterRole.director, is_manager=True)
    assert can_view_order(order, director)


def test_masters_see_only_assigned_orders():
    order = SimpleNamespace(assignments=[SimpleNamespace(master_id=ALICE)])
    assert can_view_order(order, SimpleNamespace(id=ALICE, is_manager=False))
    assert not can_view_order(order, SimpleNamespace(id=BOB, is_manager=False))


# --- status changes ---

@pytest.mark.asyncio
async def test_completion_goes_through_allocation():
    db = AsyncMock()
    order = SimpleNamespace(id=ORDER_ID, status=OrderStatus.completed)
    with patch("autocrm.services.order_service.complete_order", new=AsyncMock(return_value=[])) as complete, \
            patch("autocrm.services.order_service.get_order", new=AsyncMock(return_value=order)):
        result = await change_order_status(db, ORDER_ID, OrderStatus.completed)
    complete.assert_awaited_once_with(db, ORDER_ID)
    assert result is order


@pytest.mark.asyncio
async def test_completion_of_missing_order_returns_none():
    db = AsyncMock()
    with patch("autocrm.services.order_service.complete_order", new=AsyncMock(return_value=None)):
        assert await change_order_status(db, ORDER_ID, OrderStatus.completed) is None


@pytest.mark.asyncio
async def test_simple_transition_uses_compare_and_set():
    db = AsyncMock()
    db.execute.side_effect = [scalar_result(OrderStatus.pending), scalar_result(ORDER_ID)]
    order = SimpleNamespace(id=ORDER_ID, status=OrderStatus.in_progress)
    with patch("autocrm.services.order_service.get_order", new=AsyncMock(return_value=order)):
        result = await change_order_status(db, ORDER_ID, OrderStatus.in_progress)
    assert result is order
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_same_status_is_noop():
    db = AsyncMock()
    db.execute.side_effect = [scalar_result(OrderStatus.cancelled)]
    order = SimpleNamespace(id=ORDER_ID, status=OrderStatus.cancelled)
    with patch("autocrm.services.order_service.get_order", new=AsyncMock(return_value=order)):
        result = await change_order_status(db, ORDER_ID, OrderStatus.cancelled)
    assert result is order
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_forbidden_transition_raises():
    db = AsyncMock()
    db.execute.side_effect = [scalar_result(OrderStatus.cancelled)]
    with pytest.raises(InvalidTransition):
        await change_order_status(db, ORDER_ID, OrderStatus.in_progress)
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_lost_race_raises_invalid_transition():
    db = AsyncMock()
    db.execute.side_effect = [scalar_result(OrderStatus.pending), scalar_result(None)]
    with pytest.raises(InvalidTransition):
        await change_order_status(db, ORDER_ID, OrderStatus.cancelled)
    db.rollback.assert_awaited_once()
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_recompletion_propagates_duplicate():
    db = AsyncMock()
    complete = AsyncMock(side_effect=DuplicateAllocation("Order is already completed"))
    with patch("autocrm.services.order_service.complete_order", new=complete):
        with pytest.raises(DuplicateAllocation):
            await change_order_status(db, ORDER_ID, OrderStatus.completed)


# --- locking ---

@pytest.mark.asyncio
async def test_completed_order_cannot_be_edited():
    db = AsyncMock()
    order = SimpleNamespace(id=ORDER_ID, status=OrderStatus.completed)
    with patch("autocrm.services.order_service.get_order", new=AsyncMock(return_value=order)):
        with pytest.raises(OrderLocked):
            await update_order(db, ORDER_ID, {"client_name": "New name"})
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_of_missing_order_returns_none():
    db = AsyncMock()
    with patch("autocrm.services.order_service.get_order", new=AsyncMock(return_value=None)):
        assert await update_order(db, ORDER_ID, {"client_name": "New name"}) is None


@pytest.mark.asyncio
async def test_completed_order_cannot_be_deleted():
    db = AsyncMock()
    db.execute.side_effect = [scalar_result(OrderStatus.completed)]
    with pytest.raises(OrderLocked):
        await delete_order(db, ORDER_ID)
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_missing_order():
    db = AsyncMock()
    db.execute.side_effect = [scalar_result(None)]
    assert await delete_order(db, ORDER_ID) is False


@pytest.mark.asyncio
async def test_delete_pending_order():
    db = AsyncMock()
    db.execute.side_effect = [scalar_result(OrderStatus.pending), MagicMock(), scalar_result(ORDER_ID)]
    assert await delete_order(db, ORDER_ID) is True
    db.commit.assert_awaited_once()
