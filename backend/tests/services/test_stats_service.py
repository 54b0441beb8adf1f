import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from autocrm.models.order import OrderStatus
from autocrm.services.stats_service import (
    Period, get_period_start, _daily_chart, _finance, _master_breakdown, _status_counts,
)

ALICE = uuid.uuid4()
BOB = uuid.uuid4()
NOW = datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)


def scalar(value):
    result = MagicMock()
    result.scalar_one.return_value = value
    return result


def one(*values):
    result = MagicMock()
    result.one.return_value = values
    return result


def rows(data):
    result = MagicMock()
    result.all.return_value = data
    return result


def test_period_start():
    assert get_period_start(Period.week, NOW) == NOW - timedelta(days=7)
    assert get_period_start(Period.month, NOW) == NOW - timedelta(days=30)
    assert get_period_start(Period.year, NOW) == NOW - timedelta(days=365)


@pytest.mark.asyncio
async def test_status_counts_fill_missing_statuses():
    db = AsyncMock()
    db.execute.return_value = rows([(OrderStatus.pending, 2), (OrderStatus.completed, 1)])
    counts = await _status_counts(db)
    assert counts == {"pending": 2, "in_progress": 0, "completed": 1, "cancelled": 0, "total": 3}


@pytest.mark.asyncio
async def test_finance_reads_ledgers():
    """Owner income comes from the owner share ledger, not from the current settings."""
    db = AsyncMock()
    db.execute.side_effect = [
        scalar(Decimal("10000")),
        one(Decimal("3000"), Decimal("200")),
        scalar(Decimal("7000")),
    ]
    finance = await _finance(db)
    assert finance == {
        "revenue": "10000.00",
        "bonuses_allocated": "3000.00",
        "bonuses_manual": "200.00",
        "bonuses_total": "3200.00",
        "owner_income": "7000.00",
    }


@pytest.mark.asyncio
async def test_master_finance_has_no_owner_income():
    db = AsyncMock()
    db.execute.side_effect = [scalar(Decimal("5000")), one(Decimal("1500"), 0)]
    finance = await _finance(db, master_id=ALICE)
    assert "owner_income" not in finance
    assert finance["bonuses_total"] == "1500.00"
    assert db.execute.await_count == 2


@pytest.mark.asyncio
async def test_master_breakdown_sorted_by_orders():
    db = AsyncMock()
    db.execute.side_effect = [
        rows([
            (ALICE, "Alice", 1, 1, Decimal("100")),
            (BOB, "Bob", 3, 2, Decimal("300")),
        ]),
        rows([(BOB, Decimal("50"))]),
    ]
    masters = await _master_breakdown(db)
    assert [m["full_name"] for m in masters] == ["Bob", "Alice"]
    assert masters[0]["bonus_amount"] == "50.00"
    assert masters[1]["bonus_amount"] == "0.00"
    assert masters[0]["total_amount"] == "300.00"


@pytest.mark.asyncio
async def test_daily_chart_has_one_point_per_day():
    db = AsyncMock()
    db.execute.return_value = rows([(date(2026, 3, 2), 2, Decimal("500"))])
    since = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    until = datetime(2026, 3, 3, 9, 0, tzinfo=timezone.utc)

    chart = await _daily_chart(db, since, until)

    assert [p["date"] for p in chart] == ["2026-03-01", "2026-03-02", "2026-03-03"]
    assert chart[0] == {"date": "2026-03-01", "orders": 0, "amount": "0.00"}
    assert chart[1] == {"date": "2026-03-02", "orders": 2, "amount": "500.00"}
