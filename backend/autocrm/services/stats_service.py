import uuid
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import select, func, case, and_
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.models.bonus import Bonus, BonusSource, OwnerShare
from autocrm.models.master import Master
from autocrm.models.order import Order, OrderAssignment, OrderStatus

CENT = Decimal("0.01")


class Period(str, Enum):
    week = "week"
    month = "month"
    year = "year"


def get_period_start(period: Period, now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    if period == Period.week:
        return now - timedelta(days=7)
    elif period == Period.month:
        return now - timedelta(days=30)
    else:
        return now - timedelta(days=365)


def _money(value) -> str:
    return str(Decimal(value or 0).quantize(CENT))


def _date_bounds(date_from: date | None, date_to: date | None) -> tuple[datetime | None, datetime | None]:
    since = datetime.combine(date_from, time.min, tzinfo=timezone.utc) if date_from else None
    until = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc) if date_to else None
    return since, until


def _between(column, since: datetime | None, until: datetime | None) -> list:
    conditions = []
    if since is not None:
        conditions.append(column >= since)
    if until is not None:
        conditions.append(column < until)
    return conditions


def _assigned_to(master_id: uuid.UUID):
    return Order.id.in_(select(OrderAssignment.order_id).where(OrderAssignment.master_id == master_id))


async def _status_counts(
    db: AsyncSession,
    since: datetime | None = None,
    until: datetime | None = None,
    master_id: uuid.UUID | None = None,
) -> dict:
    query = (
        select(Order.status, func.count(Order.id))
        .where(*_between(Order.created_at, since, until))
        .group_by(Order.status)
    )
    if master_id is not None:
        query = query.where(_assigned_to(master_id))
    result = await db.execute(query)

    counts = {s.value: 0 for s in OrderStatus}
    for status, count in result.all():
        counts[OrderStatus(status).value] = count
    counts["total"] = sum(counts[s.value] for s in OrderStatus)
    return counts


async def _finance(
    db: AsyncSession,
    since: datetime | None = None,
    until: datetime | None = None,
    master_id: uuid.UUID | None = None,
) -> dict:
    """
    Money figures for completed orders, read from the ledgers written at
    completion time. A later change of the owner percentage does not alter them.
    """
    revenue_query = select(func.coalesce(func.sum(Order.total_amount), 0)).where(
        Order.status == OrderStatus.completed,
        *_between(Order.completed_at, since, until),
    )
    if master_id is not None:
        revenue_query = revenue_query.where(_assigned_to(master_id))
    revenue = (await db.execute(revenue_query)).scalar_one()

    bonus_query = select(
        func.coalesce(func.sum(case((Bonus.source == BonusSource.allocation, Bonus.amount), else_=0)), 0),
        func.coalesce(func.sum(case((Bonus.source == BonusSource.manual, Bonus.amount), else_=0)), 0),
    ).where(*_between(Bonus.date, since, until))
    if master_id is not None:
        bonus_query = bonus_query.where(Bonus.master_id == master_id)
    allocated, manual = (await db.execute(bonus_query)).one()

    finance = {
        "revenue": _money(revenue),
        "bonuses_allocated": _money(allocated),
        "bonuses_manual": _money(manual),
        "bonuses_total": _money(Decimal(allocated or 0) + Decimal(manual or 0)),
    }

    if master_id is None:
        owner_result = await db.execute(
            select(func.coalesce(func.sum(OwnerShare.amount), 0))
            .where(*_between(OwnerShare.date, since, until))
        )
        finance["owner_income"] = _money(owner_result.scalar_one())

    return finance


async def _master_breakdown(
    db: AsyncSession,
    since: datetime | None = None,
    until: datetime | None = None,
) -> list[dict]:
    order_join = and_(Order.id == OrderAssignment.order_id, *_between(Order.created_at, since, until))
    orders_result = await db.execute(
        select(
            Master.id,
            Master.full_name,
            func.count(Order.id),
            func.count(case((Order.status == OrderStatus.completed, Order.id))),
            func.coalesce(func.sum(case((Order.status == OrderStatus.completed, Order.total_amount), else_=0)), 0),
        )
        .select_from(Master)
        .outerjoin(OrderAssignment, OrderAssignment.master_id == Master.id)
        .outerjoin(Order, order_join)
        .where(Master.is_active.is_(True))
        .group_by(Master.id, Master.full_name)
    )

    bonus_result = await db.execute(
        select(Bonus.master_id, func.coalesce(func.sum(Bonus.amount), 0))
        .where(*_between(Bonus.date, since, until))
        .group_by(Bonus.master_id)
    )
    bonus_map = {master_id: amount for master_id, amount in bonus_result.all()}

    masters = []
    for master_id, full_name, orders_count, completed_count, completed_amount in orders_result.all():
        masters.append({
            "master_id": str(master_id),
            "full_name": full_name,
            "orders_count": orders_count,
            "completed_count": completed_count,
            "total_amount": _money(completed_amount),
            "bonus_amount": _money(bonus_map.get(master_id, 0)),
        })

    masters.sort(key=lambda m: m["orders_count"], reverse=True)
    return masters


async def _daily_chart(
    db: AsyncSession,
    since: datetime,
    until: datetime,
    master_id: uuid.UUID | None = None,
) -> list[dict]:
    day = func.date(Order.created_at)
    query = (
        select(
            day.label("day"),
            func.count(Order.id),
            func.coalesce(func.sum(case((Order.status == OrderStatus.completed, Order.total_amount), else_=0)), 0),
        )
        .where(*_between(Order.created_at, since, until))
        .group_by(day)
    )
    if master_id is not None:
        query = query.where(_assigned_to(master_id))
    result = await db.execute(query)
    by_day = {d: (count, amount) for d, count, amount in result.all()}

    # Fill the gaps so the chart has one point per calendar day
    chart = []
    current = since.date()
    while current <= until.date():
        count, amount = by_day.get(current, (0, 0))
        chart.append({"date": current.isoformat(), "orders": count, "amount": _money(amount)})
        current += timedelta(days=1)
    return chart


async def get_general_stats(
    db: AsyncSession,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    since, until = _date_bounds(date_from, date_to)
    return {
        "orders": await _status_counts(db, since, until),
        "finance": await _finance(db, since, until),
        "masters": await _master_breakdown(db, since, until),
    }


async def get_dashboard_stats(db: AsyncSession, period: Period, now: datetime | None = None) -> dict:
    now = now or datetime.now(timezone.utc)
    since = get_period_start(period, now)
    return {
        "period": period.value,
        "chart": await _daily_chart(db, since, now),
        "orders": await _status_counts(db, since, now),
        "finance": await _finance(db, since, now),
        "masters": await _master_breakdown(db, since, now),
    }


async def get_master_period_stats(
    db: AsyncSession,
    master_id: uuid.UUID,
    period: Period,
    now: datetime | None = None,
) -> dict:
    now = now or datetime.now(timezone.utc)
    since = get_period_start(period, now)
    return {
        "period": period.value,
        "master_id": str(master_id),
        "chart": await _daily_chart(db, since, now, master_id=master_id),
        "orders": await _status_counts(db, since, now, master_id=master_id),
        "finance": await _finance(db, since, now, master_id=master_id),
    }
