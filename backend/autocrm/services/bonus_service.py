import uuid
import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.models.bonus import Bonus, BonusSource
from autocrm.models.master import Master
from autocrm.models.order import Order, OrderStatus
from autocrm.utils.money import quantize_money

logger = logging.getLogger(__name__)


def _in_range(query, date_from: date | None, date_to: date | None):
    if date_from is not None:
        query = query.where(Bonus.date >= datetime.combine(date_from, time.min, tzinfo=timezone.utc))
    if date_to is not None:
        end = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
        query = query.where(Bonus.date < end)
    return query


async def list_bonuses(
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
    master_id: uuid.UUID | None = None,
    order_id: uuid.UUID | None = None,
    source: BonusSource | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> tuple[int, list[Bonus]]:
    query = select(Bonus)
    if master_id is not None:
        query = query.where(Bonus.master_id == master_id)
    if order_id is not None:
        query = query.where(Bonus.order_id == order_id)
    if source is not None:
        query = query.where(Bonus.source == source)
    query = _in_range(query, date_from, date_to)

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar_one()

    result = await db.execute(
        query.order_by(Bonus.date.desc()).offset((page - 1) * limit).limit(limit)
    )
    return total, list(result.scalars().all())


async def get_bonus(db: AsyncSession, bonus_id: uuid.UUID) -> Bonus | None:
    return await db.get(Bonus, bonus_id)


async def create_manual_bonus(
    db: AsyncSession,
    master_id: uuid.UUID,
    order_id: uuid.UUID,
    amount: Decimal,
    description: str | None = None,
    bonus_date: datetime | None = None,
) -> Bonus:
    """Record an adjustment outside the automatic allocation (e.g. a premium or a penalty)."""
    master = await db.get(Master, master_id)
    if not master:
        raise ValueError("Master not found")
    order = await db.get(Order, order_id)
    if not order:
        raise ValueError("Order not found")

    bonus = Bonus(
        master_id=master_id,
        order_id=order_id,
        amount=quantize_money(amount),
        percentage=Decimal("0"),
        work_percentage=None,
        source=BonusSource.manual,
        description=description,
        date=bonus_date or datetime.now(timezone.utc),
    )
    bonus.master = master
    bonus.order = order
    db.add(bonus)
    await db.commit()
    await db.refresh(bonus)
    logger.info(f"Manual bonus {bonus.id} of {bonus.amount} for master {master_id} on order {order_id}")
    return bonus


async def update_bonus(db: AsyncSession, bonus_id: uuid.UUID, data: dict) -> Bonus | None:
    bonus = await db.get(Bonus, bonus_id)
    if not bonus:
        return None
    if bonus.source == BonusSource.allocation:
        raise ValueError("Bonuses produced by order completion cannot be modified")

    if data.get("amount") is not None:
        bonus.amount = quantize_money(data["amount"])
    if "description" in data:
        bonus.description = data["description"]
    if data.get("date") is not None:
        bonus.date = data["date"]

    await db.commit()
    await db.refresh(bonus)
    return bonus


async def delete_bonus(db: AsyncSession, bonus_id: uuid.UUID) -> bool:
    bonus = await db.get(Bonus, bonus_id)
    if not bonus:
        return False
    if bonus.source == BonusSource.allocation:
        raise ValueError("Bonuses produced by order completion cannot be deleted")
    await db.delete(bonus)
    await db.commit()
    return True


async def get_bonus_stats(
    db: AsyncSession,
    master_id: uuid.UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    query = (
        select(Order.status, func.count(Bonus.id), func.coalesce(func.sum(Bonus.amount), 0))
        .select_from(Bonus)
        .join(Order, Order.id == Bonus.order_id)
        .group_by(Order.status)
    )
    if master_id is not None:
        query = query.where(Bonus.master_id == master_id)
    query = _in_range(query, date_from, date_to)

    result = await db.execute(query)

    by_status = {s.value: {"count": 0, "amount": Decimal("0.00")} for s in OrderStatus}
    count = 0
    total = Decimal("0")
    for status, status_count, amount in result.all():
        by_status[OrderStatus(status).value] = {
            "count": status_count,
            "amount": quantize_money(amount),
        }
        count += status_count
        total += Decimal(amount)

    return {
        "total_bonuses": count,
        "total_amount": quantize_money(total),
        "average_amount": quantize_money(total / count) if count else Decimal("0.00"),
        "by_order_status": by_status,
    }
