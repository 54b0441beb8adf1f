import uuid
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.models.bonus import Bonus, BonusSource, OwnerShare
from autocrm.models.master import Master
from autocrm.models.order import Order, OrderItem, OrderAssignment, OrderStatus, ItemKind
from autocrm.services.errors import (
    AllocationError, InvalidInput, InconsistentPercentages, DuplicateAllocation,
    InvalidTransition, PersistenceFailure,
)
from autocrm.services.order_status import COMPLETABLE_STATUSES, ensure_transition
from autocrm.services.setting_service import get_owner_percentage
from autocrm.utils.money import HUNDRED, compute_weighted_shares, percent_of, quantize_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BonusRecord:
    master_id: uuid.UUID
    order_id: uuid.UUID
    amount: Decimal
    percentage: Decimal
    work_percentage: Decimal
    date: datetime


def line_item_amount(item) -> Decimal:
    """Labor contributes its price; materials and parts price * quantity."""
    price = Decimal(item.price)
    if ItemKind(item.kind) == ItemKind.labor:
        return price
    quantity = item.quantity if item.quantity is not None else Decimal("1")
    return price * Decimal(quantity)


def order_total(line_items) -> Decimal:
    return quantize_money(sum((line_item_amount(item) for item in line_items), Decimal("0")))


def _work_weights(assignments) -> dict[uuid.UUID, Decimal]:
    weights: dict[uuid.UUID, Decimal] = {}
    for a in assignments:
        pct = Decimal(a.work_percentage)
        if pct < 0 or pct > HUNDRED:
            raise InvalidInput(f"Work percentage {pct} for master {a.master_id} is outside 0-100")
        if a.master_id in weights:
            raise InvalidInput(f"Master {a.master_id} is assigned to the order more than once")
        weights[a.master_id] = pct
    return weights


def allocate(
    order,
    line_items,
    assignments,
    owner_percentage: Decimal,
    now: datetime | None = None,
) -> list[BonusRecord]:
    """
    Split a completed order's revenue between the owner and the assigned workers.

    The worker pool is total * (100 - owner_percentage) / 100 rounded to cents; it
    is then divided between workers in proportion to their work_percentage, in
    integer cents, so the bonuses always add up to the pool exactly. Whatever is
    not paid out (including the whole total when nobody is assigned) is the
    owner's share.

    Work percentages that do not sum to 100 are renormalized by their sum.
    Pure function: nothing is read from or written to the database.
    """
    owner_percentage = Decimal(owner_percentage)
    if owner_percentage < 0 or owner_percentage > HUNDRED:
        raise InvalidInput(f"Owner percentage {owner_percentage} is outside 0-100")

    weights = _work_weights(assignments)
    if not weights:
        return []

    weight_sum = sum(weights.values(), Decimal("0"))
    if weight_sum == 0:
        raise InconsistentPercentages("Work percentages of the assigned masters are all zero")
    if weight_sum != HUNDRED:
        logger.warning(
            f"Order {order.id}: work percentages sum to {weight_sum}, renormalizing to 100"
        )

    now = now or datetime.now(timezone.utc)
    worker_percentage = HUNDRED - owner_percentage
    pool = percent_of(order_total(line_items), worker_percentage)
    shares = compute_weighted_shares(pool, weights, seed=str(order.id))

    return [
        BonusRecord(
            master_id=master_id,
            order_id=order.id,
            amount=shares[master_id],
            percentage=worker_percentage,
            work_percentage=weights[master_id],
            date=now,
        )
        for master_id in weights
    ]


def owner_share_amount(total: Decimal, bonuses: list[BonusRecord]) -> Decimal:
    return quantize_money(total - sum((b.amount for b in bonuses), Decimal("0")))


async def _has_allocation(db: AsyncSession, order_id: uuid.UUID) -> bool:
    bonus_count = await db.execute(
        select(func.count(Bonus.id)).where(
            Bonus.order_id == order_id,
            Bonus.source == BonusSource.allocation,
        )
    )
    owner_count = await db.execute(
        select(func.count(OwnerShare.id)).where(OwnerShare.order_id == order_id)
    )
    return bool(bonus_count.scalar_one() or owner_count.scalar_one())


async def complete_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    now: datetime | None = None,
) -> list[Bonus] | None:
    """
    Move an order into `completed` and persist its bonus allocation.

    Everything happens in one transaction: the status compare-and-set, the bonus
    rows, the owner share and the order total either all commit or none do.
    Returns None if the order does not exist.
    """
    now = now or datetime.now(timezone.utc)

    # Compare-and-set: only one concurrent request can win the transition
    stmt = (
        update(Order)
        .where(Order.id == order_id, Order.status.in_(COMPLETABLE_STATUSES))
        .values(status=OrderStatus.completed, completed_at=now, version=Order.version + 1)
        .returning(Order.id)
    )
    try:
        result = await db.execute(stmt)
        if result.scalar_one_or_none() is None:
            await db.rollback()
            current = await db.execute(select(Order.status).where(Order.id == order_id))
            status = current.scalar_one_or_none()
            if status is None:
                return None
            ensure_transition(status, OrderStatus.completed)
            raise InvalidTransition(status, OrderStatus.completed, "Order status changed concurrently")

        if await _has_allocation(db, order_id):
            raise DuplicateAllocation(f"Order {order_id} already has bonus records")

        order = await db.get(Order, order_id)

        items_result = await db.execute(select(OrderItem).where(OrderItem.order_id == order_id))
        line_items = list(items_result.scalars().all())

        assignments_result = await db.execute(
            select(
                OrderAssignment.master_id,
                OrderAssignment.work_percentage,
                Master.is_active,
            )
            .select_from(OrderAssignment)
            .outerjoin(Master, Master.id == OrderAssignment.master_id)
            .where(OrderAssignment.order_id == order_id)
        )
        assignments = assignments_result.all()

        unavailable = [str(a.master_id) for a in assignments if not a.is_active]
        if unavailable:
            raise InvalidInput(f"Masters not found or inactive: {', '.join(unavailable)}")

        owner_percentage = await get_owner_percentage(db)
        records = allocate(order, line_items, assignments, owner_percentage, now=now)
        total = order_total(line_items)

        bonuses = [
            Bonus(
                master_id=r.master_id,
                order_id=r.order_id,
                amount=r.amount,
                percentage=r.percentage,
                work_percentage=r.work_percentage,
                source=BonusSource.allocation,
                date=r.date,
            )
            for r in records
        ]
        if bonuses:
            db.add_all(bonuses)
        db.add(OwnerShare(
            order_id=order_id,
            amount=owner_share_amount(total, records),
            percentage=owner_percentage,
            date=now,
        ))
        await db.execute(update(Order).where(Order.id == order_id).values(total_amount=total))
        await db.commit()
    except AllocationError:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        raise DuplicateAllocation(f"Order {order_id} was allocated concurrently") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Completing order {order_id} failed, rolled back: {e}")
        raise PersistenceFailure(f"Could not complete order {order_id}") from e

    logger.info(
        f"Order {order_id} completed: total={total}, owner_percentage={owner_percentage}, "
        f"bonuses={len(bonuses)}"
    )
    return bonuses
