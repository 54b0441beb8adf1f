import uuid
import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from autocrm.models.bonus import Bonus
from autocrm.models.master import Master
from autocrm.models.order import Order, OrderItem, OrderAssignment, OrderStatus, ItemKind
from autocrm.services.allocation_service import complete_order, order_total
from autocrm.services.errors import (
    InvalidInput, InconsistentPercentages, InvalidTransition, OrderLocked,
)
from autocrm.services.order_status import ensure_transition
from autocrm.utils.money import CENT, HUNDRED, compute_shares

logger = logging.getLogger(__name__)

ORDER_FIELDS = (
    "client_name", "client_phone", "car_model", "car_number",
    "car_year", "problem_description",
)

NULLABLE_FIELDS = ("car_year", "problem_description")

EDITABLE_STATUSES = (OrderStatus.pending, OrderStatus.in_progress, OrderStatus.cancelled)


def _order_load_options():
    return [
        selectinload(Order.items),
        selectinload(Order.assignments).selectinload(OrderAssignment.master),
    ]


def resolve_work_percentages(assignments: list[dict]) -> dict[uuid.UUID, Decimal]:
    """
    Turn the submitted assignments into {master_id: work_percentage}.

    Masters submitted without a percentage share whatever is left of 100 evenly
    (to the cent, the leftover cent going to a deterministic master). The final
    set must add up to exactly 100.
    """
    if not assignments:
        raise InvalidInput("At least one master must be assigned to the order")

    explicit: dict[uuid.UUID, Decimal] = {}
    implicit: list[uuid.UUID] = []
    for a in assignments:
        master_id = a["master_id"]
        if master_id in explicit or master_id in implicit:
            raise InvalidInput(f"Master {master_id} is assigned more than once")
        pct = a.get("work_percentage")
        if pct is None:
            implicit.append(master_id)
            continue
        pct = Decimal(pct)
        if pct < 0 or pct > HUNDRED:
            raise InvalidInput(f"Work percentage {pct} is outside 0-100")
        # order_assignments.work_percentage is stored with two decimals
        if pct != pct.quantize(CENT):
            raise InvalidInput(f"Work percentage {pct} has more than two decimal places")
        explicit[master_id] = pct

    remainder = HUNDRED - sum(explicit.values(), Decimal("0"))
    if implicit:
        if remainder < 0:
            raise InconsistentPercentages(
                f"Work percentages exceed 100 by {-remainder} before the unset ones are filled"
            )
        explicit.update(compute_shares(remainder, implicit, seed="work_percentage"))
    elif remainder != 0:
        raise InconsistentPercentages(
            f"Work percentages must sum to 100, got {HUNDRED - remainder}"
        )

    return {a["master_id"]: explicit[a["master_id"]] for a in assignments}


def build_items(items: list[dict]) -> list[OrderItem]:
    built = []
    for sort, item in enumerate(items or []):
        kind = ItemKind(item["kind"])
        quantity = Decimal(item.get("quantity") or 1)
        if kind == ItemKind.labor:
            quantity = Decimal("1")
        if Decimal(item["price"]) < 0 or quantity <= 0:
            raise InvalidInput(f"Item '{item['name']}' has a negative price or non-positive quantity")
        built.append(OrderItem(
            kind=kind,
            name=item["name"],
            price=Decimal(item["price"]),
            quantity=quantity,
            seller_id=item.get("seller_id") if kind == ItemKind.part else None,
            sort_order=sort,
        ))
    return built


async def _ensure_active_masters(db: AsyncSession, master_ids) -> None:
    ids = set(master_ids)
    if not ids:
        return
    result = await db.execute(
        select(Master.id).where(Master.id.in_(ids), Master.is_active.is_(True))
    )
    found = set(result.scalars().all())
    missing = ids - found
    if missing:
        raise InvalidInput(
            f"Masters not found or inactive: {', '.join(sorted(str(m) for m in missing))}"
        )


def can_view_order(order: Order, viewer: Master) -> bool:
    if viewer.is_manager:
        return True
    return any(a.master_id == viewer.id for a in order.assignments)


async def list_orders(
    db: AsyncSession,
    viewer: Master,
    page: int = 1,
    limit: int = 20,
    status: OrderStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    search: str | None = None,
) -> tuple[int, list[Order]]:
    query = select(Order)
    if not viewer.is_manager:
        query = query.where(
            Order.id.in_(select(OrderAssignment.order_id).where(OrderAssignment.master_id == viewer.id))
        )
    if status is not None:
        query = query.where(Order.status == status)
    if date_from is not None:
        query = query.where(Order.created_at >= datetime.combine(date_from, time.min, tzinfo=timezone.utc))
    if date_to is not None:
        # date_to is inclusive
        end = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
        query = query.where(Order.created_at < end)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            Order.client_name.ilike(pattern),
            Order.client_phone.ilike(pattern),
            Order.car_model.ilike(pattern),
            Order.car_number.ilike(pattern),
        ))

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar_one()

    result = await db.execute(
        query.options(*_order_load_options())
        .order_by(Order.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return total, list(result.scalars().all())


async def get_order(db: AsyncSession, order_id: uuid.UUID) -> Order | None:
    result = await db.execute(
        select(Order).options(*_order_load_options()).where(Order.id == order_id)
        # Status and version may have been changed by a Core UPDATE in this session
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_order(db: AsyncSession, data: dict, creator: Master) -> Order:
    percentages = resolve_work_percentages(data.get("assignments") or [])
    await _ensure_active_masters(db, percentages.keys())

    items = build_items(data.get("items") or [])
    await _ensure_active_masters(db, [i.seller_id for i in items if i.seller_id])

    order = Order(
        **{field: data.get(field) for field in ORDER_FIELDS},
        status=OrderStatus.pending,
        created_by=creator.id,
        total_amount=order_total(items),
        version=1,
    )
    order.items = items
    order.assignments = [
        OrderAssignment(master_id=master_id, work_percentage=pct)
        for master_id, pct in percentages.items()
    ]
    db.add(order)
    await db.commit()

    logger.info(f"Order {order.id} created by {creator.id} with {len(percentages)} master(s)")
    return await get_order(db, order.id)


async def update_order(db: AsyncSession, order_id: uuid.UUID, data: dict) -> Order | None:
    """
    Apply a partial update. Items and assignments, when present in `data`,
    replace the existing ones wholesale. Status is never changed here.
    """
    order = await get_order(db, order_id)
    if not order:
        return None
    if order.status == OrderStatus.completed:
        raise OrderLocked("Completed orders cannot be edited")

    percentages = None
    if data.get("assignments") is not None:
        percentages = resolve_work_percentages(data["assignments"])
        await _ensure_active_masters(db, percentages.keys())

    items = None
    if data.get("items") is not None:
        items = build_items(data["items"])
        await _ensure_active_masters(db, [i.seller_id for i in items if i.seller_id])

    for field in ORDER_FIELDS:
        if field in data and (data[field] is not None or field in NULLABLE_FIELDS):
            setattr(order, field, data[field])

    # Flush the orphan deletes first so (order_id, master_id) can be reused
    if percentages is not None:
        order.assignments.clear()
    if items is not None:
        order.items.clear()
    await db.flush()

    if percentages is not None:
        order.assignments.extend(
            OrderAssignment(master_id=master_id, work_percentage=pct)
            for master_id, pct in percentages.items()
        )
    if items is not None:
        order.items.extend(items)
        order.total_amount = order_total(items)

    # The order may have been completed by another request since it was read
    guard = await db.execute(
        update(Order)
        .where(Order.id == order_id, Order.status.in_(EDITABLE_STATUSES))
        .values(version=Order.version + 1)
        .returning(Order.version)
    )
    new_version = guard.scalar_one_or_none()
    if new_version is None:
        await db.rollback()
        raise OrderLocked("Order was completed while being edited")

    await db.commit()
    await db.refresh(order)
    return order


async def delete_order(db: AsyncSession, order_id: uuid.UUID) -> bool:
    result = await db.execute(select(Order.status).where(Order.id == order_id))
    current = result.scalar_one_or_none()
    if current is None:
        return False
    if current == OrderStatus.completed:
        raise OrderLocked("Completed orders cannot be deleted")

    # Manual bonuses may reference a not yet completed order
    await db.execute(delete(Bonus).where(Bonus.order_id == order_id))
    deleted = await db.execute(
        delete(Order)
        .where(Order.id == order_id, Order.status != OrderStatus.completed)
        .returning(Order.id)
    )
    if deleted.scalar_one_or_none() is None:
        await db.rollback()
        raise OrderLocked("Order was completed while being deleted")

    await db.commit()
    logger.info(f"Order {order_id} deleted")
    return True


async def change_order_status(
    db: AsyncSession, order_id: uuid.UUID, target: OrderStatus
) -> Order | None:
    """
    Move an order along the status state machine. Entering `completed` runs the
    bonus allocation; every other move is a compare-and-set on the current status.
    """
    target = OrderStatus(target)
    if target == OrderStatus.completed:
        bonuses = await complete_order(db, order_id)
        if bonuses is None:
            return None
        return await get_order(db, order_id)

    result = await db.execute(select(Order.status).where(Order.id == order_id))
    current = result.scalar_one_or_none()
    if current is None:
        return None
    if current == target:
        return await get_order(db, order_id)
    ensure_transition(current, target)

    cas = await db.execute(
        update(Order)
        .where(Order.id == order_id, Order.status == current)
        .values(status=target, version=Order.version + 1)
        .returning(Order.id)
    )
    if cas.scalar_one_or_none() is None:
        await db.rollback()
        raise InvalidTransition(current, target, "Order status changed concurrently")
    await db.commit()

    logger.info(f"Order {order_id} status {current.value} -> {target.value}")
    return await get_order(db, order_id)
