import uuid
import logging
from decimal import Decimal

from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.auth import hash_password, verify_password
from autocrm.models.bonus import Bonus
from autocrm.models.master import Master, MasterRole, MANAGER_ROLES
from autocrm.models.order import Order, OrderAssignment, OrderStatus
from autocrm.utils.money import quantize_money

logger = logging.getLogger(__name__)


async def list_masters(
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
    search: str | None = None,
    is_active: bool | None = None,
) -> tuple[int, list[Master]]:
    query = select(Master)
    if is_active is not None:
        query = query.where(Master.is_active.is_(is_active))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(Master.full_name.ilike(pattern), Master.phone.ilike(pattern)))

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar_one()

    result = await db.execute(
        query.order_by(Master.full_name).offset((page - 1) * limit).limit(limit)
    )
    return total, list(result.scalars().all())


async def get_master(db: AsyncSession, master_id: uuid.UUID) -> Master | None:
    return await db.get(Master, master_id)


async def get_master_by_phone(db: AsyncSession, phone: str) -> Master | None:
    result = await db.execute(select(Master).where(Master.phone == phone))
    return result.scalar_one_or_none()


async def authenticate(db: AsyncSession, phone: str, password: str) -> Master | None:
    master = await get_master_by_phone(db, phone)
    if not master or not verify_password(password, master.password_hash):
        return None
    return master


async def create_master(
    db: AsyncSession,
    full_name: str,
    phone: str,
    password: str,
    role: MasterRole = MasterRole.master,
) -> Master:
    if await get_master_by_phone(db, phone):
        raise ValueError("A user with this phone number already exists")

    master = Master(
        full_name=full_name.strip(),
        phone=phone.strip(),
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.add(master)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValueError("A user with this phone number already exists")
    await db.refresh(master)
    logger.info(f"Master {master.id} ({role.value}) created")
    return master


async def update_master(db: AsyncSession, master_id: uuid.UUID, data: dict) -> Master | None:
    master = await db.get(Master, master_id)
    if not master:
        return None

    phone = data.get("phone")
    if phone and phone != master.phone:
        if await get_master_by_phone(db, phone):
            raise ValueError("A user with this phone number already exists")
        master.phone = phone.strip()
    if data.get("full_name"):
        master.full_name = data["full_name"].strip()
    if data.get("role") is not None:
        master.role = MasterRole(data["role"])
    if data.get("is_active") is not None:
        master.is_active = data["is_active"]
    if data.get("password"):
        master.password_hash = hash_password(data["password"])

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValueError("A user with this phone number already exists")
    await db.refresh(master)
    return master


async def change_password(db: AsyncSession, master: Master, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, master.password_hash):
        raise ValueError("Current password is incorrect")
    master.password_hash = hash_password(new_password)
    await db.commit()


async def delete_master(db: AsyncSession, master_id: uuid.UUID) -> Master | None:
    """
    Deactivate a master. Their assignments and bonuses stay in place so past
    orders and reports remain intact. Directors and admins cannot be removed.
    """
    master = await db.get(Master, master_id)
    if not master:
        return None
    if master.role in MANAGER_ROLES:
        raise ValueError("Directors and admins cannot be deleted")

    master.is_active = False
    await db.commit()
    await db.refresh(master)
    logger.info(f"Master {master_id} deactivated")
    return master


async def get_master_stats(db: AsyncSession, master_id: uuid.UUID) -> dict:
    """Order counts per status plus totals over the master's completed orders."""
    status_result = await db.execute(
        select(Order.status, func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0))
        .join(OrderAssignment, OrderAssignment.order_id == Order.id)
        .where(OrderAssignment.master_id == master_id)
        .group_by(Order.status)
    )
    by_status = {s.value: 0 for s in OrderStatus}
    total_orders = 0
    completed_amount = Decimal("0")
    for status, count, amount in status_result.all():
        by_status[OrderStatus(status).value] = count
        total_orders += count
        if OrderStatus(status) == OrderStatus.completed:
            completed_amount = Decimal(amount)

    bonus_result = await db.execute(
        select(func.coalesce(func.sum(Bonus.amount), 0)).where(Bonus.master_id == master_id)
    )
    bonus_total = Decimal(bonus_result.scalar_one())

    completed = by_status[OrderStatus.completed.value]
    average = quantize_money(completed_amount / completed) if completed else Decimal("0.00")

    return {
        "total_orders": total_orders,
        "orders_by_status": by_status,
        "total_amount": quantize_money(completed_amount),
        "average_amount": average,
        "total_bonuses": quantize_money(bonus_total),
    }
