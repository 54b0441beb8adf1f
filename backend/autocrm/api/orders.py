import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.auth import get_current_user
from autocrm.core.database import get_db
from autocrm.models.master import Master
from autocrm.models.order import OrderStatus
from autocrm.schemas.order import (
    OrderCreate, OrderUpdate, OrderStatusUpdate, OrderResponse, OrderListResponse,
)
from autocrm.services.errors import (
    InvalidInput, InconsistentPercentages, DuplicateAllocation,
    InvalidTransition, OrderLocked, PersistenceFailure,
)
from autocrm.services.order_service import (
    list_orders, get_order, create_order, update_order, delete_order,
    change_order_status, can_view_order,
)

router = APIRouter(prefix="/api/orders", tags=["orders"])

ERROR_STATUS = (
    (InconsistentPercentages, 422),
    (InvalidInput, 400),
    (DuplicateAllocation, 409),
    (InvalidTransition, 409),
    (OrderLocked, 409),
    (PersistenceFailure, 503),
)


def to_http_error(e: Exception) -> HTTPException:
    for error_type, code in ERROR_STATUS:
        if isinstance(e, error_type):
            return HTTPException(status_code=code, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


async def _check_access(db: AsyncSession, order_id: uuid.UUID, user: Master) -> None:
    """Masters may only act on orders they are assigned to."""
    if user.is_manager:
        return
    order = await get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if not can_view_order(order, user):
        raise HTTPException(status_code=403, detail="Access denied")


@router.get("", response_model=OrderListResponse)
async def list_all(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
    user: Master = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    total, orders = await list_orders(
        db, user,
        page=page, limit=limit, status=status_filter,
        date_from=date_from, date_to=date_to, search=search,
    )
    return OrderListResponse(
        total=total, page=page, limit=limit,
        items=[OrderResponse.model_validate(o) for o in orders],
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get(
    order_id: uuid.UUID,
    user: Master = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    order = await get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if not can_view_order(order, user):
        raise HTTPException(status_code=403, detail="Access denied")
    return order


@router.post("", response_model=OrderResponse, status_code=201)
async def create(
    body: OrderCreate,
    user: Master = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await create_order(db, body.model_dump(), user)
    except (InvalidInput, InconsistentPercentages) as e:
        raise to_http_error(e)


@router.put("/{order_id}", response_model=OrderResponse)
async def update(
    order_id: uuid.UUID,
    body: OrderUpdate,
    user: Master = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _check_access(db, order_id, user)
    try:
        order = await update_order(db, order_id, body.model_dump(exclude_unset=True))
    except (InvalidInput, InconsistentPercentages, OrderLocked) as e:
        raise to_http_error(e)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.delete("/{order_id}", status_code=204)
async def delete(
    order_id: uuid.UUID,
    user: Master = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _check_access(db, order_id, user)
    try:
        deleted = await delete_order(db, order_id)
    except OrderLocked as e:
        raise to_http_error(e)
    if not deleted:
        raise HTTPException(status_code=404, detail="Order not found")


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def set_status(
    order_id: uuid.UUID,
    body: OrderStatusUpdate,
    user: Master = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _check_access(db, order_id, user)
    try:
        order = await change_order_status(db, order_id, body.status)
    except (InvalidInput, InconsistentPercentages, DuplicateAllocation,
            InvalidTransition, PersistenceFailure) as e:
        raise to_http_error(e)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order
