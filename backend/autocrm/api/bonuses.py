import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.auth import get_current_user, require_manager, require_roles
from autocrm.core.database import get_db
from autocrm.models.bonus import BonusSource
from autocrm.models.master import Master, MasterRole
from autocrm.schemas.bonus import (
    BonusCreate, BonusUpdate, BonusResponse, BonusListResponse, BonusStatsResponse,
)
from autocrm.services.bonus_service import (
    list_bonuses, get_bonus, create_manual_bonus, update_bonus, delete_bonus, get_bonus_stats,
)

router = APIRouter(prefix="/api/bonuses", tags=["bonuses"])


@router.get("", response_model=BonusListResponse)
async def list_all(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    master_id: Optional[uuid.UUID] = Query(None),
    order_id: Optional[uuid.UUID] = Query(None),
    source: Optional[BonusSource] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    user: Master = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    total, bonuses = await list_bonuses(
        db, page=page, limit=limit, master_id=master_id, order_id=order_id,
        source=source, date_from=date_from, date_to=date_to,
    )
    return BonusListResponse(
        total=total, page=page, limit=limit,
        items=[BonusResponse.model_validate(b) for b in bonuses],
    )


@router.get("/my-bonuses", response_model=BonusListResponse)
async def list_mine(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    user: Master = Depends(require_roles(MasterRole.master)),
    db: AsyncSession = Depends(get_db),
):
    total, bonuses = await list_bonuses(
        db, page=page, limit=limit, master_id=user.id, date_from=date_from, date_to=date_to,
    )
    return BonusListResponse(
        total=total, page=page, limit=limit,
        items=[BonusResponse.model_validate(b) for b in bonuses],
    )


@router.get("/stats", response_model=BonusStatsResponse)
async def stats(
    master_id: Optional[uuid.UUID] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    user: Master = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    # Masters only ever see their own numbers
    if not user.is_manager:
        master_id = user.id
    return await get_bonus_stats(db, master_id=master_id, date_from=date_from, date_to=date_to)


@router.get("/{bonus_id}", response_model=BonusResponse)
async def get(
    bonus_id: uuid.UUID,
    user: Master = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    bonus = await get_bonus(db, bonus_id)
    if not bonus:
        raise HTTPException(status_code=404, detail="Bonus not found")
    if not user.is_manager and bonus.master_id != user.id:
        raise HTTPException(status_code=403, detail="Access denied")
    return bonus


@router.post("", response_model=BonusResponse, status_code=201)
async def create(
    body: BonusCreate,
    user: Master = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await create_manual_bonus(
            db, body.master_id, body.order_id, body.amount,
            description=body.description, bonus_date=body.date,
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{bonus_id}", response_model=BonusResponse)
async def update(
    bonus_id: uuid.UUID,
    body: BonusUpdate,
    user: Master = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    try:
        bonus = await update_bonus(db, bonus_id, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not bonus:
        raise HTTPException(status_code=404, detail="Bonus not found")
    return bonus


@router.delete("/{bonus_id}", status_code=204)
async def delete(
    bonus_id: uuid.UUID,
    user: Master = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    try:
        deleted = await delete_bonus(db, bonus_id)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Bonus not found")
