import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.auth import get_current_user, require_manager
from autocrm.core.database import get_db
from autocrm.models.master import Master
from autocrm.schemas.master import (
    MasterCreate, MasterUpdate, MasterResponse, MasterListResponse, MasterStatsResponse,
)
from autocrm.services.master_service import (
    list_masters, get_master, create_master, update_master, delete_master, get_master_stats,
)

router = APIRouter(prefix="/api/masters", tags=["masters"])


def _ensure_self_or_manager(user: Master, master_id: uuid.UUID) -> None:
    if not user.is_manager and user.id != master_id:
        raise HTTPException(status_code=403, detail="Access denied")


@router.get("", response_model=MasterListResponse)
async def list_all(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    user: Master = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    total, masters = await list_masters(db, page=page, limit=limit, search=search, is_active=is_active)
    return MasterListResponse(
        total=total, page=page, limit=limit,
        items=[MasterResponse.model_validate(m) for m in masters],
    )


@router.get("/{master_id}", response_model=MasterResponse)
async def get(
    master_id: uuid.UUID,
    user: Master = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _ensure_self_or_manager(user, master_id)
    master = await get_master(db, master_id)
    if not master:
        raise HTTPException(status_code=404, detail="Master not found")
    return master


@router.post("", response_model=MasterResponse, status_code=201)
async def create(
    body: MasterCreate,
    user: Master = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await create_master(db, body.full_name, body.phone, body.password, role=body.role)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/{master_id}", response_model=MasterResponse)
async def update(
    master_id: uuid.UUID,
    body: MasterUpdate,
    user: Master = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    try:
        master = await update_master(db, master_id, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not master:
        raise HTTPException(status_code=404, detail="Master not found")
    return master


@router.delete("/{master_id}", response_model=MasterResponse)
async def delete(
    master_id: uuid.UUID,
    user: Master = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    try:
        master = await delete_master(db, master_id)
    except ValueError as e:
        raise HTTPException(status_code=403, detail=str(e))
    if not master:
        raise HTTPException(status_code=404, detail="Master not found")
    return master


@router.get("/{master_id}/stats", response_model=MasterStatsResponse)
async def stats(
    master_id: uuid.UUID,
    user: Master = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _ensure_self_or_manager(user, master_id)
    if not await get_master(db, master_id):
        raise HTTPException(status_code=404, detail="Master not found")
    return await get_master_stats(db, master_id)
