import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.auth import get_current_user, require_manager
from autocrm.core.database import get_db
from autocrm.models.master import Master
from autocrm.services.master_service import get_master
from autocrm.services.stats_service import (
    Period, get_general_stats, get_dashboard_stats, get_master_period_stats,
)

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/general")
async def general(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    user: Master = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    return await get_general_stats(db, date_from=date_from, date_to=date_to)


@router.get("/dashboard")
async def dashboard(
    period: Period = Query(default=Period.month),
    user: Master = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    return await get_dashboard_stats(db, period)


@router.get("/master/{master_id}")
async def master(
    master_id: uuid.UUID,
    period: Period = Query(default=Period.month),
    user: Master = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not user.is_manager and user.id != master_id:
        raise HTTPException(status_code=403, detail="Access denied")
    if not await get_master(db, master_id):
        raise HTTPException(status_code=404, detail="Master not found")
    return await get_master_period_stats(db, master_id, period)
