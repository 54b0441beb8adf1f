from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.auth import require_manager
from autocrm.core.database import get_db
from autocrm.models.master import Master
from autocrm.schemas.setting import SettingUpdate, SettingResponse, CompanyInfoResponse
from autocrm.services.setting_service import get_settings, update_settings, get_company_info

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=SettingResponse)
async def read(
    user: Master = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    return await get_settings(db)


@router.put("", response_model=SettingResponse)
async def update(
    body: SettingUpdate,
    user: Master = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    """Changes apply to orders completed from now on; past bonuses are untouched."""
    return await update_settings(db, body.model_dump(exclude_unset=True))


@router.get("/company", response_model=CompanyInfoResponse)
async def company(db: AsyncSession = Depends(get_db)):
    return await get_company_info(db)
