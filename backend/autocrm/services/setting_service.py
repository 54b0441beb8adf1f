from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.config import settings as app_settings
from autocrm.models.setting import Setting

SETTINGS_ID = 1

COMPANY_FIELDS = (
    "company_name", "company_address", "company_phone", "currency",
    "work_time_start", "work_time_end", "working_days",
)


def _default_setting() -> Setting:
    return Setting(
        id=SETTINGS_ID,
        owner_percentage=app_settings.default_owner_percentage,
        company_name=app_settings.default_company_name,
        company_address="",
        company_phone="",
        currency=app_settings.default_currency,
        work_time_start="09:00",
        work_time_end="18:00",
        working_days=[1, 2, 3, 4, 5],
    )


async def get_settings(db: AsyncSession) -> Setting:
    """Return the single settings row, creating it with defaults on first use."""
    setting = await db.get(Setting, SETTINGS_ID)
    if setting:
        return setting

    db.add(_default_setting())
    try:
        await db.commit()
    except IntegrityError:
        # Another request created the row first
        await db.rollback()
    return await db.get(Setting, SETTINGS_ID)


async def update_settings(db: AsyncSession, data: dict) -> Setting:
    setting = await get_settings(db)
    for field, value in data.items():
        if value is not None:
            setattr(setting, field, value)
    await db.commit()
    await db.refresh(setting)
    return setting


async def get_owner_percentage(db: AsyncSession) -> Decimal:
    """
    Current owner percentage (0-100). Read-only, so it is safe inside an open
    transaction; falls back to the configured default when no row exists yet.
    """
    result = await db.execute(select(Setting.owner_percentage).where(Setting.id == SETTINGS_ID))
    value = result.scalar_one_or_none()
    if value is None:
        return Decimal(app_settings.default_owner_percentage)
    return Decimal(value)


async def get_company_info(db: AsyncSession) -> dict:
    setting = await get_settings(db)
    return {field: getattr(setting, field) for field in COMPANY_FIELDS}
