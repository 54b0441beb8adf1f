from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class SettingUpdate(BaseModel):
    owner_percentage: Decimal | None = Field(default=None, ge=0, le=100)
    company_name: str | None = Field(default=None, max_length=100)
    company_address: str | None = None
    company_phone: str | None = Field(default=None, max_length=20)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    work_time_start: str | None = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    work_time_end: str | None = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    working_days: list[int] | None = None


class SettingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    owner_percentage: Decimal
    company_name: str
    company_address: str
    company_phone: str
    currency: str
    work_time_start: str
    work_time_end: str
    working_days: list[int]
    updated_at: datetime | None = None


class CompanyInfoResponse(BaseModel):
    company_name: str
    company_address: str
    company_phone: str
    currency: str
    work_time_start: str
    work_time_end: str
    working_days: list[int]
