import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from autocrm.models.master import MasterRole


class MasterCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=5, max_length=20)
    password: str = Field(min_length=6)
    role: MasterRole = MasterRole.master


class MasterUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(default=None, min_length=5, max_length=20)
    password: str | None = Field(default=None, min_length=6)
    role: MasterRole | None = None
    is_active: bool | None = None


class MasterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    full_name: str
    phone: str
    role: MasterRole
    is_active: bool
    created_at: datetime


class MasterListResponse(BaseModel):
    total: int
    page: int
    limit: int
    items: list[MasterResponse]


class MasterStatsResponse(BaseModel):
    total_orders: int
    orders_by_status: dict[str, int]
    total_amount: Decimal
    average_amount: Decimal
    total_bonuses: Decimal
