import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from autocrm.models.bonus import BonusSource


class BonusCreate(BaseModel):
    master_id: uuid.UUID
    order_id: uuid.UUID
    amount: Decimal
    description: str | None = None
    date: datetime | None = None


class BonusUpdate(BaseModel):
    amount: Decimal | None = None
    description: str | None = None
    date: datetime | None = None


class BonusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    master_id: uuid.UUID
    master_name: str | None = None
    order_id: uuid.UUID
    amount: Decimal
    percentage: Decimal
    work_percentage: Decimal | None
    source: BonusSource
    description: str | None
    date: datetime
    created_at: datetime


class BonusListResponse(BaseModel):
    total: int
    page: int
    limit: int
    items: list[BonusResponse]


class StatusBucket(BaseModel):
    count: int
    amount: Decimal


class BonusStatsResponse(BaseModel):
    total_bonuses: int
    total_amount: Decimal
    average_amount: Decimal
    by_order_status: dict[str, StatusBucket]
