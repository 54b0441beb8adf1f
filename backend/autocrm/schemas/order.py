import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from autocrm.models.order import ItemKind, OrderStatus


class OrderItemInput(BaseModel):
    kind: ItemKind
    name: str = Field(min_length=1, max_length=100)
    price: Decimal = Field(ge=0)
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    seller_id: uuid.UUID | None = None


class AssignmentInput(BaseModel):
    master_id: uuid.UUID
    # Omitted percentages share the remainder of 100 evenly
    work_percentage: Decimal | None = Field(default=None, ge=0, le=100, decimal_places=2)


class OrderCreate(BaseModel):
    client_name: str = Field(min_length=1, max_length=100)
    client_phone: str = Field(min_length=1, max_length=20)
    car_model: str = Field(min_length=1, max_length=100)
    car_number: str = Field(min_length=1, max_length=20)
    car_year: int | None = Field(default=None, ge=1900, le=2100)
    problem_description: str | None = None
    assignments: list[AssignmentInput] = Field(min_length=1)
    items: list[OrderItemInput] = []


class OrderUpdate(BaseModel):
    client_name: str | None = Field(default=None, min_length=1, max_length=100)
    client_phone: str | None = Field(default=None, min_length=1, max_length=20)
    car_model: str | None = Field(default=None, min_length=1, max_length=100)
    car_number: str | None = Field(default=None, min_length=1, max_length=20)
    car_year: int | None = Field(default=None, ge=1900, le=2100)
    problem_description: str | None = None
    assignments: list[AssignmentInput] | None = Field(default=None, min_length=1)
    items: list[OrderItemInput] | None = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    kind: ItemKind
    name: str
    price: Decimal
    quantity: Decimal
    amount: Decimal
    seller_id: uuid.UUID | None
    sort_order: int


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    master_id: uuid.UUID
    master_name: str | None = None
    work_percentage: Decimal


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: uuid.UUID
    client_name: str
    client_phone: str
    car_model: str
    car_number: str
    car_year: int | None
    problem_description: str | None
    status: OrderStatus
    total_amount: Decimal
    created_by: uuid.UUID
    version: int
    created_at: datetime
    completed_at: datetime | None
    items: list[OrderItemResponse] = []
    assignments: list[AssignmentResponse] = []


class OrderListResponse(BaseModel):
    total: int
    page: int
    limit: int
    items: list[OrderResponse]
