import uuid
import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    String, Text, DateTime, Integer, Numeric, ForeignKey,
    Enum as SAEnum, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autocrm.core.database import Base


class OrderStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class ItemKind(str, enum.Enum):
    labor = "labor"
    material = "material"
    part = "part"


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    client_name: Mapped[str] = mapped_column(String(100), nullable=False)
    client_phone: Mapped[str] = mapped_column(String(20), nullable=False)
    car_model: Mapped[str] = mapped_column(String(100), nullable=False)
    car_number: Mapped[str] = mapped_column(String(20), nullable=False)
    car_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    problem_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus), nullable=False, default=OrderStatus.pending, index=True
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    created_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("masters.id"), index=True, nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    items: Mapped[list["OrderItem"]] = relationship(back_populates="order", lazy="selectin", order_by="OrderItem.sort_order", cascade="all, delete-orphan")
    assignments: Mapped[list["OrderAssignment"]] = relationship(back_populates="order", lazy="selectin", cascade="all, delete-orphan")
    creator: Mapped["Master"] = relationship(lazy="selectin")


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    kind: Mapped[ItemKind] = mapped_column(SAEnum(ItemKind), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False, default=Decimal("1"))
    seller_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("masters.id"), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    order: Mapped["Order"] = relationship(back_populates="items")

    @property
    def amount(self) -> Decimal:
        if self.kind == ItemKind.labor:
            return self.price
        return self.price * self.quantity


class OrderAssignment(Base):
    __tablename__ = "order_assignments"
    __table_args__ = (UniqueConstraint("order_id", "master_id"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    master_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("masters.id"), index=True, nullable=False)
    work_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    order: Mapped["Order"] = relationship(back_populates="assignments")
    master: Mapped["Master"] = relationship(lazy="selectin")

    @property
    def master_name(self) -> str | None:
        return self.master.full_name if self.master else None
