import uuid
import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, Text, ForeignKey, Index, Enum as SAEnum, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autocrm.core.database import Base


class BonusSource(str, enum.Enum):
    allocation = "allocation"
    manual = "manual"


class Bonus(Base):
    __tablename__ = "bonuses"
    __table_args__ = (
        # One allocation bonus per worker per order; manual adjustments are unrestricted.
        Index(
            "uq_bonuses_allocation_order_master",
            "order_id", "master_id",
            unique=True,
            postgresql_where=text("source = 'allocation'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    master_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("masters.id"), index=True, nullable=False)
    order_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("orders.id"), index=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    work_percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    source: Mapped[BonusSource] = mapped_column(SAEnum(BonusSource), nullable=False, default=BonusSource.manual)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    master: Mapped["Master"] = relationship(lazy="selectin")
    order: Mapped["Order"] = relationship(lazy="selectin")

    @property
    def master_name(self) -> str | None:
        return self.master.full_name if self.master else None


class OwnerShare(Base):
    """The owner's cut of a completed order. At most one row per order."""

    __tablename__ = "owner_shares"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("orders.id"), unique=True, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    order: Mapped["Order"] = relationship(lazy="noload")
