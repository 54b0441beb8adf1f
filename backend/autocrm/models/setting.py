from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Integer, Numeric, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from autocrm.core.database import Base


class Setting(Base):
    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("50"))
    company_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    company_address: Mapped[str] = mapped_column(String, nullable=False, default="")
    company_phone: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="RUB")
    work_time_start: Mapped[str] = mapped_column(String(5), nullable=False, default="09:00")
    work_time_end: Mapped[str] = mapped_column(String(5), nullable=False, default="18:00")
    working_days: Mapped[list] = mapped_column(JSONB, nullable=False, default=lambda: [1, 2, 3, 4, 5])
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
