import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from apartment_manager.core.database import Base
from apartment_manager.models.property import Property


class MonthlyReport(Base):
    __tablename__ = "monthly_reports"
    __table_args__ = (
        # One report per property and month; the upsert targets this constraint
        UniqueConstraint("property_id", "report_month", name="uq_monthly_reports_property_month"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"), index=True
    )
    report_month: Mapped[date] = mapped_column(Date, index=True)  # first day of the month
    generated_by_user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    total_budget: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    total_tenants: Mapped[int] = mapped_column(Integer, default=0)
    paid_tenants: Mapped[int] = mapped_column(Integer, default=0)
    pending_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    # Snapshot of allocations, frozen by value: list of
    # {config_id, config_title, allocated_amount, percentage, description}
    spending_breakdown: Mapped[list[dict]] = mapped_column(
        JSONB, default=list, server_default=text("'[]'::jsonb")
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=text("now()"),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # selectin: lazy loads are not allowed under AsyncSession
    property: Mapped[Property] = relationship(lazy="selectin")
