"""SQLAlchemy-backed collaborators for the ReportEngine.

Each adapter wraps one AsyncSession (the request's session from `get_db`).
Payment and category lookups turn database failures into UpstreamDataError;
the engine never retries.
"""

import logging
import uuid
from collections.abc import Sequence
from datetime import date
from typing import Any

from sqlalchemy import func, literal_column, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from apartment_manager.core.config import settings
from apartment_manager.models.monthly_report import MonthlyReport
from apartment_manager.models.payment import TenantPayment
from apartment_manager.models.property import property_managers, property_tenants
from apartment_manager.models.spending_config import PropertySpendingConfig, SpendingConfig
from apartment_manager.models.user import User, UserRole
from apartment_manager.services.errors import UpstreamDataError
from apartment_manager.services.report_engine import (
    PaymentRecord,
    ReportEngine,
    SpendingCategory,
    Summary,
)

logger = logging.getLogger(__name__)

# Columns refreshed when an existing (property, month) report is regenerated
_REGENERATED_COLUMNS = (
    "generated_by_user_id",
    "total_budget",
    "total_tenants",
    "paid_tenants",
    "pending_amount",
    "spending_breakdown",
)


class SqlPaymentSource:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_payments(self, property_id: Any, period: date) -> list[PaymentRecord]:
        try:
            result = await self.db.execute(
                select(TenantPayment, User.full_name, User.email)
                .join(User, TenantPayment.tenant_id == User.id)
                .where(
                    TenantPayment.property_id == property_id,
                    TenantPayment.payment_month == period,
                )
                .order_by(TenantPayment.status, TenantPayment.tenant_id)
            )
        except SQLAlchemyError as exc:
            logger.exception("Payment lookup failed for property %s (%s)", property_id, period)
            raise UpstreamDataError("Could not load tenant payments") from exc

        return [
            PaymentRecord(
                tenant_id=payment.tenant_id,
                amount=payment.amount,
                status=payment.status,
                payment_id=payment.id,
                tenant_name=full_name,
                tenant_email=email,
                payment_date=payment.payment_date,
            )
            for payment, full_name, email in result.all()
        ]

    async def count_tenants(self, property_id: Any) -> int:
        try:
            result = await self.db.execute(
                select(func.count())
                .select_from(property_tenants)
                .join(User, property_tenants.c.user_id == User.id)
                .where(
                    property_tenants.c.property_id == property_id,
                    User.role == UserRole.tenant.value,
                )
            )
        except SQLAlchemyError as exc:
            logger.exception("Tenant count failed for property %s", property_id)
            raise UpstreamDataError("Could not count tenants") from exc
        return int(result.scalar() or 0)


class SqlSpendingCategorySource:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_categories(self, property_id: Any) -> list[SpendingCategory]:
        try:
            result = await self.db.execute(
                select(SpendingConfig)
                .join(
                    PropertySpendingConfig,
                    PropertySpendingConfig.spending_config_id == SpendingConfig.id,
                )
                .where(PropertySpendingConfig.property_id == property_id)
                .order_by(PropertySpendingConfig.position, PropertySpendingConfig.created_at)
            )
        except SQLAlchemyError as exc:
            logger.exception("Spending category lookup failed for property %s", property_id)
            raise UpstreamDataError("Could not load spending categories") from exc

        return [
            SpendingCategory(id=c.id, title=c.title, description=c.description)
            for c in result.scalars().all()
        ]


class SqlReportStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_managed(self, report_id: Any, manager_id: Any) -> MonthlyReport | None:
        result = await self.db.execute(
            select(MonthlyReport)
            .join(
                property_managers,
                property_managers.c.property_id == MonthlyReport.property_id,
            )
            .where(
                MonthlyReport.id == report_id,
                property_managers.c.user_id == manager_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_for_tenant(self, report_id: Any, tenant_id: Any) -> MonthlyReport | None:
        result = await self.db.execute(
            select(MonthlyReport)
            .join(
                property_tenants,
                property_tenants.c.property_id == MonthlyReport.property_id,
            )
            .where(
                MonthlyReport.id == report_id,
                property_tenants.c.user_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        summary: Summary,
        *,
        generated_by_user_id: Any,
        spending_breakdown: list[dict],
        notes: str | None,
    ) -> tuple[MonthlyReport, bool]:
        """INSERT … ON CONFLICT DO UPDATE in one statement; returns (report, created)."""
        stmt = pg_insert(MonthlyReport).values(
            id=uuid.uuid4(),
            property_id=summary.property_id,
            report_month=summary.report_month,
            generated_by_user_id=generated_by_user_id,
            total_budget=summary.total_budget,
            total_tenants=summary.total_tenants,
            paid_tenants=summary.paid_tenants,
            pending_amount=summary.pending_amount,
            spending_breakdown=spending_breakdown,
            notes=notes,
        )
        update_set = {col: stmt.excluded[col] for col in _REGENERATED_COLUMNS}
        update_set["updated_at"] = func.now()
        if notes is not None:
            update_set["notes"] = stmt.excluded.notes

        stmt = stmt.on_conflict_do_update(
            constraint="uq_monthly_reports_property_month",
            set_=update_set,
        ).returning(
            MonthlyReport.id,
            # xmax is 0 only for a freshly inserted row version
            literal_column("(xmax = 0)").label("inserted"),
        )
        row = (await self.db.execute(stmt)).one()

        report = await self.db.get(MonthlyReport, row.id, populate_existing=True)
        return report, bool(row.inserted)

    async def save(self, report: MonthlyReport, changes: dict) -> MonthlyReport:
        for field, value in changes.items():
            setattr(report, field, value)
        await self.db.flush()
        await self.db.refresh(report)
        return report

    async def delete(self, report: MonthlyReport) -> None:
        await self.db.delete(report)
        await self.db.flush()

    async def list_for_properties(
        self,
        property_ids: Sequence[Any],
        *,
        start: date | None = None,
        end: date | None = None,
    ) -> list[MonthlyReport]:
        query = select(MonthlyReport).where(MonthlyReport.property_id.in_(property_ids))
        if start is not None and end is not None:
            query = query.where(MonthlyReport.report_month.between(start, end))
        result = await self.db.execute(
            query.order_by(MonthlyReport.report_month.desc(), MonthlyReport.property_id.asc())
        )
        return list(result.scalars().all())


def build_report_engine(db: AsyncSession) -> ReportEngine:
    return ReportEngine(
        SqlPaymentSource(db),
        SqlSpendingCategorySource(db),
        SqlReportStore(db),
        tolerance=settings.allocation_tolerance,
    )
