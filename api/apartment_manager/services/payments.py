"""Monthly tenant payment seeding.

Celery beat runs `generate_month_payments` on the 1st of every month (00:30
UTC). Every active tenant with a positive `monthly_rate` gets one `pending`
payment per property they live in for the current period. Rows that already
exist are left alone, so running the task twice in a month is harmless.
"""

import logging
import uuid
from collections.abc import Iterable
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import create_engine, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.orm import Session

from apartment_manager.core.config import settings
from apartment_manager.models.payment import PaymentStatus, TenantPayment
from apartment_manager.models.property import property_tenants
from apartment_manager.models.user import User, UserRole
from apartment_manager.services.report_engine import canonical_period
from apartment_manager.worker import celery_app

logger = logging.getLogger(__name__)

_engine = create_engine(settings.database_url_sync, pool_pre_ping=True)


def current_period(today: date | None = None) -> date:
    today = today or datetime.now(timezone.utc).date()
    return canonical_period(today.month, today.year)


def payment_rows(
    tenancies: Iterable[tuple[uuid.UUID, uuid.UUID, Decimal | None]], period: date
) -> list[dict]:
    """(tenant_id, property_id, monthly_rate) triples → tenant_payments rows for `period`."""
    rows = []
    for tenant_id, property_id, rate in tenancies:
        if rate is None or rate <= 0:
            continue
        rows.append({
            "id": uuid.uuid4(),
            "tenant_id": tenant_id,
            "property_id": property_id,
            "payment_month": period,
            "amount": rate,
            "status": PaymentStatus.pending.value,
        })
    return rows


def seed_month_payments(db: Session, period: date) -> int:
    """Insert missing payments for `period`; returns how many rows were created."""
    tenancies = db.execute(
        select(User.id, property_tenants.c.property_id, User.monthly_rate)
        .join(property_tenants, property_tenants.c.user_id == User.id)
        .where(
            User.role == UserRole.tenant.value,
            User.is_active == True,  # noqa: E712
            User.monthly_rate > 0,
        )
    ).all()

    rows = payment_rows(tenancies, period)
    if not rows:
        return 0

    stmt = (
        pg_insert(TenantPayment)
        .values(rows)
        .on_conflict_do_nothing(constraint="uq_tenant_property_month")
        .returning(TenantPayment.id)
    )
    created = len(db.execute(stmt).all())
    db.commit()
    return created


@celery_app.task(name="apartment_manager.services.payments.generate_month_payments")
def generate_month_payments():
    """Create this month's pending payments for every paying tenant (runs 1st, 00:30 UTC)."""
    if not settings.payment_seeding_enabled:
        logger.info("Payment seeding disabled; skipping")
        return 0

    period = current_period()
    logger.info("Generating tenant payments for %s", period.isoformat())

    with Session(_engine) as db:
        created = seed_month_payments(db, period)

    logger.info("Tenant payments for %s: %d created", period.isoformat(), created)
    return created
