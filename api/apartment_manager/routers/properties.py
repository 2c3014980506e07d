import logging
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from apartment_manager.core.database import get_db
from apartment_manager.core.deps import get_managed_property, require_manager, require_roles
from apartment_manager.models.payment import TenantPayment
from apartment_manager.models.property import Property, property_managers
from apartment_manager.models.spending_config import PropertySpendingConfig, SpendingConfig
from apartment_manager.models.user import User, UserRole
from apartment_manager.schemas.payment import PaymentResponse
from apartment_manager.schemas.property import PropertyResponse
from apartment_manager.schemas.spending_config import (
    SpendingConfigAssign,
    SpendingConfigAssignResponse,
    SpendingConfigResponse,
)
from apartment_manager.services.report_engine import canonical_period

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/properties", tags=["properties"])


@router.get("/", response_model=list[PropertyResponse])
async def list_properties(
    user: User = Depends(require_roles(UserRole.property_manager, UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    query = select(Property).order_by(Property.name)
    if user.role != UserRole.admin.value:
        query = query.join(
            property_managers, property_managers.c.property_id == Property.id
        ).where(property_managers.c.user_id == user.id)
    result = await db.execute(query)
    return result.scalars().all()


# ─── Spending configs per property ───────────────────────────────────────────

@router.get("/{property_id}/spending-configs", response_model=list[SpendingConfigResponse])
async def list_property_spending_configs(
    prop: Property = Depends(get_managed_property),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(SpendingConfig)
        .join(
            PropertySpendingConfig,
            PropertySpendingConfig.spending_config_id == SpendingConfig.id,
        )
        .where(PropertySpendingConfig.property_id == prop.id)
        .order_by(PropertySpendingConfig.position, PropertySpendingConfig.created_at)
    )
    return result.scalars().all()


@router.put("/{property_id}/spending-configs", response_model=SpendingConfigAssignResponse)
async def assign_spending_configs(
    payload: SpendingConfigAssign,
    prop: Property = Depends(get_managed_property),
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    """Replace the property's categories with the given ones (own categories only)."""
    result = await db.execute(
        select(SpendingConfig.id).where(SpendingConfig.created_by_user_id == user.id)
    )
    own_ids = set(result.scalars().all())

    valid_ids: list[uuid.UUID] = []
    for config_id in payload.spending_config_ids:
        if config_id in own_ids and config_id not in valid_ids:
            valid_ids.append(config_id)

    await db.execute(
        delete(PropertySpendingConfig).where(PropertySpendingConfig.property_id == prop.id)
    )
    db.add_all(
        PropertySpendingConfig(property_id=prop.id, spending_config_id=config_id, position=i)
        for i, config_id in enumerate(valid_ids)
    )
    await db.flush()

    logger.info("Assigned %d spending configs to property %s", len(valid_ids), prop.id)
    return SpendingConfigAssignResponse(
        message="Spending configs assigned successfully",
        assigned_count=len(valid_ids),
    )


# ─── Payments per property ───────────────────────────────────────────────────

@router.get("/{property_id}/payments", response_model=list[PaymentResponse])
async def list_property_payments(
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=2000, le=2100),
    prop: Property = Depends(get_managed_property),
    db: AsyncSession = Depends(get_db),
):
    query = select(TenantPayment).where(TenantPayment.property_id == prop.id)
    if month is not None and year is not None:
        query = query.where(TenantPayment.payment_month == canonical_period(month, year))
    result = await db.execute(
        query.order_by(TenantPayment.payment_month.desc(), TenantPayment.status)
    )
    return result.scalars().all()
