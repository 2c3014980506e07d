import logging
import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from apartment_manager.core.database import get_db
from apartment_manager.core.deps import require_manager, require_tenant
from apartment_manager.models.payment import PaymentStatus, TenantPayment
from apartment_manager.models.property import property_managers
from apartment_manager.models.user import User
from apartment_manager.schemas.payment import PaymentResponse, PaymentUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/me", response_model=list[PaymentResponse])
async def list_my_payments(
    user: User = Depends(require_tenant),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(TenantPayment)
        .where(TenantPayment.tenant_id == user.id)
        .order_by(TenantPayment.payment_month.desc())
    )
    return result.scalars().all()


@router.patch("/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    payment_id: uuid.UUID,
    payload: PaymentUpdate,
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(TenantPayment)
        .join(property_managers, property_managers.c.property_id == TenantPayment.property_id)
        .where(TenantPayment.id == payment_id, property_managers.c.user_id == user.id)
    )
    payment = result.scalar_one_or_none()
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")

    updates = payload.model_dump(exclude_unset=True)
    new_status = updates.pop("status", None)
    for field, value in updates.items():
        setattr(payment, field, value)

    if new_status is not None:
        new_status = PaymentStatus(new_status).value
        if new_status == PaymentStatus.paid.value:
            if payment.payment_date is None:
                payment.payment_date = date.today()
        elif "payment_date" not in updates:
            payment.payment_date = None
        payment.status = new_status

    await db.flush()
    await db.refresh(payment)
    logger.info("Payment %s updated by %s: status=%s", payment_id, user.id, payment.status)
    return payment
