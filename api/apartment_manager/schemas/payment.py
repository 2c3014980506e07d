import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from apartment_manager.models.payment import PaymentStatus


class PaymentUpdate(BaseModel):
    status: PaymentStatus | None = None
    amount: Decimal | None = Field(default=None, ge=0)
    payment_date: date | None = None
    notes: str | None = None


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tenant_id: uuid.UUID
    property_id: uuid.UUID
    payment_month: date
    amount: Decimal
    status: str
    payment_date: date | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
