import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# ─── Allocations ───────────────────────────────────────────────────────────

class SpendingAllocationIn(BaseModel):
    config_id: uuid.UUID
    config_title: str
    allocated_amount: Decimal = Field(ge=0)
    # Accepted for round-tripping the edit screen; always recomputed server-side
    percentage: Decimal | None = None
    description: str | None = None


class SpendingAllocationOut(BaseModel):
    config_id: str
    config_title: str
    allocated_amount: Decimal
    percentage: Decimal
    description: str | None = None


# ─── Requests ──────────────────────────────────────────────────────────────

class ReportGenerate(BaseModel):
    property_id: uuid.UUID
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)
    notes: str | None = None  # None keeps existing notes, "" clears them
    spending_allocations: list[SpendingAllocationIn] | None = None


class ReportUpdate(BaseModel):
    # Omitted fields are left untouched (see model_fields_set in the router)
    notes: str | None = None
    spending_allocations: list[SpendingAllocationIn] | None = None


# ─── Responses ─────────────────────────────────────────────────────────────

class PropertyInReport(BaseModel):
    id: uuid.UUID
    name: str
    address: str

    model_config = {"from_attributes": True}


class MonthlyReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    property_id: uuid.UUID
    property: PropertyInReport | None = None
    report_month: date
    generated_by_user_id: uuid.UUID
    total_budget: Decimal
    total_tenants: int
    paid_tenants: int
    pending_amount: Decimal
    spending_breakdown: list[SpendingAllocationOut]
    notes: str | None
    created_at: datetime
    updated_at: datetime


class ReportPaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_id: uuid.UUID | None = None
    tenant_id: uuid.UUID
    tenant_name: str | None = None
    tenant_email: str | None = None
    amount: Decimal
    status: str
    payment_date: date | None = None


class SpendingCategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: str | None = None


class ReportGenerateResponse(BaseModel):
    created: bool
    message: str
    report: MonthlyReportResponse


class ReportDetailResponse(BaseModel):
    report: MonthlyReportResponse
    payments: list[ReportPaymentResponse]


class ReportPreviewResponse(BaseModel):
    property: PropertyInReport
    report_month: date
    total_tenants: int
    paid_tenants: int
    total_budget: Decimal
    pending_amount: Decimal
    spending_configs: list[SpendingCategoryResponse]
    payments: list[ReportPaymentResponse]
