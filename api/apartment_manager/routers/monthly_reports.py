"""
Monthly report router.
Endpoints:
  GET    /monthly-reports/preview?property_id=…&month=3&year=2026
  POST   /monthly-reports/generate
  GET    /monthly-reports/all?year=2026
  GET    /monthly-reports/property/{property_id}?year=2026
  GET    /monthly-reports/tenant/my-reports?year=2026
  GET    /monthly-reports/{report_id}
  PUT    /monthly-reports/{report_id}
  DELETE /monthly-reports/{report_id}
  GET    /monthly-reports/{report_id}/export
"""
import csv
import io
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from apartment_manager.core.database import get_db
from apartment_manager.core.deps import (
    get_current_user,
    get_managed_property,
    load_managed_property,
    managed_property_ids,
    require_manager,
    require_tenant,
    tenant_property_ids,
)
from apartment_manager.models.property import Property
from apartment_manager.models.user import User, UserRole
from apartment_manager.schemas.monthly_report import (
    MonthlyReportResponse,
    PropertyInReport,
    ReportDetailResponse,
    ReportGenerate,
    ReportGenerateResponse,
    ReportPaymentResponse,
    ReportPreviewResponse,
    ReportUpdate,
    SpendingAllocationIn,
    SpendingCategoryResponse,
)
from apartment_manager.services.report_engine import (
    UNSET,
    ReportEngine,
    SpendingAllocation,
    breakdown_of,
)
from apartment_manager.services.report_sources import build_report_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/monthly-reports", tags=["monthly-reports"])


def get_report_engine(db: AsyncSession = Depends(get_db)) -> ReportEngine:
    return build_report_engine(db)


def _to_allocations(items: list[SpendingAllocationIn] | None) -> list[SpendingAllocation] | None:
    if items is None:
        return None
    return [
        SpendingAllocation(
            config_id=item.config_id,
            config_title=item.config_title,
            allocated_amount=item.allocated_amount,
            description=item.description,
        )
        for item in items
    ]


# ─── Fixed paths (must be declared before /{report_id}) ──────────────────────

@router.get("/preview", response_model=ReportPreviewResponse)
async def preview_report(
    property_id: uuid.UUID = Query(...),
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
    engine: ReportEngine = Depends(get_report_engine),
):
    prop = await load_managed_property(property_id, user, db)
    preview = await engine.preview_report(property_id, month, year)
    summary = preview.summary
    return ReportPreviewResponse(
        property=PropertyInReport.model_validate(prop),
        report_month=summary.report_month,
        total_tenants=summary.total_tenants,
        paid_tenants=summary.paid_tenants,
        total_budget=summary.total_budget,
        pending_amount=summary.pending_amount,
        spending_configs=[SpendingCategoryResponse.model_validate(c) for c in preview.categories],
        payments=[ReportPaymentResponse.model_validate(p) for p in preview.payments],
    )


@router.post("/generate", response_model=ReportGenerateResponse)
async def generate_report(
    payload: ReportGenerate,
    response: Response,
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
    engine: ReportEngine = Depends(get_report_engine),
):
    await load_managed_property(payload.property_id, user, db)

    report, created = await engine.generate_report(
        payload.property_id,
        payload.month,
        payload.year,
        acting_user_id=user.id,
        notes=payload.notes,
        allocations=_to_allocations(payload.spending_allocations),
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ReportGenerateResponse(
        created=created,
        message="Report generated successfully" if created else "Report updated successfully",
        report=MonthlyReportResponse.model_validate(report),
    )


@router.get("/all", response_model=list[MonthlyReportResponse])
async def list_all_reports(
    year: int | None = Query(None, ge=2000, le=2100),
    user: User = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
    engine: ReportEngine = Depends(get_report_engine),
):
    property_ids = await managed_property_ids(db, user)
    return await engine.list_reports(property_ids, year)


@router.get("/property/{property_id}", response_model=list[MonthlyReportResponse])
async def list_property_reports(
    year: int | None = Query(None, ge=2000, le=2100),
    prop: Property = Depends(get_managed_property),
    engine: ReportEngine = Depends(get_report_engine),
):
    return await engine.list_reports([prop.id], year)


@router.get("/tenant/my-reports", response_model=list[MonthlyReportResponse])
async def list_tenant_reports(
    year: int | None = Query(None, ge=2000, le=2100),
    user: User = Depends(require_tenant),
    db: AsyncSession = Depends(get_db),
    engine: ReportEngine = Depends(get_report_engine),
):
    property_ids = await tenant_property_ids(db, user)
    if not property_ids:
        raise HTTPException(status_code=404, detail="No property assigned to this tenant")
    return await engine.list_reports(property_ids, year)


# ─── Single report ───────────────────────────────────────────────────────────

@router.get("/{report_id}", response_model=ReportDetailResponse)
async def get_report(
    report_id: uuid.UUID,
    user: User = Depends(require_manager),
    engine: ReportEngine = Depends(get_report_engine),
):
    report, payments = await engine.get_report_detail(report_id, acting_user_id=user.id)
    return ReportDetailResponse(
        report=MonthlyReportResponse.model_validate(report),
        payments=[ReportPaymentResponse.model_validate(p) for p in payments],
    )


@router.put("/{report_id}", response_model=MonthlyReportResponse)
async def update_report(
    report_id: uuid.UUID,
    payload: ReportUpdate,
    user: User = Depends(require_manager),
    engine: ReportEngine = Depends(get_report_engine),
):
    notes = payload.notes if "notes" in payload.model_fields_set else UNSET
    return await engine.update_report(
        report_id,
        acting_user_id=user.id,
        notes=notes,
        allocations=_to_allocations(payload.spending_allocations),
    )


@router.delete("/{report_id}", status_code=204)
async def delete_report(
    report_id: uuid.UUID,
    user: User = Depends(require_manager),
    engine: ReportEngine = Depends(get_report_engine),
):
    await engine.delete_report(report_id, acting_user_id=user.id)


@router.get("/{report_id}/export")
async def export_report(
    report_id: uuid.UUID,
    user: User = Depends(get_current_user),
    engine: ReportEngine = Depends(get_report_engine),
):
    """CSV download: summary block, then one row per spending category."""
    if user.role == UserRole.property_manager.value:
        report = await engine.get_report(report_id, acting_user_id=user.id)
    elif user.role == UserRole.tenant.value:
        report = await engine.get_tenant_report(report_id, tenant_id=user.id)
    else:
        raise HTTPException(status_code=403, detail="Insufficient permissions")

    period = report.report_month.strftime("%Y-%m")
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow(["Monthly Report", period])
    if report.property is not None:
        writer.writerow(["Property", report.property.name])
        writer.writerow(["Address", report.property.address])
    writer.writerow(["Total Budget", f"{report.total_budget:.2f}"])
    writer.writerow(["Paid Tenants", f"{report.paid_tenants}/{report.total_tenants}"])
    writer.writerow(["Pending Amount", f"{report.pending_amount:.2f}"])
    writer.writerow([])

    writer.writerow(["Category", "Allocated Amount", "Percentage", "Description"])
    for allocation in breakdown_of(report):
        writer.writerow([
            allocation.config_title,
            f"{allocation.allocated_amount:.2f}",
            f"{allocation.percentage:.2f}",
            allocation.description or "",
        ])

    if report.notes:
        writer.writerow([])
        writer.writerow(["Notes", report.notes])

    logger.info("Exported monthly report %s for user %s", report_id, user.id)
    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename=monthly_report_{period}.csv"
        },
    )
