"""Monthly financial report engine.

Computes a property's monthly summary from tenant payment records and keeps
an editable allocation of the collected budget across spending categories.

    total_budget    – sum of "paid" payment amounts for the month
    total_tenants   – tenants tied to the property (with or without a payment)
    paid_tenants    – number of "paid" payments
    pending_amount  – sum of "pending" + "overdue" payment amounts

The engine knows nothing about HTTP or SQL. It talks to three collaborators
(PaymentSource, SpendingCategorySource, ReportStore); callers are expected to
have checked that the acting user manages the property before calling in.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Protocol

from apartment_manager.services.errors import (
    AllocationMismatch,
    ReportNotFound,
    ReportValidationError,
)

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")
_ZERO = Decimal("0.00")

DEFAULT_TOLERANCE = Decimal("0.01")

PAID_STATUSES = frozenset({"paid"})
PENDING_STATUSES = frozenset({"pending", "overdue"})


def _dec(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Marks an optional argument the caller did not send (distinct from None / "")
UNSET: Any = _Unset()


# ── Value objects ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PaymentRecord:
    tenant_id: Any
    amount: Decimal
    status: str  # pending | paid | overdue
    payment_id: Any = None
    tenant_name: str | None = None
    tenant_email: str | None = None
    payment_date: date | None = None


@dataclass(frozen=True)
class SpendingCategory:
    id: Any
    title: str
    description: str | None = None


@dataclass(frozen=True)
class Summary:
    property_id: Any
    report_month: date
    total_budget: Decimal
    total_tenants: int
    paid_tenants: int
    pending_amount: Decimal


@dataclass(frozen=True)
class SpendingAllocation:
    config_id: Any
    config_title: str
    allocated_amount: Decimal
    percentage: Decimal = _ZERO
    description: str | None = None

    def to_json(self) -> dict:
        """Snapshot form stored in MonthlyReport.spending_breakdown."""
        return {
            "config_id": str(self.config_id),
            "config_title": self.config_title,
            "allocated_amount": str(self.allocated_amount),
            "percentage": str(self.percentage),
            "description": self.description,
        }

    @classmethod
    def from_json(cls, data: dict) -> "SpendingAllocation":
        return cls(
            config_id=data.get("config_id"),
            config_title=data.get("config_title") or "",
            allocated_amount=to_money(data.get("allocated_amount")),
            percentage=to_money(data.get("percentage")),
            description=data.get("description"),
        )


@dataclass
class ReportPreview:
    summary: Summary
    categories: list[SpendingCategory] = field(default_factory=list)
    payments: list[PaymentRecord] = field(default_factory=list)


# ── Collaborators ───────────────────────────────────────────────────────────

class PaymentSource(Protocol):
    async def find_payments(self, property_id: Any, period: date) -> list[PaymentRecord]: ...

    async def count_tenants(self, property_id: Any) -> int: ...


class SpendingCategorySource(Protocol):
    async def find_categories(self, property_id: Any) -> list[SpendingCategory]: ...


class ReportStore(Protocol):
    """Persistence for MonthlyReport rows.

    `upsert` must be a single atomic statement keyed on (property_id,
    report_month) so concurrent generates can never create two rows.
    Passing notes=None to `upsert` keeps the stored notes on update.
    """

    async def get_managed(self, report_id: Any, manager_id: Any) -> Any | None: ...

    async def get_for_tenant(self, report_id: Any, tenant_id: Any) -> Any | None: ...

    async def upsert(
        self,
        summary: Summary,
        *,
        generated_by_user_id: Any,
        spending_breakdown: list[dict],
        notes: str | None,
    ) -> tuple[Any, bool]: ...

    async def save(self, report: Any, changes: dict) -> Any: ...

    async def delete(self, report: Any) -> None: ...

    async def list_for_properties(
        self, property_ids: Sequence[Any], *, start: date | None = None, end: date | None = None
    ) -> list[Any]: ...


# ── Pure helpers ────────────────────────────────────────────────────────────

def canonical_period(month: int | None, year: int | None) -> date:
    """First day of the month, built from the integers (no date parsing, no timezone)."""
    if month is None or year is None:
        raise ReportValidationError("Property ID, month, and year are required")
    try:
        month_num, year_num = int(month), int(year)
    except (TypeError, ValueError):
        raise ReportValidationError("month and year must be integers")
    if not 1 <= month_num <= 12:
        raise ReportValidationError(f"month must be between 1 and 12, got {month_num}")
    if not 1 <= year_num <= 9999:
        raise ReportValidationError(f"year out of range: {year_num}")
    return date(year_num, month_num, 1)


def to_money(value: Any) -> Decimal:
    if value is None or value == "":
        return _ZERO
    try:
        return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ReportValidationError(f"Invalid amount: {value!r}")


def percentage_of(amount: Decimal, total_budget: Decimal) -> Decimal:
    """amount as a percentage of total_budget; 0 when there is no budget."""
    if total_budget <= 0:
        return _ZERO
    return (_dec(amount) / _dec(total_budget) * _HUNDRED).quantize(_CENT, rounding=ROUND_HALF_UP)


def summarize(
    property_id: Any, period: date, payments: Sequence[PaymentRecord], total_tenants: int
) -> Summary:
    paid = [p for p in payments if p.status in PAID_STATUSES]
    pending = [p for p in payments if p.status in PENDING_STATUSES]
    return Summary(
        property_id=property_id,
        report_month=period,
        total_budget=to_money(sum((_dec(p.amount) for p in paid), Decimal(0))),
        total_tenants=total_tenants,
        paid_tenants=len(paid),
        pending_amount=to_money(sum((_dec(p.amount) for p in pending), Decimal(0))),
    )


def check_allocation_total(
    allocations: Sequence[SpendingAllocation],
    total_budget: Decimal,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> Decimal:
    """Raise AllocationMismatch unless the allocations add up to total_budget. Returns the sum."""
    allocated = sum((_dec(a.allocated_amount) for a in allocations), Decimal(0))
    if abs(allocated - _dec(total_budget)) > tolerance:
        raise AllocationMismatch(expected=_dec(total_budget), actual=allocated)
    return allocated


def _check_non_negative(allocations: Sequence[SpendingAllocation]) -> None:
    for a in allocations:
        if _dec(a.allocated_amount) < 0:
            raise ReportValidationError(
                f"Allocated amount for '{a.config_title}' must not be negative"
            )


def recompute_percentages(
    allocations: Sequence[SpendingAllocation], total_budget: Decimal
) -> list[SpendingAllocation]:
    return [
        SpendingAllocation(
            config_id=a.config_id,
            config_title=a.config_title,
            allocated_amount=to_money(a.allocated_amount),
            percentage=percentage_of(_dec(a.allocated_amount), total_budget),
            description=a.description or None,
        )
        for a in allocations
    ]


def year_bounds(year: int | None) -> tuple[date | None, date | None]:
    if year is None:
        return None, None
    return date(year, 1, 1), date(year, 12, 31)


# ── Engine ──────────────────────────────────────────────────────────────────

class ReportEngine:
    def __init__(
        self,
        payments: PaymentSource,
        categories: SpendingCategorySource,
        store: ReportStore,
        *,
        tolerance: Decimal = DEFAULT_TOLERANCE,
    ):
        self.payments = payments
        self.categories = categories
        self.store = store
        self.tolerance = _dec(tolerance)

    async def compute_summary(self, property_id: Any, month: int, year: int) -> Summary:
        if property_id is None:
            raise ReportValidationError("Property ID, month, and year are required")
        period = canonical_period(month, year)
        payments = await self.payments.find_payments(property_id, period)
        total_tenants = await self.payments.count_tenants(property_id)
        return summarize(property_id, period, payments, total_tenants)

    def build_allocation(
        self,
        summary: Summary,
        categories: Sequence[SpendingCategory],
        explicit: Sequence[SpendingAllocation] | None = None,
    ) -> list[SpendingAllocation]:
        if not categories:
            return []
        if explicit:
            return recompute_percentages(explicit, summary.total_budget)

        count = Decimal(len(categories))
        budget = to_money(summary.total_budget)
        share = (budget / count).quantize(_CENT, rounding=ROUND_HALF_UP)
        pct = (_HUNDRED / count).quantize(_CENT, rounding=ROUND_HALF_UP)
        # Rounding leftover goes to the last category so the split sums exactly
        last_share = budget - share * (count - 1)
        last_pct = _HUNDRED - pct * (count - 1)
        last = len(categories) - 1
        return [
            SpendingAllocation(
                config_id=c.id,
                config_title=c.title,
                allocated_amount=last_share if i == last else share,
                percentage=last_pct if i == last else pct,
                description=c.description,
            )
            for i, c in enumerate(categories)
        ]

    async def preview_report(self, property_id: Any, month: int, year: int) -> ReportPreview:
        """Summary plus raw categories and payments; nothing is persisted."""
        summary = await self.compute_summary(property_id, month, year)
        categories = await self.categories.find_categories(property_id)
        payments = await self.payments.find_payments(property_id, summary.report_month)
        return ReportPreview(summary=summary, categories=categories, payments=payments)

    async def generate_report(
        self,
        property_id: Any,
        month: int,
        year: int,
        *,
        acting_user_id: Any,
        notes: str | None = None,
        allocations: Sequence[SpendingAllocation] | None = None,
    ) -> tuple[Any, bool]:
        """Create the (property, month) report or refresh it in place.

        Returns (report, created). notes=None keeps existing notes; "" clears them.
        """
        summary = await self.compute_summary(property_id, month, year)

        if allocations:
            _check_non_negative(allocations)
            check_allocation_total(allocations, summary.total_budget, self.tolerance)
        categories = await self.categories.find_categories(property_id)
        breakdown = self.build_allocation(summary, categories, allocations)

        report, created = await self.store.upsert(
            summary,
            generated_by_user_id=acting_user_id,
            spending_breakdown=[a.to_json() for a in breakdown],
            notes=notes,
        )
        logger.info(
            "%s monthly report %s for property %s (%s): budget=%s paid=%d/%d",
            "Generated" if created else "Regenerated",
            getattr(report, "id", None),
            property_id,
            summary.report_month.isoformat(),
            summary.total_budget,
            summary.paid_tenants,
            summary.total_tenants,
        )
        return report, created

    async def get_report(self, report_id: Any, *, acting_user_id: Any) -> Any:
        report = await self.store.get_managed(report_id, acting_user_id)
        if report is None:
            raise ReportNotFound()
        return report

    async def get_tenant_report(self, report_id: Any, *, tenant_id: Any) -> Any:
        """A report of a property the tenant lives in; ReportNotFound otherwise."""
        report = await self.store.get_for_tenant(report_id, tenant_id)
        if report is None:
            raise ReportNotFound()
        return report

    async def get_report_detail(
        self, report_id: Any, *, acting_user_id: Any
    ) -> tuple[Any, list[PaymentRecord]]:
        """Report plus its period's payments, ordered by status then tenant."""
        report = await self.get_report(report_id, acting_user_id=acting_user_id)
        payments = await self.payments.find_payments(report.property_id, report.report_month)
        payments = sorted(payments, key=lambda p: (p.status, str(p.tenant_id)))
        return report, payments

    async def update_report(
        self,
        report_id: Any,
        *,
        acting_user_id: Any,
        notes: Any = UNSET,
        allocations: Sequence[SpendingAllocation] | None = None,
    ) -> Any:
        """Edit breakdown and/or notes of an existing report; totals stay frozen."""
        report = await self.get_report(report_id, acting_user_id=acting_user_id)
        changes: dict[str, Any] = {}

        if allocations is not None:
            total_budget = _dec(report.total_budget)
            _check_non_negative(allocations)
            check_allocation_total(allocations, total_budget, self.tolerance)
            breakdown = recompute_percentages(allocations, total_budget)
            changes["spending_breakdown"] = [a.to_json() for a in breakdown]

        if notes is not UNSET:
            changes["notes"] = notes

        if not changes:
            return report

        report = await self.store.save(report, changes)
        logger.info("Updated monthly report %s (%s)", report_id, ", ".join(sorted(changes)))
        return report

    async def delete_report(self, report_id: Any, *, acting_user_id: Any) -> None:
        report = await self.get_report(report_id, acting_user_id=acting_user_id)
        await self.store.delete(report)
        logger.info("Deleted monthly report %s", report_id)

    async def list_reports(
        self, property_ids: Sequence[Any], year: int | None = None
    ) -> list[Any]:
        """Reports for the given properties, newest period first."""
        if not property_ids:
            return []
        start, end = year_bounds(year)
        return await self.store.list_for_properties(list(property_ids), start=start, end=end)


def breakdown_of(report: Any) -> list[SpendingAllocation]:
    return [SpendingAllocation.from_json(d) for d in (report.spending_breakdown or [])]
