"""
Allocation editor — pure functions, no DB, fully unit-testable.

Mirrors the manager's edit screen: changing a category's amount recomputes its
percentage, changing the percentage recomputes the amount. An edit that would
push the sum of all percentages past 100% is rejected and the previous values
are kept. The save-time check (allocated total == budget) is the final word;
the 100% guard only stops obviously wrong edits early.
"""
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from apartment_manager.core.config import settings
from apartment_manager.services.errors import (
    AllocationMismatch,
    AllocationRejected,
    CategoryNotInBreakdown,
    ReportValidationError,
)
from apartment_manager.services.report_engine import (
    SpendingAllocation,
    percentage_of,
    to_money,
)

_HUNDRED = Decimal("100")


class AllocationEditor:
    """Epsilons default to Settings.allocation_tolerance / allocation_percent_epsilon."""

    def __init__(
        self,
        total_budget: Decimal,
        allocations: list[SpendingAllocation],
        *,
        amount_epsilon: Decimal | None = None,
        percent_epsilon: Decimal | None = None,
    ):
        if amount_epsilon is None:
            amount_epsilon = settings.allocation_tolerance
        if percent_epsilon is None:
            percent_epsilon = settings.allocation_percent_epsilon
        self.total_budget = to_money(total_budget)
        self.allocations = list(allocations)
        self.amount_epsilon = Decimal(str(amount_epsilon))
        self.percent_epsilon = Decimal(str(percent_epsilon))

    # ── Queries ──────────────────────────────────────────────────────────────

    def allocated(self) -> Decimal:
        return sum((Decimal(a.allocated_amount) for a in self.allocations), Decimal(0))

    def remaining(self) -> Decimal:
        """Budget still unallocated; negative when over-allocated."""
        return self.total_budget - self.allocated()

    def total_percentage(self) -> Decimal:
        return sum((Decimal(a.percentage) for a in self.allocations), Decimal(0))

    # ── Edits ────────────────────────────────────────────────────────────────

    def set_amount(self, config_id: Any, amount: Any) -> SpendingAllocation:
        index = self._index(config_id)
        new_amount = _parse(amount)
        new_pct = percentage_of(new_amount, self.total_budget)
        self._guard(index, new_pct, f"Cannot allocate €{new_amount:.2f}")
        return self._apply(index, new_amount, new_pct)

    def set_percentage(self, config_id: Any, percentage: Any) -> SpendingAllocation:
        index = self._index(config_id)
        new_pct = _parse(percentage)
        self._guard(index, new_pct, f"Cannot allocate {new_pct:.1f}%")
        new_amount = (self.total_budget * new_pct / _HUNDRED).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        return self._apply(index, new_amount, new_pct)

    def validate_for_save(self) -> list[SpendingAllocation]:
        """Raise AllocationMismatch unless the amounts add up to the budget."""
        allocated = self.allocated()
        if abs(allocated - self.total_budget) > self.amount_epsilon:
            raise AllocationMismatch(expected=self.total_budget, actual=allocated)
        return list(self.allocations)

    # ── Internals ────────────────────────────────────────────────────────────

    def _index(self, config_id: Any) -> int:
        for i, a in enumerate(self.allocations):
            if str(a.config_id) == str(config_id):
                return i
        raise CategoryNotInBreakdown(config_id)

    def _guard(self, index: int, new_pct: Decimal, prefix: str) -> None:
        others = sum(
            (Decimal(a.percentage) for i, a in enumerate(self.allocations) if i != index),
            Decimal(0),
        )
        total = others + new_pct
        if total > _HUNDRED + self.percent_epsilon:
            raise AllocationRejected(
                f"{prefix}. Total allocation would be {total:.1f}%, which exceeds 100%.",
                total_percentage=total,
            )

    def _apply(self, index: int, amount: Decimal, pct: Decimal) -> SpendingAllocation:
        updated = replace(self.allocations[index], allocated_amount=amount, percentage=pct)
        self.allocations[index] = updated
        return updated


def _parse(value: Any) -> Decimal:
    """Blank input counts as zero, like an emptied form field."""
    parsed = to_money(value)
    if parsed < 0:
        raise ReportValidationError("Allocation values must not be negative")
    return parsed
