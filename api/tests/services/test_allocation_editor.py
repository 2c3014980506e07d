"""
Unit tests for allocation_editor — pure functions, no DB.
"""
import uuid
from decimal import Decimal

import pytest

from apartment_manager.core.config import settings
from apartment_manager.services.allocation_editor import AllocationEditor, AllocationRejected
from apartment_manager.services.errors import (
    AllocationMismatch,
    CategoryNotInBreakdown,
    ReportError,
    ReportValidationError,
)
from apartment_manager.services.report_engine import SpendingAllocation

MAINTENANCE = uuid.uuid4()
UTILITIES = uuid.uuid4()


@pytest.fixture
def editor():
    return AllocationEditor(
        Decimal("1000"),
        [
            SpendingAllocation(MAINTENANCE, "Maintenance", Decimal("500.00"), Decimal("50.00")),
            SpendingAllocation(UTILITIES, "Utilities", Decimal("500.00"), Decimal("50.00")),
        ],
    )


class TestEdits:
    def test_amount_recomputes_percentage(self, editor):
        updated = editor.set_amount(MAINTENANCE, "250")
        assert updated.allocated_amount == Decimal("250.00")
        assert updated.percentage == Decimal("25.00")
        assert editor.remaining() == Decimal("250.00")
        assert editor.total_percentage() == Decimal("75.00")

    def test_percentage_recomputes_amount(self, editor):
        editor.set_amount(MAINTENANCE, "250")
        updated = editor.set_percentage(UTILITIES, "75")
        assert updated.allocated_amount == Decimal("750.00")
        assert editor.remaining() == Decimal("0.00")

    def test_lookup_by_string_id(self, editor):
        updated = editor.set_amount(str(UTILITIES), "100")
        assert updated.config_title == "Utilities"

    def test_blank_counts_as_zero(self, editor):
        updated = editor.set_amount(MAINTENANCE, "")
        assert updated.allocated_amount == Decimal("0.00")
        assert updated.percentage == Decimal("0.00")

    def test_negative_rejected(self, editor):
        with pytest.raises(ReportValidationError):
            editor.set_amount(MAINTENANCE, "-1")

    def test_unknown_category(self, editor):
        with pytest.raises(CategoryNotInBreakdown) as exc:
            editor.set_amount(uuid.uuid4(), "10")
        assert exc.value.status_code == 404


class TestOverAllocationGuard:
    def test_rejects_over_100_percent(self, editor):
        with pytest.raises(AllocationRejected) as exc:
            editor.set_amount(MAINTENANCE, "600")
        assert exc.value.total_percentage == Decimal("110.00")
        assert str(exc.value) == (
            "Cannot allocate €600.00. Total allocation would be 110.0%, which exceeds 100%."
        )

    def test_rejected_edit_leaves_state_unchanged(self, editor):
        before = list(editor.allocations)
        with pytest.raises(AllocationRejected):
            editor.set_percentage(UTILITIES, "60")
        assert editor.allocations == before

    def test_small_rounding_slack_allowed(self, editor):
        updated = editor.set_percentage(MAINTENANCE, "50.1")
        assert updated.percentage == Decimal("50.10")
        assert editor.total_percentage() == Decimal("100.10")

    def test_zero_budget_never_rejects_amounts(self):
        editor = AllocationEditor(
            Decimal("0"),
            [SpendingAllocation(MAINTENANCE, "Maintenance", Decimal("0"), Decimal("0"))],
        )
        updated = editor.set_amount(MAINTENANCE, "50")
        assert updated.percentage == Decimal("0.00")


class TestValidateForSave:
    def test_matching_total(self, editor):
        assert len(editor.validate_for_save()) == 2

    def test_mismatch(self, editor):
        editor.set_amount(MAINTENANCE, "400")
        with pytest.raises(AllocationMismatch) as exc:
            editor.validate_for_save()
        assert exc.value.to_dict()["total_allocated"] == "900.00"
        assert exc.value.to_dict()["total_budget"] == "1000.00"

    def test_within_amount_epsilon(self):
        editor = AllocationEditor(
            Decimal("100"),
            [
                SpendingAllocation(MAINTENANCE, "Maintenance", Decimal("33.33"), Decimal("33.33")),
                SpendingAllocation(UTILITIES, "Utilities", Decimal("66.66"), Decimal("66.66")),
            ],
        )
        editor.validate_for_save()


class TestSettingsAndErrors:
    def test_percent_slack_comes_from_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "allocation_percent_epsilon", Decimal("0"))
        editor = AllocationEditor(
            Decimal("1000"),
            [
                SpendingAllocation(MAINTENANCE, "Maintenance", Decimal("500.00"), Decimal("50.00")),
                SpendingAllocation(UTILITIES, "Utilities", Decimal("500.00"), Decimal("50.00")),
            ],
        )
        assert editor.percent_epsilon == Decimal("0")
        with pytest.raises(AllocationRejected):
            editor.set_percentage(MAINTENANCE, "50.1")

    def test_explicit_slack_wins_over_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "allocation_percent_epsilon", Decimal("0"))
        editor = AllocationEditor(Decimal("1000"), [], percent_epsilon=Decimal("0.5"))
        assert editor.percent_epsilon == Decimal("0.5")

    def test_rejection_is_a_client_error(self, editor):
        with pytest.raises(ReportError) as exc:
            editor.set_amount(MAINTENANCE, "600")
        assert exc.value.status_code == 400
        assert exc.value.to_dict()["total_percentage"] == "110.00"
