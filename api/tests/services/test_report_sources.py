"""
SQL adapters for the ReportEngine, checked by compiling the statements they
issue with the PostgreSQL dialect (no database needed).
"""
import asyncio
import uuid
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from apartment_manager.services.errors import UpstreamDataError
from apartment_manager.services.report_engine import Summary
from apartment_manager.services.report_sources import (
    SqlPaymentSource,
    SqlReportStore,
    SqlSpendingCategorySource,
)

MARCH = date(2026, 3, 1)


def run(coro):
    return asyncio.run(coro)


def sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


def _summary() -> Summary:
    return Summary(
        property_id=uuid.uuid4(),
        report_month=MARCH,
        total_budget=Decimal("1000.00"),
        total_tenants=4,
        paid_tenants=2,
        pending_amount=Decimal("200.00"),
    )


class TestUpsert:
    def _upsert(self, make_session, notes, inserted=True):
        report_id = uuid.uuid4()
        db = make_session(SimpleNamespace(id=report_id, inserted=inserted))
        report, created = run(SqlReportStore(db).upsert(
            _summary(),
            generated_by_user_id=uuid.uuid4(),
            spending_breakdown=[],
            notes=notes,
        ))
        assert report.id == report_id
        return sql(db.statements[0]), created

    def test_single_statement_on_the_unique_constraint(self, make_session):
        statement, _ = self._upsert(make_session, notes=None)
        assert statement.startswith("INSERT INTO monthly_reports")
        assert "ON CONFLICT ON CONSTRAINT uq_monthly_reports_property_month DO UPDATE SET" in statement
        assert "(xmax = 0) AS inserted" in statement

    def test_regenerate_refreshes_totals_and_breakdown(self, make_session):
        statement, _ = self._upsert(make_session, notes=None)
        update_set = statement.split("DO UPDATE SET", 1)[1]
        for column in ("total_budget", "total_tenants", "paid_tenants", "pending_amount",
                       "spending_breakdown", "generated_by_user_id"):
            assert f"{column} = excluded.{column}" in update_set
        assert "updated_at = now()" in update_set

    def test_none_notes_keep_stored_notes(self, make_session):
        statement, _ = self._upsert(make_session, notes=None)
        assert "notes" not in statement.split("DO UPDATE SET", 1)[1]

    def test_empty_notes_overwrite(self, make_session):
        statement, _ = self._upsert(make_session, notes="")
        assert "notes = excluded.notes" in statement.split("DO UPDATE SET", 1)[1]

    def test_created_flag_follows_returned_row(self, make_session):
        assert self._upsert(make_session, notes=None, inserted=True)[1] is True
        assert self._upsert(make_session, notes=None, inserted=False)[1] is False


class TestScopedLookups:
    def test_managed_report_joins_managers(self, make_session):
        db = make_session(None)
        assert run(SqlReportStore(db).get_managed(uuid.uuid4(), uuid.uuid4())) is None
        statement = sql(db.statements[0])
        assert "JOIN property_managers ON property_managers.property_id = monthly_reports.property_id" in statement
        assert "property_managers.user_id =" in statement
        assert "property_tenants" not in statement

    def test_tenant_report_joins_tenants(self, make_session):
        db = make_session(None)
        assert run(SqlReportStore(db).get_for_tenant(uuid.uuid4(), uuid.uuid4())) is None
        statement = sql(db.statements[0])
        assert "JOIN property_tenants ON property_tenants.property_id = monthly_reports.property_id" in statement
        assert "property_tenants.user_id =" in statement
        assert "property_managers" not in statement

    def test_list_newest_first(self, make_session):
        db = make_session([])
        assert run(SqlReportStore(db).list_for_properties([uuid.uuid4()])) == []
        statement = sql(db.statements[0])
        assert "monthly_reports.property_id IN (" in statement
        assert "BETWEEN" not in statement
        assert statement.endswith(
            "ORDER BY monthly_reports.report_month DESC, monthly_reports.property_id ASC"
        )

    def test_list_year_filter(self, make_session):
        db = make_session([])
        run(SqlReportStore(db).list_for_properties(
            [uuid.uuid4()], start=date(2026, 1, 1), end=date(2026, 12, 31)
        ))
        assert "monthly_reports.report_month BETWEEN" in sql(db.statements[0])


class TestSources:
    def test_payments_carry_tenant_details(self, make_session):
        tenant_id = uuid.uuid4()
        payment = SimpleNamespace(
            id=uuid.uuid4(), tenant_id=tenant_id, amount=Decimal("400.00"),
            status="paid", payment_date=date(2026, 3, 5),
        )
        db = make_session([(payment, "Ana Horvat", "ana@example.com")])
        records = run(SqlPaymentSource(db).find_payments(uuid.uuid4(), MARCH))
        assert len(records) == 1
        assert records[0].tenant_id == tenant_id
        assert records[0].tenant_name == "Ana Horvat"
        assert records[0].payment_date == date(2026, 3, 5)
        assert "tenant_payments.payment_month =" in sql(db.statements[0])

    def test_tenant_count_only_counts_tenants(self, make_session):
        db = make_session(3)
        assert run(SqlPaymentSource(db).count_tenants(uuid.uuid4())) == 3
        assert "users.role =" in sql(db.statements[0])

    def test_categories_in_assignment_order(self, make_session):
        config = SimpleNamespace(id=uuid.uuid4(), title="Cleaning", description=None)
        db = make_session([config])
        categories = run(SqlSpendingCategorySource(db).find_categories(uuid.uuid4()))
        assert [c.title for c in categories] == ["Cleaning"]
        assert sql(db.statements[0]).endswith(
            "ORDER BY property_spending_configs.position, property_spending_configs.created_at"
        )

    def test_database_failure_is_upstream_error(self, make_session):
        class BrokenSession(make_session):
            async def execute(self, stmt):
                raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        with pytest.raises(UpstreamDataError):
            run(SqlPaymentSource(BrokenSession()).find_payments(uuid.uuid4(), MARCH))
        with pytest.raises(UpstreamDataError):
            run(SqlSpendingCategorySource(BrokenSession()).find_categories(uuid.uuid4()))
