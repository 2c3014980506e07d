"""
In-memory stand-ins for the ReportEngine collaborators.

The engine only talks to PaymentSource / SpendingCategorySource / ReportStore,
so service and router tests run without Postgres.

RecordingSession stands in for an AsyncSession in router and SQL adapter
tests: it hands out queued results and records statements and added objects.
"""
import uuid
from collections import defaultdict, deque
from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from apartment_manager.services.errors import UpstreamDataError
from apartment_manager.services.report_engine import (
    PaymentRecord,
    ReportEngine,
    SpendingCategory,
)


class FakePaymentSource:
    def __init__(self):
        self.payments: dict[tuple, list[PaymentRecord]] = defaultdict(list)
        self.tenants: dict = {}
        self.broken = False

    def add(self, property_id, period: date, amount, status: str, tenant_id=None, **extra):
        record = PaymentRecord(
            tenant_id=tenant_id or uuid.uuid4(),
            amount=Decimal(str(amount)),
            status=status,
            payment_id=uuid.uuid4(),
            **extra,
        )
        self.payments[(property_id, period)].append(record)
        return record

    async def find_payments(self, property_id, period):
        if self.broken:
            raise UpstreamDataError("Could not load tenant payments")
        return list(self.payments[(property_id, period)])

    async def count_tenants(self, property_id):
        return self.tenants.get(property_id, 0)


class FakeCategorySource:
    def __init__(self):
        self.categories: dict[object, list[SpendingCategory]] = defaultdict(list)

    def add(self, property_id, title: str, description: str | None = None) -> SpendingCategory:
        category = SpendingCategory(id=uuid.uuid4(), title=title, description=description)
        self.categories[property_id].append(category)
        return category

    async def find_categories(self, property_id):
        return list(self.categories[property_id])


class FakeReportStore:
    def __init__(self):
        self.reports: dict = {}
        self.managers: dict = defaultdict(set)
        self.tenants: dict = defaultdict(set)
        self.properties: dict = {}
        self.upserts = 0

    def add_property(self, name="Sunset Apartments", address="1 Main St", manager_id=None):
        prop = SimpleNamespace(id=uuid.uuid4(), name=name, address=address)
        self.properties[prop.id] = prop
        if manager_id is not None:
            self.managers[prop.id].add(manager_id)
        return prop

    async def get_managed(self, report_id, manager_id):
        report = self.reports.get(report_id)
        if report is None or manager_id not in self.managers[report.property_id]:
            return None
        return report

    async def get_for_tenant(self, report_id, tenant_id):
        report = self.reports.get(report_id)
        if report is None or tenant_id not in self.tenants[report.property_id]:
            return None
        return report

    async def upsert(self, summary, *, generated_by_user_id, spending_breakdown, notes):
        self.upserts += 1
        now = datetime.now(timezone.utc)
        for report in self.reports.values():
            if (report.property_id, report.report_month) == (summary.property_id, summary.report_month):
                report.generated_by_user_id = generated_by_user_id
                report.total_budget = summary.total_budget
                report.total_tenants = summary.total_tenants
                report.paid_tenants = summary.paid_tenants
                report.pending_amount = summary.pending_amount
                report.spending_breakdown = spending_breakdown
                if notes is not None:
                    report.notes = notes
                report.updated_at = now
                return report, False

        report = SimpleNamespace(
            id=uuid.uuid4(),
            property_id=summary.property_id,
            property=self.properties.get(summary.property_id),
            report_month=summary.report_month,
            generated_by_user_id=generated_by_user_id,
            total_budget=summary.total_budget,
            total_tenants=summary.total_tenants,
            paid_tenants=summary.paid_tenants,
            pending_amount=summary.pending_amount,
            spending_breakdown=spending_breakdown,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        self.reports[report.id] = report
        return report, True

    async def save(self, report, changes):
        for field, value in changes.items():
            setattr(report, field, value)
        report.updated_at = datetime.now(timezone.utc)
        return report

    async def delete(self, report):
        del self.reports[report.id]

    async def list_for_properties(self, property_ids, *, start=None, end=None):
        rows = [
            r for r in self.reports.values()
            if r.property_id in property_ids
            and (start is None or start <= r.report_month <= end)
        ]
        return sorted(rows, key=lambda r: (-r.report_month.toordinal(), str(r.property_id)))


class FakeResult:
    def __init__(self, value=None):
        self.value = value

    def one(self):
        return self.value

    def scalar(self):
        return self.value

    def scalar_one_or_none(self):
        return self.value

    def scalars(self):
        return self

    def all(self):
        return list(self.value or [])


class RecordingSession:
    def __init__(self, *results):
        self.results = deque(results)
        self.statements = []
        self.added = []
        self.deleted = []

    async def execute(self, stmt):
        self.statements.append(stmt)
        return FakeResult(self.results.popleft() if self.results else None)

    async def get(self, model, ident, populate_existing=False):
        return SimpleNamespace(id=ident)

    def add(self, obj):
        self.added.append(obj)

    def add_all(self, objs):
        self.added.extend(objs)

    async def delete(self, obj):
        self.deleted.append(obj)

    async def flush(self):
        pass

    async def refresh(self, obj):
        # Server defaults a real flush would fill in
        if getattr(obj, "id", None) is None:
            obj.id = uuid.uuid4()
        if getattr(obj, "created_at", None) is None:
            obj.created_at = datetime.now(timezone.utc)


@pytest.fixture
def payment_source():
    return FakePaymentSource()


@pytest.fixture
def category_source():
    return FakeCategorySource()


@pytest.fixture
def report_store():
    return FakeReportStore()


@pytest.fixture
def engine(payment_source, category_source, report_store):
    return ReportEngine(payment_source, category_source, report_store)


@pytest.fixture
def make_session():
    return RecordingSession
