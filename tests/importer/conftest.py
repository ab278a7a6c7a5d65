from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from config.base import DEFAULT_ZERO_VALUE_POLICIES
from hrms_app.importer import init_importer
from hrms_app.importer.pipeline.chunk import TwoPassChunkProcessor
from hrms_app.importer.pipeline.context import ImportContext
from hrms_app.importer.pipeline.session import DatabaseImportSessionStore
from hrms_app.models import (
    Department,
    Employee,
    EmployeeFundingAllocation,
    Employment,
    Grant,
    GrantItem,
    Position,
    SectionDepartment,
    Site,
    db,
)

FROZEN_NOW = datetime(2025, 6, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def import_context() -> ImportContext:
    return ImportContext(now=FROZEN_NOW, user_name="importer-test", zero_policies=dict(DEFAULT_ZERO_VALUE_POLICIES))


@pytest.fixture
def session_store() -> DatabaseImportSessionStore:
    return DatabaseImportSessionStore()


@pytest.fixture
def importer_app(app):
    app.config.update(
        {
            "IMPORTER_ENABLED": True,
            "IMPORTER_WORKER_ENABLED": True,
            "CELERY_CONFIG": {"task_always_eager": True, "task_eager_propagates": True},
        }
    )
    init_importer(app)
    yield app


@pytest.fixture
def reference_data():
    department = Department(name="Medical")
    db.session.add(department)
    db.session.flush()
    site = Site(code="MRM", name="Mae Ramat")
    section = SectionDepartment(name="Outpatient", department_id=department.id)
    position = Position(title="Medic", department_id=department.id)
    db.session.add_all([site, section, position])
    db.session.commit()
    return {"site": site, "department": department, "section": section, "position": position}


@pytest.fixture
def employee_factory():
    def _factory(staff_id: str = "EMP001", organization: str = "SMRU", **overrides) -> Employee:
        values = {
            "organization": organization,
            "staff_id": staff_id,
            "first_name_en": "Somchai",
            "gender": "M",
            "date_of_birth": date(1990, 5, 1),
        }
        values.update(overrides)
        employee = Employee(**values)
        db.session.add(employee)
        db.session.commit()
        return employee

    return _factory


@pytest.fixture
def employment_factory():
    def _factory(employee: Employee, **overrides) -> Employment:
        values = {
            "employee_id": employee.id,
            "employment_type": "Full-time",
            "start_date": date(2024, 1, 1),
            "pass_probation_salary": Decimal("30000.00"),
            "status": True,
        }
        values.update(overrides)
        employment = Employment(**values)
        db.session.add(employment)
        db.session.commit()
        return employment

    return _factory


@pytest.fixture
def grant_item_factory():
    def _factory(code: str = "GR-2025", position: str = "Medic", budget_line: str | None = "BL-1") -> GrantItem:
        grant = db.session.query(Grant).filter_by(code=code).one_or_none()
        if grant is None:
            grant = Grant(code=code, name="Malaria research", organization="SMRU")
            db.session.add(grant)
            db.session.flush()
        item = GrantItem(grant_id=grant.id, grant_position=position, budgetline_code=budget_line)
        db.session.add(item)
        db.session.commit()
        return item

    return _factory


@pytest.fixture
def allocation_factory():
    def _factory(employment: Employment, item: GrantItem, **overrides) -> EmployeeFundingAllocation:
        values = {
            "employee_id": employment.employee_id,
            "employment_id": employment.id,
            "grant_item_id": item.id,
            "fte": Decimal("1.0"),
            "allocation_type": "grant",
            "allocated_amount": Decimal("30000.00"),
            "status": "active",
            "start_date": date(2024, 1, 1),
        }
        values.update(overrides)
        allocation = EmployeeFundingAllocation(**values)
        db.session.add(allocation)
        db.session.commit()
        return allocation

    return _factory


@pytest.fixture
def employee_row():
    """Builder for a valid employee template row keyed by canonical header."""

    def _build(**overrides) -> dict[str, str]:
        row = {
            "organization": "SMRU",
            "staff_id": "EMP100",
            "first_name": "Naw",
            "last_name": "Paw",
            "gender": "F",
            "date_of_birth": "1992-03-14",
            "status": "Local ID Staff",
        }
        row.update(overrides)
        return row

    return _build


@pytest.fixture
def run_chunk(import_context, session_store):
    """Process ``rows`` as one chunk of ``loader_cls`` inside a fresh import session."""

    def _run(loader_cls, rows, *, start_row: int = 2, import_id: str = "loader-test", context=None):
        if not session_store.exists(import_id):
            session_store.init(import_id, owner_id=None, kind=loader_cls.kind)
        loader = loader_cls(context or import_context)
        snapshot = loader.prefetch(db.session)
        return TwoPassChunkProcessor(loader, snapshot, session_store, import_id).process(rows, start_row)

    return _run
