"""Shared pytest fixtures for the compliance engine test suite.

Provides:
- engine / session: in-memory SQLite (StaticPool) with all tables
- now: a fixed clock so expiry and SLA maths are deterministic
- make_* factories for suppliers, styles and components
- record_test: request + finalize a lab test in one call
- client: TestClient with get_session overridden to the test session
"""
from datetime import datetime
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from app.db.core import get_session
import app.db.schema as schema
from app.models.component import ComponentCreate, FibreCompositionInput
from app.models.component_test import (
    TestRequestCreate, TestResultInput, ParameterInput
)
from app.models.style import StyleCreate
from app.models.supplier import (
    SupplierCreate, FactoryCreate, TechnologistCreate
)
from app.services.component import ComponentService
from app.services.component_test import TestLedgerService
from app.services.style import StyleService
from app.services.supplier import SupplierService


ACTOR = "qa.tester"


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 3, 3, 9, 0, 0)


@pytest.fixture
def make_supplier(session):
    seq = count(1)

    def _make(test_expiry_months=None, **overrides):
        data = {
            "code": f"SUP-{next(seq):03d}",
            "name": "Textile Excellence Ltd",
            "test_expiry_months": test_expiry_months,
            **overrides,
        }
        return SupplierService(session).create_supplier(SupplierCreate(**data), ACTOR)

    return _make


@pytest.fixture
def make_factory(session):
    def _make(supplier, **overrides):
        data = {"supplier_id": supplier.id, "name": "Dhaka Knit Unit 2", "country": "BD", **overrides}
        return SupplierService(session).create_factory(FactoryCreate(**data), ACTOR)

    return _make


@pytest.fixture
def technologists(session):
    service = SupplierService(session)
    fabric = service.create_technologist(
        TechnologistCreate(name="Sarah Johnson", email="sarah@example.com",
                           type=schema.TechnologistType.FABRIC), ACTOR)
    garment = service.create_technologist(
        TechnologistCreate(name="Michael Chen", email="michael@example.com",
                           type=schema.TechnologistType.GARMENT), ACTOR)
    return fabric, garment


@pytest.fixture
def make_style(session, make_supplier, make_factory, technologists):
    seq = count(1)

    def _make(supplier=None, factory=None, **overrides):
        supplier = supplier or make_supplier(test_expiry_months=6)
        factory = factory or make_factory(supplier)
        fabric_tech, garment_tech = technologists
        data = {
            "tu_style_no": f"{100000000 + next(seq)}",
            "description": "Boys Navy Jersey Tee",
            "supplier_id": supplier.id,
            "factory_id": factory.id,
            "country_of_origin": "BD",
            "fabric_tech_id": fabric_tech.id,
            "garment_tech_id": garment_tech.id,
            **overrides,
        }
        return StyleService(session).create_style(StyleCreate(**data), ACTOR)

    return _make


@pytest.fixture
def make_fabric(session):
    seq = count(1)

    def _make(composition=(("cotton", 100),), approve=True, reference_code=None):
        data = ComponentCreate(
            component_type=schema.ComponentType.FABRIC,
            mill="Jiangsu Textiles Co",
            origin_country="CN",
            reference_code=reference_code or f"TU-FAB-{next(seq):03d}",
            composition=[
                FibreCompositionInput(fibre_type=fibre, percentage=pct)
                for fibre, pct in composition
            ],
        )
        service = ComponentService(session)
        component = service.create_component(data, ACTOR)
        if approve:
            component = service.approve_component(component.id, ACTOR)
        return component

    return _make


@pytest.fixture
def make_trim(session):
    seq = count(1)

    def _make(approve=True):
        data = ComponentCreate(
            component_type=schema.ComponentType.TRIM,
            mill="YKK Shenzhen",
            origin_country="CN",
            reference_code=f"TU-TRM-{next(seq):03d}",
            trim_type="Zipper",
            colour="Silver",
        )
        service = ComponentService(session)
        component = service.create_component(data, ACTOR)
        if approve:
            component = service.approve_component(component.id, ACTOR)
        return component

    return _make


@pytest.fixture
def record_test(session):
    """Requests a test and finalizes it with one parameter per status given."""

    def _record(component_id, style_id, at, level=schema.TestLevel.BASE, statuses=("pass",)):
        ledger = TestLedgerService(session)
        test = ledger.request_test(
            TestRequestCreate(component_id=component_id, style_id=style_id, level=level),
            ACTOR,
            now=at,
        )
        parameters = [
            ParameterInput(name=f"Param {i}", specification="spec", result="ok",
                           status=schema.ParameterStatus(status))
            for i, status in enumerate(statuses)
        ]
        return ledger.record_result(test.id, TestResultInput(parameters=parameters), ACTOR, now=at)

    return _record


@pytest.fixture
def client(session):
    from app.main import app

    def _override_session():
        yield session

    app.dependency_overrides[get_session] = _override_session
    yield TestClient(app)
    app.dependency_overrides.clear()
