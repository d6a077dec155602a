import os

# must be set before hims_grn.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hims_grn.api.deps import get_db
from hims_grn.db.base import Base
from hims_grn.main import app
from hims_grn.models import grn as grn_models  # noqa: F401
from hims_grn.services.grn_types import ReceiptHeader, ReceiptLine


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def client(session_factory):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_line(**kw) -> ReceiptLine:
    base = dict(
        item_id=101,
        batch_no="B-001",
        quantity=Decimal("10"),
        unit_cost=Decimal("10"),
        mrp=Decimal("15"),
    )
    base.update(kw)
    return ReceiptLine(**base)


def make_header(**kw) -> ReceiptHeader:
    base = dict(
        supplier_id=7,
        location_id=3,
        received_date=date(2026, 1, 15),
        invoice_number="INV-001",
    )
    base.update(kw)
    return ReceiptHeader(**base)


def pack_line(**kw) -> ReceiptLine:
    """2 boxes x 10 strips x 10 tablets at 50 per box, derived the way the UI does."""
    from hims_grn.services.grn_pack import apply_line_patch

    line = make_line(quantity=Decimal("0"), unit_cost=Decimal("0"), mrp=Decimal("0"), **kw)
    return apply_line_patch(
        line,
        {"packs": 2, "strips_per_pack": 10, "units_per_strip": 10, "pack_cost": Decimal("50")},
        source="pack_cost",
    )
