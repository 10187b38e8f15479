from __future__ import annotations

import os

# Settings are read at import time; point them at SQLite before mbic loads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("RECONCILIATION_SEVERITY", None)
os.environ.pop("RECONCILIATION_FIXTURE", None)

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from mbic import database
from mbic.database import Base, SessionLocal
from mbic.models import SalesRecord
from mbic.schemas.sales import SalesRow
from mbic.services.reconciliation import AccountExpectation, load_expectation


TEST_DATABASE_URL = "sqlite://"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Ensure application code uses the test engine
database.engine = test_engine
SessionLocal.configure(bind=test_engine)


class FakeRpcClient:
    """Stand-in for RpcClient: canned rows (or an exception) per function name."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def call(self, fn, params=None):
        self.calls.append((fn, dict(params or {})))
        result = self.responses.get(fn, [])
        if isinstance(result, Exception):
            raise result
        return result


def rows_for_expectation(expectation: AccountExpectation, customer_id: int = 1, rep_id: int = 7):
    """Invoice rows that reproduce ``expectation`` exactly.

    Each month total is split in whole cents across its row count, with the
    remainder on the month's last row.
    """
    rows = []
    for month, expected in expectation.months.items():
        total_cents = int(round(expected.total * 100))
        base = total_cents // expected.rows
        for index in range(expected.rows):
            cents = base if index < expected.rows - 1 else total_cents - base * (expected.rows - 1)
            rows.append(SalesRow(
                invoice_date=f"{month}-{index % 28 + 1:02d}",
                invoice_amount=cents / 100,
                customer_id=customer_id,
                rep_id=rep_id,
                invoice_number=f"INV-{month}-{index:03d}",
            ))
    return rows


@pytest.fixture(autouse=True)
def _reset_database_state():
    """Ensure each test sees a fresh database schema."""
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def linda_expectation():
    return load_expectation()


@pytest.fixture
def linda_rows(linda_expectation):
    return rows_for_expectation(linda_expectation)


@pytest.fixture
def add_sales(db_session):
    """Insert SalesRow-like rows into sales_demo."""

    def _add(rows):
        for row in rows:
            db_session.add(SalesRecord(
                invoice_date=date.fromisoformat(row.invoice_date),
                invoice_amount=row.invoice_amount,
                customer_id=row.customer_id,
                rep_id=row.rep_id,
                invoice_number=row.invoice_number,
                collection=row.collection,
            ))
        db_session.commit()

    return _add


@pytest.fixture
def fake_rpc():
    return FakeRpcClient()


@pytest.fixture
def client(db_session, fake_rpc):
    """TestClient with the database and RPC client swapped for test doubles."""
    from fastapi.testclient import TestClient

    from mbic.database import get_db
    from mbic.dependencies import get_rpc
    from mbic.main import app

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_rpc] = lambda: fake_rpc
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
