"""Pytest configuration and shared fixtures for Recouvrement tests.

Provides an isolated SQLite database per test, factories for cases and
payments, a ``PaymentLedger`` bound to the test engine, and a Flask app and
client wired to a temporary data directory.
"""

from __future__ import annotations

import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from recouvrement import create_app
from recouvrement.config import TestConfig
from recouvrement.infra.database import create_db_engine, create_session_factory, init_database
from recouvrement.models import CaseStatus, CollectionCase, Payment, PaymentMode
from recouvrement.services.ledger import PaymentLedger
from recouvrement.services.reconciliation import PaymentRequest

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine(tmp_path, monkeypatch: pytest.MonkeyPatch):
    """Create an isolated SQLite database file for each test.

    A file rather than ``:memory:`` so that worker threads in the concurrency
    tests see the same database.
    """
    monkeypatch.setenv("RECOUVREMENT_DATA_DIR", str(tmp_path))
    with tempfile.NamedTemporaryFile(suffix=".db", dir=tmp_path, delete=False) as f:
        db_path = Path(f.name)

    engine = create_db_engine(TestConfig(database_url=f"sqlite:///{db_path}"))
    init_database(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Factory returning transactional ``session_scope`` context managers."""
    return create_session_factory(db_engine)


@pytest.fixture
def ledger(db_engine) -> PaymentLedger:
    return PaymentLedger(db_engine, use_case_locks=True)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def case_factory(session_factory):
    """Factory for persisted collection cases.

    Returns:
        Callable: Function that creates and commits a ``CollectionCase``
    """
    counter = {"n": 0}

    def _create_case(
        total_owed: Decimal | str = "1000.00",
        penalties: Decimal | str = "0.00",
        status: CaseStatus = CaseStatus.IN_PROGRESS,
        creditor_name: str = "Banque Atlantique",
        debtor_name: str = "Moussa Diop",
        reference: str | None = None,
    ) -> CollectionCase:
        counter["n"] += 1
        owed = Decimal(str(total_owed))
        extra = Decimal(str(penalties))
        case = CollectionCase(
            reference=reference or f"DOS-REC-{counter['n']:03d}",
            creditor_name=creditor_name,
            debtor_name=debtor_name,
            principal_amount=owed - extra,
            penalties_interest=extra,
            total_owed=owed,
            status=status,
            created_by="tester",
        )
        with session_factory() as session:
            session.add(case)
        return case

    return _create_case


@pytest.fixture
def payment_factory(session_factory):
    """Factory for payments inserted directly, bypassing reconciliation."""

    def _create_payment(
        case: CollectionCase,
        amount: Decimal | str,
        paid_on: date = date(2026, 2, 24),
        mode: PaymentMode = PaymentMode.CASH,
        reference: str | None = None,
        comment: str | None = None,
    ) -> Payment:
        payment = Payment(
            case_id=case.id,
            amount=Decimal(str(amount)),
            paid_on=paid_on,
            mode=mode,
            reference=reference,
            comment=comment,
            created_by="tester",
        )
        with session_factory() as session:
            session.add(payment)
        return payment

    return _create_payment


@pytest.fixture
def payment_request():
    """Build a ``PaymentRequest`` with sensible defaults."""

    def _build(
        case: CollectionCase,
        amount: Decimal | str,
        paid_on: date = date(2026, 2, 24),
        mode: PaymentMode = PaymentMode.CASH,
        reference: str | None = None,
        comment: str | None = None,
    ) -> PaymentRequest:
        return PaymentRequest(
            case_id=case.id,
            amount=Decimal(str(amount)),
            paid_on=paid_on,
            mode=mode,
            reference=reference,
            comment=comment,
        )

    return _build


# =============================================================================
# Flask Fixtures
# =============================================================================


@pytest.fixture()
def app(tmp_path, monkeypatch: pytest.MonkeyPatch):
    db_path = tmp_path / "recouvrement.db"
    monkeypatch.setenv("RECOUVREMENT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("RECOUVREMENT_DATABASE_URL", f"sqlite:///{db_path}")
    return create_app("testing")


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client
