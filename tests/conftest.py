"""
Pytest fixtures for the trade ledger test suite.

Provides:
- Database sessions (SQLite in memory by default, PostgreSQL via DATABASE_URL)
- Party and invoice factories
- Wired module services with a deterministic clock
- Structured log capture

Environment Variables:
- DATABASE_URL: database URL for the suite.  Defaults to in-memory SQLite;
  tests marked ``postgres`` are skipped unless it points at PostgreSQL.
"""

import json
import logging
import os
from datetime import UTC, datetime
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID

import pytest
from sqlalchemy.orm import Session

from tradeledger_config.schema import OutboxPolicy, SettlementConfig
from tradeledger_kernel.db.engine import drop_tables, init_engine_from_url, reset_engine
from tradeledger_kernel.domain.clock import DeterministicClock
from tradeledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from tradeledger_kernel.models.party import Party, PartyType
from tradeledger_modules._orm_registry import create_all_tables
from tradeledger_modules.balances import BalanceResolver
from tradeledger_modules.invoices.models import CustomerInvoice, InvoiceKind, SupplierInvoice
from tradeledger_modules.invoices.orm import CustomerInvoiceModel, SupplierInvoiceModel
from tradeledger_modules.ledger import LedgerProjector
from tradeledger_modules.payments import PaymentService
from tradeledger_services.notification import Notifier
from tradeledger_services.outbox_dispatcher import OutboxDispatcher

# Deterministic ids shared by the whole suite
TEST_ACTOR_ID = UUID("00000000-0000-4000-a000-000000000001")
TEST_CUSTOMER_ID = UUID("00000000-0000-4000-a000-000000000002")
TEST_SUPPLIER_ID = UUID("00000000-0000-4000-a000-000000000003")
OTHER_CUSTOMER_ID = UUID("00000000-0000-4000-a000-000000000004")
OTHER_SUPPLIER_ID = UUID("00000000-0000-4000-a000-000000000005")

FIXED_NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)

DEFAULT_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL (real concurrent connections)"
    )


def pytest_collection_modifyitems(config, items):
    if get_database_url().startswith("postgresql"):
        return
    skip = pytest.mark.skip(reason="requires DATABASE_URL pointing at PostgreSQL")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture tradeledger logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, payment_service):
            payment_service.record_payment(...)
            logs = captured_logs()
            assert any(r["message"] == "payment_record_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    handler.setLevel(logging.DEBUG)
    root = logging.getLogger("tradeledger")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Session-scoped DB infrastructure
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end."""
    drop_tables()
    create_all_tables()
    yield
    drop_tables()


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session joins an outer transaction on a dedicated connection; any
    ``session.commit()`` inside a service releases a savepoint, and the outer
    transaction is rolled back at teardown.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Clock, config, actors
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def settlement_config() -> SettlementConfig:
    return SettlementConfig()


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


# =============================================================================
# Parties and invoices
# =============================================================================


def _add_party(session: Session, party_id: UUID, code: str, party_type: PartyType, name: str) -> Party:
    party = Party(
        id=party_id,
        party_code=code,
        party_type=party_type.value,
        name=name,
        created_by_id=TEST_ACTOR_ID,
    )
    session.add(party)
    session.commit()
    return party


@pytest.fixture
def customer(session) -> Party:
    return _add_party(session, TEST_CUSTOMER_ID, "CUST-001", PartyType.CUSTOMER, "Acme Imports")


@pytest.fixture
def other_customer(session) -> Party:
    return _add_party(session, OTHER_CUSTOMER_ID, "CUST-002", PartyType.CUSTOMER, "Borealis Trading")


@pytest.fixture
def supplier(session) -> Party:
    return _add_party(session, TEST_SUPPLIER_ID, "SUP-001", PartyType.SUPPLIER, "Ningbo Lighting Factory")


@pytest.fixture
def other_supplier(session) -> Party:
    return _add_party(session, OTHER_SUPPLIER_ID, "SUP-002", PartyType.SUPPLIER, "Shenzhen Metalworks")


@pytest.fixture
def make_invoice(session):
    """
    Factory for customer orders and purchase orders.

    Rows are committed (the outer test transaction still rolls them back)
    so a service rollback inside a test leaves the fixtures in place.

    Usage::

        po = make_invoice(InvoiceKind.SUPPLIER, supplier.id, "PO-1", "10000", "CNY")
    """
    counter = {"n": 0}

    def _make(
        kind: InvoiceKind,
        account_id: UUID,
        number: str,
        total_value: Decimal | str,
        currency: str = "USD",
        status: str = "confirmed",
        created_at: datetime | None = None,
    ):
        counter["n"] += 1
        if created_at is None:
            created_at = datetime(2024, 1, counter["n"], 9, 0, 0, tzinfo=UTC)
        fields = dict(
            id=UUID(int=0x1000 + counter["n"]),
            account_id=account_id,
            number=number,
            total_value=Decimal(total_value),
            currency=currency,
            status=status,
            created_at=created_at,
        )
        if InvoiceKind(kind) is InvoiceKind.CUSTOMER:
            dto = CustomerInvoice(**fields)
            model = CustomerInvoiceModel.from_dto(dto, created_by_id=TEST_ACTOR_ID)
        else:
            dto = SupplierInvoice(**fields)
            model = SupplierInvoiceModel.from_dto(dto, created_by_id=TEST_ACTOR_ID)
        session.add(model)
        session.commit()
        return dto

    return _make


# =============================================================================
# Services
# =============================================================================


class RecordingNotifier(Notifier):
    """Notifier that remembers every message it was asked to send."""

    def __init__(self):
        self.sent: list[tuple[UUID, str, dict]] = []

    def notify(self, counterpart_id, message_type, payload):
        self.sent.append((counterpart_id, message_type, payload))


@pytest.fixture
def recording_notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def outbox_dispatcher(session, recording_notifier, deterministic_clock):
    dispatcher = OutboxDispatcher(
        session,
        recording_notifier,
        OutboxPolicy(max_attempts=3, retry_backoff_seconds=30, notification_timeout_seconds=1.0),
        clock=deterministic_clock,
    )
    yield dispatcher
    dispatcher.close()


@pytest.fixture
def payment_service(session, settlement_config, deterministic_clock) -> PaymentService:
    return PaymentService(session, settlement_config, clock=deterministic_clock)


@pytest.fixture
def balance_resolver(session, settlement_config) -> BalanceResolver:
    return BalanceResolver(session, settlement_config)


@pytest.fixture
def ledger_projector(session, settlement_config, deterministic_clock) -> LedgerProjector:
    return LedgerProjector(session, settlement_config, clock=deterministic_clock)
