"""
Pytest fixtures for the inventory reconciliation test suite.

Provides:
- Structured logging configuration and a ``captured_logs`` fixture
- DeterministicClock and a fixed actor id
- Reference data (reasons, currencies, stock levels, exchange rates)
- Document builders for Physical Inventory and Stock Adjustment
- SQLite-backed session factory for repository tests
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from inventory_config import get_active_config
from inventory_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.domain.directories import StaticDirectory
from inventory_kernel.domain.values import (
    AdjustmentReason,
    AdjustmentType,
    CurrencyRef,
    ExchangeRateEntry,
)
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from inventory_modules.reconciliation.models import DocumentType
from inventory_services.lifecycle import DocumentLifecycle
from tests.builders import (
    APPROVER_ID,
    EUR,
    STORE_ID,
    TEST_ACTOR_ID,
    USD,
    pi_header,
    sa_header,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: long-running concurrency tests"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
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
    Capture inventory_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, lifecycle):
            lifecycle.submit(...)
            logs = captured_logs()
            assert any(r["message"] == "document_submitted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("inventory_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Time, actors, configuration
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock()


@pytest.fixture
def actor_id():
    return TEST_ACTOR_ID


@pytest.fixture
def approver_id():
    return APPROVER_ID


@pytest.fixture
def config_set():
    return get_active_config()


@pytest.fixture
def lifecycle(config_set, clock):
    return DocumentLifecycle(config=config_set, clock=clock)


# =============================================================================
# Reference data
# =============================================================================


@pytest.fixture
def directory():
    """Reasons, currencies and stock levels for store-main."""
    return StaticDirectory(
        reasons=(
            AdjustmentReason("reason-found", "Found in count", AdjustmentType.ADD),
            AdjustmentReason("reason-damaged", "Damaged", AdjustmentType.DEDUCT),
        ),
        currencies=(
            CurrencyRef(USD, "USD", "$", is_default=True),
            CurrencyRef(EUR, "EUR", "€"),
        ),
        stock_levels={
            ("widget", STORE_ID): Decimal("10"),
            ("gadget", STORE_ID): Decimal("4"),
            ("gizmo", STORE_ID): Decimal("0"),
        },
    )


@pytest.fixture
def rate_table():
    return (ExchangeRateEntry(EUR, USD, Decimal("1.10")),)


# =============================================================================
# Document builders
# =============================================================================


@pytest.fixture
def make_document(lifecycle, actor_id):
    """Build a draft document of either type with sensible defaults."""

    def _make(document_type=DocumentType.PHYSICAL_INVENTORY, lines=(), currency_id=USD, header=None, **kwargs):
        if header is None:
            header = (
                pi_header()
                if DocumentType(document_type) is DocumentType.PHYSICAL_INVENTORY
                else sa_header()
            )
        return lifecycle.create(
            document_type,
            store_id=kwargs.pop("store_id", STORE_ID),
            currency_id=currency_id,
            document_date=kwargs.pop("document_date", date(2024, 1, 1)),
            actor_id=actor_id,
            header=header,
            lines=lines,
            **kwargs,
        )

    return _make


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def session_factory():
    """In-memory SQLite engine with the reconciliation tables."""
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()
