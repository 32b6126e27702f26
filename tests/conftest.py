"""
Pytest fixtures for the budget engine test suite.

Provides:
- Structured logging setup and a log capture fixture
- In-memory SQLite sessions for persistence tests
- The Nike/Alpha reference scenario used across engine and service tests
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from budget_config import EngineSettings
from budget_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from budget_kernel.domain.models import (
    BrandBudgetRequest,
    ReferencePeriodSet,
    SalesRecord,
)
from budget_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()


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
    Capture budget_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            calculator.calculate(...)
            logs = captured_logs()
            assert any(r["message"] == "distribution_batch_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("budget_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database with all tables."""
    engine = init_engine_from_url("sqlite://")
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """A session on the in-memory database, closed after the test."""
    s = get_session()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Settings and scenario data
# =============================================================================


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture
def test_actor_id():
    return TEST_ACTOR_ID


NIKE_PERIODS = ("2025-02", "2025-01")


@pytest.fixture
def nike_periods() -> ReferencePeriodSet:
    return ReferencePeriodSet(NIKE_PERIODS)


@pytest.fixture
def nike_sales() -> list[SalesRecord]:
    """
    Client A buys article X for 1000 in each month; client B buys
    article Y for 2000 in January only.
    """
    return [
        SalesRecord("2025-01", "Nike", "A", "X", "V1", "Alpha", Decimal("1000")),
        SalesRecord("2025-02", "Nike", "A", "X", "V1", "Alpha", Decimal("1000")),
        SalesRecord("2025-01", "Nike", "B", "Y", "V2", "Alpha", Decimal("2000")),
    ]


@pytest.fixture
def nike_request() -> BrandBudgetRequest:
    return BrandBudgetRequest(
        brand="Nike",
        company="Alpha",
        target_date=date(2025, 6, 1),
        target_amount=Decimal("3000"),
    )
