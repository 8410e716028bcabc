"""
Shared fixtures for the clinic kernel test suite.

Logging is configured once per session in JSON mode; ``captured_logs``
gives tests the parsed records.  Database tests run against a SQLite file
under ``tmp_path``; the same repository code runs on PostgreSQL in
production.
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest

from clinic_config import get_active_config
from clinic_config.bridges import build_status_machine
from clinic_kernel.domain.clock import DeterministicClock
from clinic_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from clinic_kernel.services.inventory_service import InventoryService
from clinic_kernel.services.lifecycle_service import LifecycleService
from clinic_kernel.services.repository import InMemoryRepository

START = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session", autouse=True)
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
    Capture clinic_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, inventory_service):
            inventory_service.withdraw(...)
            logs = captured_logs()
            assert any(r["message"] == "withdrawal_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("clinic_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as exercising concurrent writers"
    )


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(START)


@pytest.fixture
def active_config():
    return get_active_config()


@pytest.fixture
def status_machine(active_config):
    return build_status_machine(active_config)


@pytest.fixture
def memory_repository():
    return InMemoryRepository()


@pytest.fixture
def lifecycle_service(memory_repository, status_machine, deterministic_clock):
    return LifecycleService(memory_repository, status_machine, deterministic_clock)


@pytest.fixture
def inventory_service(memory_repository, deterministic_clock):
    return InventoryService(memory_repository, deterministic_clock)


@pytest.fixture
def sqlite_engine(tmp_path):
    """File-backed SQLite engine with every kernel table created."""
    from clinic_kernel.db.engine import (
        create_tables,
        init_engine_from_url,
        reset_engine,
    )
    from clinic_kernel.db.immutability import (
        register_immutability_listeners,
        unregister_immutability_listeners,
    )

    engine = init_engine_from_url(f"sqlite:///{tmp_path / 'clinic.db'}")
    create_tables()
    register_immutability_listeners()
    yield engine
    unregister_immutability_listeners()
    reset_engine()


@pytest.fixture
def session(sqlite_engine):
    from clinic_kernel.db.engine import get_session

    db_session = get_session()
    yield db_session
    db_session.rollback()
    db_session.close()
