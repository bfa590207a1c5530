"""Pytest configuration for Classroom Undo Toolkit."""

from datetime import datetime

import pytest

from classroom_undo.cleanup import CleanupService, LastRunStore
from classroom_undo.clock import FrozenClock
from classroom_undo.config import UndoConfig, set_config
from classroom_undo.database import create_session_factory
from classroom_undo.soft_delete import SoftDeleteService
from classroom_undo.undo import SQLActionLedgerStorage, UndoManager

START = datetime(2025, 2, 7, 8, 0, 0)


def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "cli: mark test as command line test")


@pytest.fixture(autouse=True)
def reset_global_config():
    """Keep the global configuration from leaking between tests."""
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def config(tmp_path):
    """Test configuration with an in-memory database."""
    return UndoConfig(
        environment="test",
        database_url="sqlite://",
        state_file=str(tmp_path / "cleanup_state.json"),
    )


@pytest.fixture
def clock():
    """Frozen clock starting at 2025-02-07 08:00 UTC."""
    return FrozenClock(START)


@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory database."""
    factory = create_session_factory("sqlite://")
    yield factory
    factory.kw["bind"].dispose()


@pytest.fixture
def trash(session_factory, config, clock):
    """Soft delete service on the test database."""
    return SoftDeleteService(session_factory, config=config, clock=clock)


@pytest.fixture
def ledger(session_factory):
    """SQL ledger storage on the test database."""
    return SQLActionLedgerStorage(session_factory)


@pytest.fixture
def undo_manager(trash, ledger):
    """Undo manager sharing the service's clock and config."""
    return UndoManager(trash, ledger)


@pytest.fixture
def cleanup_service(trash, undo_manager, config):
    """Cleanup service with its state file in a temporary directory."""
    return CleanupService(trash, undo_manager, state=LastRunStore(config.state_file))


@pytest.fixture
def seed(session_factory):
    """Insert a record and return its ID."""

    def _seed(record_cls, **values):
        with session_factory() as session:
            record = record_cls(**values)
            session.add(record)
            session.commit()
            return record.id

    return _seed
