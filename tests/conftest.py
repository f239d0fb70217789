"""
Pytest configuration and shared fixtures.

WHAT: Markers, an in-memory database per test, and fake collaborators
WHY: Every test gets an isolated store and deterministic adapters
HOW: StaticPool SQLite engine with the full schema; fakes from tests/fixtures
"""

import pytest

from negbot.core.config import Settings
from negbot.core.database import create_db_engine, init_db, make_session_factory
from negbot.core.state_store import NegotiationStore
from negbot.services.group_completion import GroupCompletionProtocol
from negbot.services.leverage import LeverageEngine
from tests.fixtures.fakes import FakeMessagingChannel, RecordingErrorReporter, RecordingNotifier


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (isolated component tests)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (multiple components)"
    )


@pytest.fixture
def test_settings():
    """
    Settings for tests.

    WHAT: Fast, file-free configuration
    WHY: Isolate tests from .env and avoid sleeps between turns
    HOW: Explicit Settings instance passed to the components under test
    """
    return Settings(
        DATABASE_URL="sqlite://",
        LLM_BASE_URL="http://llm.test/v1",
        LLM_API_KEY="test-key",
        LLM_MODEL="test-model",
        LLM_MAX_RETRIES=3,
        LLM_RETRY_DELAY=0,
        MESSAGING_BASE_URL="http://vendors.test",
        MESSAGING_TEAM_ID="42",
        MAX_AGENT_STEPS=10,
        MAX_SESSION_ITERATIONS=8,
        MAX_CONSECUTIVE_NO_PROGRESS=3,
        SESSION_ITERATION_DELAY=0,
        PARALLEL_SESSION_LIMIT=4,
        ALLOW_REPEATED_FINISH=False,
        ENFORCE_TOOL_SEQUENCING=False,
        REQUIRE_NEGOTIATION_RECORD=False,
        RESEND_API_KEY="",
        NOTIFY_EMAIL="",
        LOG_LEVEL="DEBUG",
        LOG_FILE="",
    )


@pytest.fixture
def db_engine():
    """Fresh in-memory database with all tables."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(db_engine):
    return NegotiationStore(make_session_factory(db_engine))


@pytest.fixture
def reporter():
    return RecordingErrorReporter()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def channel():
    return FakeMessagingChannel()


@pytest.fixture
def leverage(store, reporter):
    return LeverageEngine(store, reporter)


@pytest.fixture
def completion(store, reporter, notifier):
    return GroupCompletionProtocol(store, reporter, notifier)


@pytest.fixture
def vendors(store):
    """Two vendors with names that never occur in prices."""
    return (
        store.create_vendor("Acme Supplies", "Friendly, responds well to volume commitments.", vendor_id=7),
        store.create_vendor("Bolt Industrial", "Tough negotiator, rarely moves on price.", vendor_id=8),
    )
