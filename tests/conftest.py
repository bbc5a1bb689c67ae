# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/

Fixtures here never touch the network or the real filesystem outside
tmp_path. Stores are in-memory and time is a MockClock.
"""

import os
from collections.abc import Iterator

import pytest
from hypothesis import Verbosity, settings

from drawflow.core.blob_store import InMemoryBlobStore
from drawflow.core.config import BuildSettings, DrawflowSettings
from drawflow.core.store import EntityDatabase, SqlEntityStore
from drawflow.engine.clock import MockClock

# =============================================================================
# Hypothesis Profiles
# =============================================================================

settings.register_profile("ci", max_examples=100, deadline=None)
settings.register_profile("nightly", max_examples=1000, deadline=None)
settings.register_profile("debug", max_examples=10, verbosity=Verbosity.verbose, deadline=None)
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def entity_db() -> Iterator[EntityDatabase]:
    db = EntityDatabase.in_memory()
    yield db
    db.close()


@pytest.fixture
def entity_store(entity_db: EntityDatabase) -> SqlEntityStore:
    return SqlEntityStore(entity_db)


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore(bucket="test-bucket")


# =============================================================================
# Time and settings
# =============================================================================


@pytest.fixture
def mock_clock() -> MockClock:
    return MockClock()


@pytest.fixture
def fast_settings() -> DrawflowSettings:
    """Settings with a short readiness bound: 1s polls, 5s timeout, 6 attempts."""
    return DrawflowSettings(build=BuildSettings(poll_interval_seconds=1.0, ready_timeout_seconds=5.0))
