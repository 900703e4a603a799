"""
Shared fixtures: a fake clock, an in-memory repository, a ready SessionStore
and an API client backed by the in-memory store.
"""

import pytest
from fastapi.testclient import TestClient

from app.main import create_application
from app.services.engine_registry import EngineRegistry
from app.services.session_store import SessionStore
from app.services.storage import InMemoryKeyValueStore, WorkoutRepository
from tests.factories import FakeClock, make_template

TEST_USER_ID = "test-user-123"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def repository(kv_store) -> WorkoutRepository:
    return WorkoutRepository(kv_store, TEST_USER_ID)


@pytest.fixture
def store(repository, clock) -> SessionStore:
    """Idle engine holding the default push template."""
    engine = SessionStore(repository, clock)
    engine.templates = [make_template()]
    engine.categories = ["Push Pull Legs"]
    return engine


@pytest.fixture
def client(clock):
    """API client with per-test in-memory storage."""
    app = create_application(EngineRegistry(InMemoryKeyValueStore(), clock=clock))
    with TestClient(app) as c:
        yield c
