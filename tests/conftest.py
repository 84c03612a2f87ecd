"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of skate.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402

from skate.database.engine import create_db_engine, init_db  # noqa: E402
from skate.services.challenge_service import ChallengeService  # noqa: E402
from skate.services.sql_store import SqlChallengeStore  # noqa: E402
from skate.services.store import MemoryChallengeStore  # noqa: E402

TURN_WINDOW = timedelta(hours=24)


class FakeClock:
    """Callable clock the tests can move forward by hand."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------
@pytest.fixture
def memory_store() -> MemoryChallengeStore:
    return MemoryChallengeStore()


@pytest.fixture
def sql_store() -> SqlChallengeStore:
    """SQL store on an in-memory SQLite engine (StaticPool, shared across threads)."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield SqlChallengeStore(engine)
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Runs the test once per store backend."""
    return request.getfixturevalue(f"{request.param}_store")


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(store, clock) -> ChallengeService:
    return ChallengeService(store, turn_window=TURN_WINDOW, clock=clock)


@pytest.fixture
def memory_service(memory_store, clock) -> ChallengeService:
    return ChallengeService(memory_store, turn_window=TURN_WINDOW, clock=clock)


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------
@pytest.fixture
def admin_token():
    """Generate a valid admin JWT for use in API integration tests."""
    return make_admin_token()


def make_admin_token(sub: str = "admin1", username: str = "FixtureAdmin") -> str:
    """Create an admin JWT.  Usable as both a fixture and a factory function."""
    import jwt

    from skate.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode(
        {"sub": sub, "username": username, "is_admin": True},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


@pytest.fixture
def client(memory_service):
    """FastAPI TestClient wired to a fresh, unseeded in-memory service."""
    from fastapi.testclient import TestClient

    from skate.api.deps import get_service
    from skate.api.main import app

    app.dependency_overrides[get_service] = lambda: memory_service
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
