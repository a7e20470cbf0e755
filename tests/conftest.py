"""
Shared test fixtures.

Provides:
  • a FixedClock pinned to tests.mocks.models.NOW
  • an in-memory provider and a BookingEngine built on it
  • a FastAPI TestClient wired to a temporary SQLite database (via app
    lifespan) and an engine on the same fixed clock, optionally seeded
    with the mock facility through the admin endpoints

The `client` fixture runs the full lifespan (DB init / shutdown) so the
storage-backed endpoints work end to end.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_engine
from app.main import app
from app.services.clock import FixedClock
from app.services.engine import BookingEngine
from app.services.providers import DatabaseProvider
from tests.mocks.models import FACILITY_ID, MOCK_COURTS, MOCK_POLICY, NOW
from tests.mocks.providers import InMemoryProvider


# ── Engine fixtures ────────────────────────────────────────────────────────


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture()
def provider() -> InMemoryProvider:
    return InMemoryProvider()


@pytest.fixture()
def engine(provider: InMemoryProvider, clock: FixedClock) -> BookingEngine:
    return BookingEngine(provider, clock=clock, fail_open_rule_codes=())


# ── App fixtures ───────────────────────────────────────────────────────────


@pytest.fixture()
def _test_env(monkeypatch, tmp_path):
    """
    Internal fixture that points the DB at a temp file and turns HTTP rate
    limiting off so the app lifespan runs cleanly in tests.
    """
    # ── Temp database ─────────────────────────────────────────────────
    import app.db as db_mod

    monkeypatch.setattr(db_mod, "DB_PATH", str(tmp_path / "test.db"))

    # ── Disable rate limiting in tests ────────────────────────────────
    from app.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)


@pytest.fixture()
def client(_test_env, clock: FixedClock) -> TestClient:
    """
    FastAPI TestClient backed by a temp DB and a fixed-clock engine.

    Uses a context manager so the lifespan runs (DB init/shutdown).
    """
    test_engine = BookingEngine(DatabaseProvider(), clock=clock, fail_open_rule_codes=())
    app.dependency_overrides[get_engine] = lambda: test_engine

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()


@pytest.fixture()
def seeded_client(client: TestClient) -> TestClient:
    """`client` with the mock facility's policy and courts stored through the API."""
    resp = client.put(
        f"/api/facilities/{FACILITY_ID}/policy",
        json=MOCK_POLICY.model_dump(mode="json"),
    )
    assert resp.status_code == 200, resp.text

    # Parents before sub-courts
    for court in sorted(MOCK_COURTS, key=lambda c: c.parent_court_id is not None):
        resp = client.put(
            f"/api/facilities/{FACILITY_ID}/courts/{court.id}",
            json=court.model_dump(mode="json", exclude={"child_court_ids"}),
        )
        assert resp.status_code == 200, resp.text
    return client
