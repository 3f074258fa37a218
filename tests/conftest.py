"""Shared test fixtures: users, a sample trip and a per-test SQLite store."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from tripshare.itinerary import new_trip
from tripshare.state import Trip, User


@pytest.fixture(autouse=True)
def mock_settings(monkeypatch):
    """Known settings for every test; no real email or LLM credentials."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    for key in ("EMAILJS_SERVICE_ID", "EMAILJS_TEMPLATE_ID", "EMAILJS_PUBLIC_KEY"):
        monkeypatch.delenv(key, raising=False)
    from tripshare.config.settings import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def owner() -> User:
    return {"id": "u-ana", "name": "Ana", "email": "ana@example.com"}


@pytest.fixture
def guest() -> User:
    return {"id": "u-bruno", "name": "Bruno", "email": "bruno@example.com"}


@pytest.fixture
def third() -> User:
    return {"id": "u-carla", "name": "Carla", "email": "carla@example.com"}


@pytest.fixture
def trip(owner) -> Trip:
    """Three-day Lisbon trip, 1000.00 BRL budget, owner only."""
    return new_trip(
        owner,
        destination="Lisbon",
        start_date="2025-03-01",
        end_date="2025-03-03",
        budget_cents=100_000,
    )


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest_asyncio.fixture
async def async_db(db_url):
    """Fresh trip/invite store on a temporary SQLite file."""
    from tripshare.db.persistence import TripRepository

    repo = TripRepository(db_url)
    await repo.init_db()
    yield repo
    await repo.close()


@pytest_asyncio.fixture
async def profiles(db_url, async_db, owner, guest, third):
    """Profile directory with Ana, Bruno and Carla registered."""
    from tripshare.db.profiles import ProfileRepository

    repo = ProfileRepository(db_url)
    await repo.init_table()
    for user in (owner, guest, third):
        await repo.create(user["name"], user["email"], user_id=user["id"])
    yield repo
    await repo.close()


@pytest.fixture
def notifier():
    notifier = MagicMock()
    notifier.send_invite = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def invite_service(async_db, profiles, notifier):
    from tripshare.invites import InviteService

    return InviteService(async_db, profiles, notifier, timeout=5.0)


@pytest.fixture
def orchestrator(async_db, invite_service):
    from tripshare.orchestrator import TripOrchestrator

    return TripOrchestrator(async_db, invite_service, timeout=5.0)


@pytest_asyncio.fixture
async def stored_trip(orchestrator, owner) -> Trip:
    """The Lisbon trip, persisted (version 1)."""
    result = await orchestrator.create_trip(
        owner,
        destination="Lisbon",
        start_date="2025-03-01",
        end_date="2025-03-03",
        budget=100_000,
    )
    return result.trip
