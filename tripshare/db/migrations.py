"""Database initialisation: creates tables at startup."""

from __future__ import annotations

import logging

from tripshare.db.persistence import TripRepository
from tripshare.db.profiles import ProfileRepository

logger = logging.getLogger(__name__)


async def init_db(database_url: str) -> tuple[TripRepository, ProfileRepository]:
    """Create tables and return ready-to-use repositories."""
    repo = TripRepository(database_url)
    await repo.init_db()

    profiles = ProfileRepository(database_url)
    await profiles.init_table()

    return repo, profiles
