"""Profile directory: user name/email records looked up by invite flows."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tripshare.db.models import Base, Profile
from tripshare.errors import ConflictError, ErrorCode, NotFoundError, ValidationError
from tripshare.state import User, normalize_email

logger = logging.getLogger(__name__)


def _to_user(row: Profile) -> User:
    return {"id": row.user_id, "name": row.name, "email": row.email}


class ProfileRepository:
    """CRUD operations for user profiles."""

    def __init__(self, database_url: str) -> None:
        self.engine = create_async_engine(database_url)
        self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    async def init_table(self) -> None:
        """Create the profiles table if it doesn't exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, tables=[Profile.__table__])

    async def close(self) -> None:
        await self.engine.dispose()

    async def create(self, name: str, email: str, user_id: str | None = None) -> User:
        name = (name or "").strip()
        email = normalize_email(email)
        if not name or not email:
            raise ValidationError("name and email are required")
        async with self.session_factory() as session:
            row = Profile(user_id=user_id or uuid.uuid4().hex, name=name, email=email)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                raise ConflictError(f"{email} is already registered", code=ErrorCode.EMAIL_TAKEN) from e
            logger.info("Created profile %s for %s", row.user_id, email)
            return _to_user(row)

    async def find_by_email(self, email: str) -> User | None:
        email = normalize_email(email)
        if not email:
            return None
        async with self.session_factory() as session:
            result = await session.execute(select(Profile).where(Profile.email == email))
            row = result.scalar_one_or_none()
            return _to_user(row) if row else None

    async def find_by_id(self, user_id: str) -> User | None:
        async with self.session_factory() as session:
            row = await session.get(Profile, user_id)
            return _to_user(row) if row else None

    async def update_name(self, user_id: str, name: str) -> User:
        name = (name or "").strip()
        if not name:
            raise ValidationError("name is required")
        async with self.session_factory() as session:
            row = await session.get(Profile, user_id)
            if row is None:
                raise NotFoundError(f"Profile {user_id} not found", code=ErrorCode.PARTICIPANT_NOT_FOUND)
            row.name = name
            row.updated_at = datetime.now(timezone.utc)
            await session.commit()
            return _to_user(row)
