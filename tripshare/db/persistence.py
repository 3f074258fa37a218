"""Async store for trip documents and invites.

Trips are stored whole, as JSON, next to a ``version`` counter. Every replace
is a compare-and-swap on that counter, so a writer holding an old snapshot gets
a STALE_TRIP conflict instead of silently overwriting someone else's change.
Invite creation and acceptance touch both tables in one transaction.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tripshare.db.models import Base
from tripshare.db.models import Invite as InviteRow
from tripshare.db.models import Trip as TripRow
from tripshare.db.models import TripMember
from tripshare.errors import ConflictError, ErrorCode, NotFoundError, PersistenceError
from tripshare.state import Invite, InviteStatus, Trip, User, normalize_email

logger = logging.getLogger(__name__)

# Keys owned by the row, not the JSON document.
_ROW_KEYS = {"id", "version"}


def _dump(trip: Trip) -> str:
    return json.dumps({k: v for k, v in trip.items() if k not in _ROW_KEYS}, default=str)


def _to_trip(row: TripRow) -> Trip:
    doc = json.loads(row.state_json) if row.state_json else {}
    doc["id"] = row.trip_id
    doc["version"] = row.version
    return doc


async def bounded(awaitable, timeout: float, what: str):
    """Await a store call, mapping timeouts and driver failures to PersistenceError.

    Domain errors raised by the store (conflicts, not-found) pass through.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.warning("%s timed out after %.0fs", what, timeout)
        raise PersistenceError(f"{what} timed out", code=ErrorCode.TIMEOUT) from e
    except SQLAlchemyError as e:
        logger.exception("%s failed", what)
        raise PersistenceError(f"{what} failed") from e


def _to_invite(row: InviteRow) -> Invite:
    return {
        "id": row.invite_id,
        "trip_id": row.trip_id,
        "trip_name": row.trip_name or "",
        "host_name": row.host_name or "",
        "host_email": row.host_email,
        "guest_email": row.guest_email,
        "permission": row.permission,
        "status": row.status,
    }


class TripRepository:
    """Async repository for trips, memberships and invites backed by SQLAlchemy."""

    def __init__(self, database_url: str) -> None:
        self.engine = create_async_engine(database_url, echo=False)
        self.async_session = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    async def init_db(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialised.")

    # ─── Trips ───────────────────────────────────────

    async def create_trip(self, trip: Trip, owner_id: str) -> Trip:
        async with self.async_session() as session:
            async with session.begin():
                row = TripRow(
                    trip_id=trip["id"],
                    owner_id=owner_id,
                    owner_email=normalize_email(trip.get("owner_email")),
                    state_json=_dump(trip),
                    version=1,
                    is_completed=bool(trip.get("is_completed")),
                )
                session.add(row)
                await self._sync_members(session, trip["id"], trip)
            logger.info("Created trip %s for user %s", trip["id"], owner_id)
            return _to_trip(row)

    async def get_trip(self, trip_id: str) -> Trip | None:
        async with self.async_session() as session:
            row = await session.get(TripRow, trip_id)
            return _to_trip(row) if row else None

    async def list_trips_for_user(self, user: User) -> list[Trip]:
        """Trips the user owns or participates in."""
        async with self.async_session() as session:
            member_of = select(TripMember.trip_id).where(TripMember.email == normalize_email(user["email"]))
            result = await session.execute(
                select(TripRow)
                .where((TripRow.owner_id == user["id"]) | (TripRow.trip_id.in_(member_of)))
                .order_by(TripRow.updated_at.desc())
            )
            return [_to_trip(row) for row in result.scalars().all()]

    async def replace_trip(self, trip_id: str, trip: Trip, expected_version: int | None = None) -> Trip:
        """Whole-document replacement. ``expected_version`` None skips the check."""
        async with self.async_session() as session:
            async with session.begin():
                row = await self._replace(session, trip_id, trip, expected_version)
            return _to_trip(row)

    async def _replace(
        self, session: AsyncSession, trip_id: str, trip: Trip, expected_version: int | None
    ) -> TripRow:
        stmt = update(TripRow).where(TripRow.trip_id == trip_id)
        if expected_version is not None:
            stmt = stmt.where(TripRow.version == expected_version)
        result = await session.execute(
            stmt.values(
                state_json=_dump(trip),
                version=TripRow.version + 1,
                is_completed=bool(trip.get("is_completed")),
                updated_at=datetime.now(timezone.utc),
            )
        )
        if result.rowcount == 0:
            row = await session.get(TripRow, trip_id)
            if row is None:
                raise NotFoundError(f"Trip {trip_id} not found", code=ErrorCode.TRIP_NOT_FOUND)
            logger.warning(
                "Stale write on trip %s: expected v%s, store has v%s", trip_id, expected_version, row.version
            )
            raise ConflictError(f"Trip {trip_id} changed since v{expected_version}", code=ErrorCode.STALE_TRIP)

        await self._sync_members(session, trip_id, trip)
        row = await session.get(TripRow, trip_id, populate_existing=True)
        return row

    async def _sync_members(self, session: AsyncSession, trip_id: str, trip: Trip) -> None:
        """Mirror trip.participants into trip_members."""
        wanted = {normalize_email(p["email"]): p["permission"] for p in trip.get("participants", [])}
        result = await session.execute(select(TripMember).where(TripMember.trip_id == trip_id))
        existing = {m.email: m for m in result.scalars().all()}

        stale = [email for email in existing if email not in wanted]
        if stale:
            await session.execute(
                delete(TripMember).where(TripMember.trip_id == trip_id, TripMember.email.in_(stale))
            )
        for email, permission in wanted.items():
            member = existing.get(email)
            if member is None:
                session.add(TripMember(trip_id=trip_id, email=email, permission=permission))
            elif member.permission != permission:
                member.permission = permission
        await session.flush()

    async def is_member(self, trip_id: str, email: str) -> bool:
        async with self.async_session() as session:
            result = await session.execute(
                select(TripMember).where(TripMember.trip_id == trip_id, TripMember.email == normalize_email(email))
            )
            return result.scalar_one_or_none() is not None

    # ─── Invites ─────────────────────────────────────

    async def get_invite(self, invite_id: str) -> Invite | None:
        async with self.async_session() as session:
            row = await session.get(InviteRow, invite_id)
            return _to_invite(row) if row else None

    async def find_invite(self, trip_id: str, guest_email: str) -> Invite | None:
        async with self.async_session() as session:
            result = await session.execute(
                select(InviteRow).where(
                    InviteRow.trip_id == trip_id, InviteRow.guest_email == normalize_email(guest_email)
                )
            )
            row = result.scalar_one_or_none()
            return _to_invite(row) if row else None

    async def list_invites_by_guest(self, email: str, statuses: list[str] | None = None) -> list[Invite]:
        return await self._list_invites(InviteRow.guest_email == normalize_email(email), statuses)

    async def list_invites_by_host(self, email: str, statuses: list[str] | None = None) -> list[Invite]:
        return await self._list_invites(InviteRow.host_email == normalize_email(email), statuses)

    async def list_inbox(self, email: str) -> list[Invite]:
        """Invites awaiting my answer plus rejections of invites I sent, in one query."""
        email = normalize_email(email)
        predicate = or_(
            (InviteRow.guest_email == email) & (InviteRow.status == InviteStatus.PENDING.value),
            (InviteRow.host_email == email) & (InviteRow.status == InviteStatus.REJECTED.value),
        )
        return await self._list_invites(predicate, None)

    async def _list_invites(self, predicate, statuses: list[str] | None) -> list[Invite]:
        async with self.async_session() as session:
            stmt = select(InviteRow).where(predicate)
            if statuses:
                stmt = stmt.where(InviteRow.status.in_([InviteStatus(s).value for s in statuses]))
            result = await session.execute(stmt.order_by(InviteRow.created_at))
            return [_to_invite(row) for row in result.scalars().all()]

    async def create_invite(self, invite: Invite, trip: Trip, expected_version: int | None) -> tuple[Invite, Trip]:
        """Insert the invite and replace the trip atomically.

        A duplicate (trip_id, guest_email) raises ALREADY_INVITED; a stale trip
        raises STALE_TRIP. Either way nothing is written.
        """
        async with self.async_session() as session:
            async with session.begin():
                row = InviteRow(
                    invite_id=invite["id"],
                    trip_id=invite["trip_id"],
                    trip_name=invite["trip_name"],
                    host_name=invite["host_name"],
                    host_email=normalize_email(invite["host_email"]),
                    guest_email=normalize_email(invite["guest_email"]),
                    permission=invite["permission"],
                    status=invite["status"],
                )
                session.add(row)
                try:
                    await session.flush()
                except IntegrityError as e:
                    raise ConflictError(
                        f"invite for {invite['guest_email']} on {invite['trip_id']} exists",
                        code=ErrorCode.ALREADY_INVITED,
                    ) from e
                trip_row = await self._replace(session, invite["trip_id"], trip, expected_version)
            logger.info("Invite %s created for %s on trip %s", row.invite_id, row.guest_email, row.trip_id)
            return _to_invite(row), _to_trip(trip_row)

    async def accept_invite(self, invite_id: str, trip: Trip, expected_version: int | None) -> Trip:
        """Delete the invite and replace the trip atomically."""
        async with self.async_session() as session:
            async with session.begin():
                row = await session.get(InviteRow, invite_id)
                if row is None:
                    raise NotFoundError(f"Invite {invite_id} not found", code=ErrorCode.INVITE_NOT_FOUND)
                if row.status != InviteStatus.PENDING.value:
                    raise ConflictError(
                        f"invite {invite_id} is {row.status}, expected PENDING", code=ErrorCode.INVALID_INVITE_STATE
                    )
                await session.delete(row)
                trip_row = await self._replace(session, row.trip_id, trip, expected_version)
            logger.info("Invite %s accepted by %s", invite_id, row.guest_email)
            return _to_trip(trip_row)

    async def remove_participant(self, trip_id: str, email: str, trip: Trip, expected_version: int | None) -> Trip:
        """Replace the trip and drop the removed guest's invite to it atomically."""
        async with self.async_session() as session:
            async with session.begin():
                await session.execute(
                    delete(InviteRow).where(
                        InviteRow.trip_id == trip_id, InviteRow.guest_email == normalize_email(email)
                    )
                )
                trip_row = await self._replace(session, trip_id, trip, expected_version)
            return _to_trip(trip_row)

    async def set_invite_status(self, invite_id: str, status: str) -> Invite:
        async with self.async_session() as session:
            row = await session.get(InviteRow, invite_id)
            if row is None:
                raise NotFoundError(f"Invite {invite_id} not found", code=ErrorCode.INVITE_NOT_FOUND)
            row.status = InviteStatus(status).value
            row.updated_at = datetime.now(timezone.utc)
            await session.commit()
            return _to_invite(row)

    async def delete_invite(self, invite_id: str) -> None:
        async with self.async_session() as session:
            row = await session.get(InviteRow, invite_id)
            if row is None:
                raise NotFoundError(f"Invite {invite_id} not found", code=ErrorCode.INVITE_NOT_FOUND)
            await session.delete(row)
            await session.commit()
            logger.info("Invite %s deleted", invite_id)

    async def close(self) -> None:
        await self.engine.dispose()
