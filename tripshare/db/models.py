"""SQLAlchemy models for trips, memberships, invites and profiles."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Trip(Base):
    __tablename__ = "trips"

    trip_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    owner_email: Mapped[str] = mapped_column(String(320), nullable=False)
    state_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_now, onupdate=_now)

    __table_args__ = (Index("idx_trips_owner", "owner_id"),)

    def __repr__(self) -> str:
        return f"<Trip {self.trip_id} owner={self.owner_id} v{self.version}>"


class TripMember(Base):
    """Index of trip.participants, so a user's trips can be listed without scanning documents."""

    __tablename__ = "trip_members"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    trip_id: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    permission: Mapped[str] = mapped_column(String(16), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    __table_args__ = (
        UniqueConstraint("trip_id", "email", name="uq_trip_member"),
        Index("idx_trip_members_email", "email"),
    )


class Invite(Base):
    __tablename__ = "invites"

    invite_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    trip_id: Mapped[str] = mapped_column(String(64), nullable=False)
    trip_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    host_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    host_email: Mapped[str] = mapped_column(String(320), nullable=False)
    guest_email: Mapped[str] = mapped_column(String(320), nullable=False)
    permission: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_now, onupdate=_now)

    __table_args__ = (
        UniqueConstraint("trip_id", "guest_email", name="uq_invite_trip_guest"),
        Index("idx_invites_guest", "guest_email", "status"),
        Index("idx_invites_host", "host_email", "status"),
    )

    def __repr__(self) -> str:
        return f"<Invite {self.invite_id} {self.host_email}->{self.guest_email} {self.status}>"


class Profile(Base):
    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_now, onupdate=_now)
