"""Invite lifecycle: turns an email address into a trip participant.

States are PENDING and REJECTED; an accepted invite is deleted. Creating an
invite adds the guest to the trip right away, at the invite's permission, in
the same transaction that stores the invite. Email delivery happens after the
commit and never undoes it.
"""

from __future__ import annotations

import logging
import uuid

from tripshare.config.settings import get_settings
from tripshare.db.persistence import TripRepository, bounded
from tripshare.db.profiles import ProfileRepository
from tripshare.errors import AuthorizationError, ConflictError, ErrorCode, NotFoundError, ValidationError
from tripshare.itinerary import validate_trip
from tripshare.participants import add_participant
from tripshare.permissions import find_participant, parse_permission, require_edit
from tripshare.state import Invite, InviteStatus, Trip, User, normalize_email
from tripshare.tools.notify import InviteNotifier

logger = logging.getLogger(__name__)


class InviteService:
    def __init__(
        self,
        repo: TripRepository,
        profiles: ProfileRepository,
        notifier: InviteNotifier | None = None,
        timeout: float | None = None,
    ) -> None:
        self.repo = repo
        self.profiles = profiles
        self.notifier = notifier
        self.timeout = timeout if timeout is not None else get_settings().PERSISTENCE_TIMEOUT

    async def _store(self, awaitable, what: str):
        return await bounded(awaitable, self.timeout, what)

    async def _notify(self, invite: Invite) -> bool:
        if self.notifier is None:
            return False
        try:
            return await self.notifier.send_invite(invite)
        except Exception:
            logger.exception("Notification for invite %s failed", invite["id"])
            return False

    async def _load_invite(self, invite_id: str) -> Invite:
        invite = await self._store(self.repo.get_invite(invite_id), "load invite")
        if invite is None:
            raise NotFoundError(f"Invite {invite_id} not found", code=ErrorCode.INVITE_NOT_FOUND)
        return invite

    @staticmethod
    def _require_status(invite: Invite, status: InviteStatus) -> None:
        if invite["status"] != status.value:
            raise ConflictError(
                f"invite {invite['id']} is {invite['status']}, expected {status.value}",
                code=ErrorCode.INVALID_INVITE_STATE,
            )

    @staticmethod
    def _require_guest(invite: Invite, user: User) -> None:
        if normalize_email(user["email"]) != normalize_email(invite["guest_email"]):
            raise AuthorizationError(
                f"{user['email']} is not the guest of invite {invite['id']}", code=ErrorCode.NOT_INVITE_GUEST
            )

    @staticmethod
    def _require_host(invite: Invite, user: User) -> None:
        if normalize_email(user["email"]) != normalize_email(invite["host_email"]):
            raise AuthorizationError(
                f"{user['email']} is not the host of invite {invite['id']}", code=ErrorCode.NOT_INVITE_HOST
            )

    # ─── Host side ───────────────────────────────────

    async def create(self, trip: Trip, inviter: User, guest_email: str, permission: str) -> tuple[Invite, Trip]:
        """Invite ``guest_email`` to ``trip``; returns the stored invite and trip.

        Raises ValidationError (MISSING_EMAIL), AuthorizationError (inviter
        cannot edit) or ConflictError (NO_ACCOUNT, ALREADY_PARTICIPANT,
        ALREADY_INVITED, STALE_TRIP). Nothing is written when any of these fire.
        """
        guest_email = normalize_email(guest_email)
        if not guest_email:
            raise ValidationError("guest email is required", code=ErrorCode.MISSING_EMAIL)
        permission = parse_permission(permission)
        require_edit(trip, inviter["email"])

        guest = await self._store(self.profiles.find_by_email(guest_email), "look up guest profile")
        if guest is None:
            raise ConflictError(f"no account for {guest_email}", code=ErrorCode.NO_ACCOUNT)
        if find_participant(trip, guest_email) is not None:
            raise ConflictError(f"{guest_email} already participates", code=ErrorCode.ALREADY_PARTICIPANT)
        existing = await self._store(self.repo.find_invite(trip["id"], guest_email), "check existing invite")
        if existing is not None:
            raise ConflictError(f"{guest_email} already invited", code=ErrorCode.ALREADY_INVITED)

        updated = add_participant(trip, guest, permission)
        validate_trip(updated)
        invite: Invite = {
            "id": uuid.uuid4().hex,
            "trip_id": trip["id"],
            "trip_name": trip.get("name", ""),
            "host_name": inviter["name"],
            "host_email": normalize_email(inviter["email"]),
            "guest_email": guest_email,
            "permission": permission,
            "status": InviteStatus.PENDING.value,
        }
        saved, stored_trip = await self._store(
            self.repo.create_invite(invite, updated, trip.get("version")), "create invite"
        )
        logger.info("User %s invited %s to trip %s as %s", inviter["id"], guest_email, trip["id"], permission)

        await self._notify(saved)
        return saved, stored_trip

    async def resend(self, invite_id: str, host: User) -> Invite:
        """REJECTED -> PENDING, same id, and send the email again."""
        invite = await self._load_invite(invite_id)
        self._require_host(invite, host)
        self._require_status(invite, InviteStatus.REJECTED)
        invite = await self._store(
            self.repo.set_invite_status(invite_id, InviteStatus.PENDING.value), "resend invite"
        )
        logger.info("Invite %s resent by %s", invite_id, host["id"])
        await self._notify(invite)
        return invite

    async def dismiss(self, invite_id: str, host: User) -> None:
        """Drop a rejected invite from the host's inbox."""
        invite = await self._load_invite(invite_id)
        self._require_host(invite, host)
        self._require_status(invite, InviteStatus.REJECTED)
        await self._store(self.repo.delete_invite(invite_id), "dismiss invite")

    async def list_sent(self, host_email: str) -> list[Invite]:
        return await self._store(self.repo.list_invites_by_host(host_email), "list sent invites")

    # ─── Guest side ──────────────────────────────────

    async def accept(self, invite_id: str, guest: User) -> Trip:
        """Join the trip at the invite's permission; the invite is deleted."""
        invite = await self._load_invite(invite_id)
        self._require_status(invite, InviteStatus.PENDING)
        self._require_guest(invite, guest)

        trip = await self._store(self.repo.get_trip(invite["trip_id"]), "load trip")
        if trip is None:
            raise NotFoundError(f"Trip {invite['trip_id']} not found", code=ErrorCode.TRIP_NOT_FOUND)
        profile = await self._store(self.profiles.find_by_email(guest["email"]), "look up guest profile")
        if profile is None:
            raise ConflictError(f"no account for {guest['email']}", code=ErrorCode.NO_ACCOUNT)

        updated = add_participant(trip, profile, invite["permission"])
        stored = await self._store(
            self.repo.accept_invite(invite_id, updated, trip["version"]), "accept invite"
        )
        logger.info("User %s joined trip %s", guest["id"], trip["id"])
        return stored

    async def decline(self, invite_id: str, guest: User) -> Invite:
        """PENDING -> REJECTED. The guest stays on the participant list."""
        invite = await self._load_invite(invite_id)
        self._require_status(invite, InviteStatus.PENDING)
        self._require_guest(invite, guest)
        invite = await self._store(
            self.repo.set_invite_status(invite_id, InviteStatus.REJECTED.value), "decline invite"
        )
        logger.info("Invite %s declined by %s", invite_id, guest["id"])
        return invite

    async def inbox(self, email: str) -> list[Invite]:
        """Invites waiting on me plus rejections of invites I sent."""
        return await self._store(self.repo.list_inbox(email), "load inbox")
