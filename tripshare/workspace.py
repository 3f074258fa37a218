"""Per-session client state: signed-in user, their trips, inbox and view.

Local state changes only after the store call it depends on has succeeded;
when a call raises, the workspace is left as it was.
"""

from __future__ import annotations

import logging
from typing import Awaitable

from tripshare.errors import ErrorCode, NotFoundError
from tripshare.invites import InviteService
from tripshare.orchestrator import MutationResult, TripOrchestrator
from tripshare.permissions import can_edit
from tripshare.state import Invite, Trip, User, View

logger = logging.getLogger(__name__)


class Workspace:
    def __init__(self, orchestrator: TripOrchestrator, invites: InviteService) -> None:
        self.orchestrator = orchestrator
        self.invites = invites
        self.user: User | None = None
        self.trips: list[Trip] = []
        self.inbox: list[Invite] = []
        self.current_trip_id: str | None = None
        self.view: View = View.TRIP_LIST

    @property
    def current_trip(self) -> Trip | None:
        if self.current_trip_id is None:
            return None
        return next((t for t in self.trips if t["id"] == self.current_trip_id), None)

    @property
    def can_edit_current(self) -> bool:
        trip = self.current_trip
        return bool(trip and self.user and can_edit(trip, self.user["email"]))

    async def load(self, user: User) -> None:
        trips = await self.orchestrator.load_trips(user)
        inbox = await self.invites.inbox(user["email"])
        self.user = user
        self.trips = trips
        self.inbox = inbox
        self.current_trip_id = None
        self.view = View.TRIP_LIST
        logger.info("Workspace loaded for %s: %d trips, %d inbox items", user["id"], len(trips), len(inbox))

    def sign_out(self) -> None:
        self.user = None
        self.trips = []
        self.inbox = []
        self.current_trip_id = None
        self.view = View.TRIP_LIST

    def open_trip(self, trip_id: str) -> Trip:
        trip = next((t for t in self.trips if t["id"] == trip_id), None)
        if trip is None:
            raise NotFoundError(f"Trip {trip_id} not in workspace", code=ErrorCode.TRIP_NOT_FOUND)
        self.current_trip_id = trip_id
        self.view = View.TRIP
        return trip

    def close_trip(self) -> None:
        self.current_trip_id = None
        self.view = View.TRIP_LIST

    def apply(self, result: MutationResult) -> None:
        """Commit a persisted mutation locally.

        Losing access drops the trip and falls back to the trip list.
        """
        trip = result.trip
        if not result.has_access:
            self.trips = [t for t in self.trips if t["id"] != trip["id"]]
            if self.current_trip_id == trip["id"]:
                self.close_trip()
            logger.info("Access to trip %s lost; back to trip list", trip["id"])
            return

        for index, existing in enumerate(self.trips):
            if existing["id"] == trip["id"]:
                self.trips[index] = trip
                break
        else:
            self.trips.insert(0, trip)

    async def perform(self, pending: Awaitable[MutationResult]) -> MutationResult:
        """Await an orchestrator call and commit its result."""
        result = await pending
        self.apply(result)
        return result

    async def create_trip(self, **fields) -> Trip:
        result = await self.perform(self.orchestrator.create_trip(self.user, **fields))
        return self.open_trip(result.trip["id"])

    async def refresh_inbox(self) -> list[Invite]:
        self.inbox = await self.invites.inbox(self.user["email"])
        return self.inbox

    async def accept_invite(self, invite_id: str) -> Trip:
        trip = await self.invites.accept(invite_id, self.user)
        self.apply(MutationResult(trip, True))
        await self.refresh_inbox()
        return trip

    async def decline_invite(self, invite_id: str) -> None:
        await self.invites.decline(invite_id, self.user)
        await self.refresh_inbox()

    async def resend_invite(self, invite_id: str) -> None:
        await self.invites.resend(invite_id, self.user)
        await self.refresh_inbox()

    async def dismiss_invite(self, invite_id: str) -> None:
        await self.invites.dismiss(invite_id, self.user)
        await self.refresh_inbox()
