"""Trip mutation orchestrator.

Each mutation follows the same path: permission check, pure edit on a copy of
the caller's snapshot, invariant check, then a whole-document replace guarded
by the snapshot's ``version``. The caller gets back the stored trip and
whether the acting user can still see it. On any failure the caller's
snapshot is exactly what it was.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from tripshare import itinerary
from tripshare.agents.suggestions import SuggestionAgent
from tripshare.config.settings import get_settings
from tripshare.db.persistence import TripRepository, bounded
from tripshare.invites import InviteService
from tripshare.participants import change_permission, has_access, remove_participant
from tripshare.permissions import require_edit
from tripshare.state import Activity, Invite, Trip, User
from tripshare.tools.currency import parse_amount

logger = logging.getLogger(__name__)


class MutationResult(NamedTuple):
    trip: Trip
    has_access: bool


class TripOrchestrator:
    def __init__(
        self,
        repo: TripRepository,
        invites: InviteService,
        suggestions: SuggestionAgent | None = None,
        timeout: float | None = None,
    ) -> None:
        self.repo = repo
        self.invites = invites
        self.suggestions = suggestions
        self.timeout = timeout if timeout is not None else get_settings().PERSISTENCE_TIMEOUT

    async def _persist(self, updated: Trip, expected_version: int | None, actor: User, what: str) -> MutationResult:
        itinerary.validate_trip(updated)
        stored = await bounded(
            self.repo.replace_trip(updated["id"], updated, expected_version=expected_version),
            self.timeout,
            what,
        )
        logger.info("%s on trip %s by %s (v%s)", what, stored["id"], actor["id"], stored["version"])
        return MutationResult(stored, has_access(stored, actor["email"]))

    async def _apply(self, trip: Trip, actor: User, what: str, edit, *args, **kwargs) -> MutationResult:
        require_edit(trip, actor["email"])
        updated = edit(trip, *args, **kwargs)
        return await self._persist(updated, trip.get("version"), actor, what)

    # ─── Trips ───────────────────────────────────────

    async def create_trip(
        self,
        owner: User,
        *,
        destination: str,
        start_date: str,
        end_date: str,
        name: str = "",
        budget: int | str = 0,
        currency: str = "BRL",
    ) -> MutationResult:
        budget_cents = parse_amount(budget) if isinstance(budget, str) else budget
        trip = itinerary.new_trip(
            owner,
            destination=destination,
            start_date=start_date,
            end_date=end_date,
            name=name,
            budget_cents=budget_cents,
            currency=currency,
        )
        stored = await bounded(self.repo.create_trip(trip, owner["id"]), self.timeout, "create trip")
        return MutationResult(stored, True)

    async def load_trips(self, user: User) -> list[Trip]:
        return await bounded(self.repo.list_trips_for_user(user), self.timeout, "list trips")

    async def reload(self, trip_id: str) -> Trip | None:
        return await bounded(self.repo.get_trip(trip_id), self.timeout, "load trip")

    async def conclude(self, trip: Trip, actor: User) -> MutationResult:
        """Mark the trip completed. There is no way back."""
        return await self._apply(trip, actor, "conclude trip", itinerary.conclude)

    # ─── Activities ──────────────────────────────────

    async def add_activity(
        self,
        trip: Trip,
        actor: User,
        day_number: int,
        *,
        name: str,
        category: str,
        estimated_cost_cents: int = 0,
        participants: list[str] | None = None,
    ) -> MutationResult:
        require_edit(trip, actor["email"])
        updated, _ = itinerary.add_activity(
            trip,
            day_number,
            name=name,
            category=category,
            estimated_cost_cents=estimated_cost_cents,
            participants=participants,
        )
        return await self._persist(updated, trip.get("version"), actor, "add activity")

    async def update_activity(self, trip: Trip, actor: User, activity_id: str, **changes) -> MutationResult:
        return await self._apply(trip, actor, "update activity", itinerary.update_activity, activity_id, **changes)

    async def delete_activity(self, trip: Trip, actor: User, activity_id: str) -> MutationResult:
        return await self._apply(trip, actor, "delete activity", itinerary.delete_activity, activity_id)

    async def confirm_activity(
        self, trip: Trip, actor: User, activity_id: str, real_cost: int | str, participants: list[str]
    ) -> MutationResult:
        real_cost_cents = parse_amount(real_cost) if isinstance(real_cost, str) else real_cost
        return await self._apply(
            trip, actor, "confirm activity", itinerary.confirm_activity, activity_id, real_cost_cents, participants
        )

    async def add_suggested_activities(self, trip: Trip, actor: User, day_number: int) -> MutationResult:
        """Ask the suggestion agent for ideas and add them, unconfirmed, to one day.

        With no agent or no usable suggestions the trip is returned unchanged
        and nothing is written.
        """
        require_edit(trip, actor["email"])
        if self.suggestions is None:
            return MutationResult(trip, True)

        existing: list[Activity] = list(itinerary.iter_activities(trip))
        drafts = await self.suggestions.suggest_activities(trip["destination"], trip.get("preferences"), existing)
        if not drafts:
            return MutationResult(trip, True)

        updated = trip
        for draft in drafts:
            updated, _ = itinerary.add_activity(
                updated,
                day_number,
                name=draft["name"],
                category=draft["category"],
                estimated_cost_cents=draft["estimated_cost_cents"],
            )
        return await self._persist(updated, trip.get("version"), actor, "add suggested activities")

    # ─── Settings ────────────────────────────────────

    async def set_budget(self, trip: Trip, actor: User, budget: int | str) -> MutationResult:
        """Budget as cents, or as user text such as '1.500,00'."""
        budget_cents = parse_amount(budget) if isinstance(budget, str) else budget
        return await self._apply(trip, actor, "set budget", itinerary.set_budget, budget_cents)

    async def set_currency(self, trip: Trip, actor: User, currency: str) -> MutationResult:
        return await self._apply(trip, actor, "set currency", itinerary.set_currency, currency)

    async def add_category(self, trip: Trip, actor: User, name: str) -> MutationResult:
        require_edit(trip, actor["email"])
        updated, _ = itinerary.add_category(trip, name)
        return await self._persist(updated, trip.get("version"), actor, "add category")

    async def remove_category(self, trip: Trip, actor: User, category_id: str) -> MutationResult:
        return await self._apply(trip, actor, "remove category", itinerary.remove_category, category_id)

    async def set_preferences(
        self,
        trip: Trip,
        actor: User,
        *,
        likes: str | list[str] | None = None,
        dislikes: str | list[str] | None = None,
        budget_style: str | None = None,
    ) -> MutationResult:
        return await self._apply(
            trip,
            actor,
            "set preferences",
            itinerary.set_preferences,
            likes=likes,
            dislikes=dislikes,
            budget_style=budget_style,
        )

    # ─── People ──────────────────────────────────────

    async def invite(
        self, trip: Trip, actor: User, guest_email: str, permission: str
    ) -> tuple[Invite, MutationResult]:
        invite, stored = await self.invites.create(trip, actor, guest_email, permission)
        return invite, MutationResult(stored, has_access(stored, actor["email"]))

    async def change_permission(self, trip: Trip, actor: User, email: str, permission: str) -> MutationResult:
        return await self._apply(
            trip, actor, "change permission", change_permission, email, permission
        )

    async def remove_participant(self, trip: Trip, actor: User, email: str) -> MutationResult:
        """Drop ``email`` from the trip together with any invite they still hold for it."""
        require_edit(trip, actor["email"])
        updated = remove_participant(trip, email)
        itinerary.validate_trip(updated)
        stored = await bounded(
            self.repo.remove_participant(trip["id"], email, updated, trip.get("version")),
            self.timeout,
            "remove participant",
        )
        logger.info("Removed %s from trip %s by %s (v%s)", email, stored["id"], actor["id"], stored["version"])
        return MutationResult(stored, has_access(stored, actor["email"]))
