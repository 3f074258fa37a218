"""Tests for the database persistence layer."""

from __future__ import annotations

import asyncio
import json

import pytest

from tripshare.db.persistence import bounded
from tripshare.errors import ConflictError, ErrorCode, NotFoundError, PersistenceError
from tripshare.itinerary import new_trip
from tripshare.participants import add_participant, remove_participant


def _invite(trip, guest_email="bruno@example.com", invite_id="inv-1"):
    return {
        "id": invite_id,
        "trip_id": trip["id"],
        "trip_name": trip["name"],
        "host_name": "Ana",
        "host_email": "ana@example.com",
        "guest_email": guest_email,
        "permission": "VIEW_ONLY",
        "status": "PENDING",
    }


@pytest.mark.asyncio
async def test_create_and_get_trip(async_db, trip, owner):
    """Test basic trip creation and retrieval."""
    stored = await async_db.create_trip(trip, owner["id"])
    assert stored["version"] == 1
    assert stored["destination"] == "Lisbon"

    retrieved = await async_db.get_trip(trip["id"])
    assert retrieved == stored


@pytest.mark.asyncio
async def test_nonexistent_trip(async_db):
    assert await async_db.get_trip("nope") is None


@pytest.mark.asyncio
async def test_version_and_id_live_on_the_row(async_db, trip, owner):
    await async_db.create_trip(trip, owner["id"])
    async with async_db.async_session() as session:
        from tripshare.db.models import Trip as TripRow

        row = await session.get(TripRow, trip["id"])
        doc = json.loads(row.state_json)
    assert "version" not in doc
    assert "id" not in doc


@pytest.mark.asyncio
async def test_replace_bumps_version(async_db, trip, owner):
    stored = await async_db.create_trip(trip, owner["id"])
    stored["budget_cents"] = 5_000
    replaced = await async_db.replace_trip(trip["id"], stored, expected_version=1)
    assert replaced["version"] == 2
    assert replaced["budget_cents"] == 5_000


@pytest.mark.asyncio
async def test_stale_replace_is_refused(async_db, trip, owner):
    """Two writers start from v1; the second one gets STALE_TRIP."""
    stored = await async_db.create_trip(trip, owner["id"])
    first = dict(stored, name="First")
    second = dict(stored, name="Second")

    await async_db.replace_trip(trip["id"], first, expected_version=1)
    with pytest.raises(ConflictError) as exc:
        await async_db.replace_trip(trip["id"], second, expected_version=1)
    assert exc.value.code == ErrorCode.STALE_TRIP
    assert (await async_db.get_trip(trip["id"]))["name"] == "First"


@pytest.mark.asyncio
async def test_replace_missing_trip(async_db, trip):
    with pytest.raises(NotFoundError):
        await async_db.replace_trip("missing", trip, expected_version=1)


@pytest.mark.asyncio
async def test_list_trips_for_user_includes_memberships(async_db, trip, owner, guest, third):
    """Owned trips and trips the user participates in; nobody else's."""
    other = new_trip(guest, destination="Rome", start_date="2025-06-01", end_date="2025-06-02")
    await async_db.create_trip(trip, owner["id"])
    await async_db.create_trip(other, guest["id"])

    assert {t["id"] for t in await async_db.list_trips_for_user(owner)} == {trip["id"]}

    stored = await async_db.get_trip(other["id"])
    await async_db.replace_trip(other["id"], add_participant(stored, owner, "VIEW_ONLY"), expected_version=1)
    assert {t["id"] for t in await async_db.list_trips_for_user(owner)} == {trip["id"], other["id"]}
    assert await async_db.list_trips_for_user(third) == []


@pytest.mark.asyncio
async def test_member_index_follows_removals(async_db, trip, owner, guest):
    stored = await async_db.create_trip(add_participant(trip, guest, "EDIT"), owner["id"])
    assert await async_db.is_member(trip["id"], guest["email"])

    await async_db.replace_trip(trip["id"], remove_participant(stored, guest["email"]), expected_version=1)
    assert not await async_db.is_member(trip["id"], guest["email"])
    assert await async_db.list_trips_for_user(guest) == []


class TestInvites:
    @pytest.mark.asyncio
    async def test_create_invite_updates_trip_atomically(self, async_db, trip, owner, guest):
        stored = await async_db.create_trip(trip, owner["id"])
        invite, updated = await async_db.create_invite(
            _invite(stored), add_participant(stored, guest, "VIEW_ONLY"), expected_version=1
        )
        assert invite["status"] == "PENDING"
        assert updated["version"] == 2
        assert await async_db.is_member(trip["id"], guest["email"])

    @pytest.mark.asyncio
    async def test_duplicate_invite_rejected_and_nothing_written(self, async_db, trip, owner, guest):
        stored = await async_db.create_trip(trip, owner["id"])
        _, updated = await async_db.create_invite(
            _invite(stored), add_participant(stored, guest, "VIEW_ONLY"), expected_version=1
        )
        with pytest.raises(ConflictError) as exc:
            await async_db.create_invite(_invite(stored, invite_id="inv-2"), updated, expected_version=2)
        assert exc.value.code == ErrorCode.ALREADY_INVITED
        assert await async_db.get_invite("inv-2") is None
        assert (await async_db.get_trip(trip["id"]))["version"] == 2

    @pytest.mark.asyncio
    async def test_stale_trip_leaves_no_invite(self, async_db, trip, owner, guest):
        stored = await async_db.create_trip(trip, owner["id"])
        await async_db.replace_trip(trip["id"], dict(stored, name="Renamed"), expected_version=1)

        with pytest.raises(ConflictError) as exc:
            await async_db.create_invite(
                _invite(stored), add_participant(stored, guest, "VIEW_ONLY"), expected_version=1
            )
        assert exc.value.code == ErrorCode.STALE_TRIP
        assert await async_db.get_invite("inv-1") is None
        assert not await async_db.is_member(trip["id"], guest["email"])

    @pytest.mark.asyncio
    async def test_accept_invite_deletes_it(self, async_db, trip, owner, guest):
        stored = await async_db.create_trip(trip, owner["id"])
        _, updated = await async_db.create_invite(
            _invite(stored), add_participant(stored, guest, "VIEW_ONLY"), expected_version=1
        )
        accepted = await async_db.accept_invite("inv-1", updated, expected_version=2)
        assert accepted["version"] == 3
        assert await async_db.get_invite("inv-1") is None

    @pytest.mark.asyncio
    async def test_accept_refuses_invite_declined_in_between(self, async_db, trip, owner, guest):
        stored = await async_db.create_trip(trip, owner["id"])
        _, updated = await async_db.create_invite(
            _invite(stored), add_participant(stored, guest, "VIEW_ONLY"), expected_version=1
        )
        await async_db.set_invite_status("inv-1", "REJECTED")

        with pytest.raises(ConflictError) as exc:
            await async_db.accept_invite("inv-1", updated, expected_version=2)
        assert exc.value.code == ErrorCode.INVALID_INVITE_STATE
        assert (await async_db.get_invite("inv-1"))["status"] == "REJECTED"
        assert (await async_db.get_trip(trip["id"]))["version"] == 2

    @pytest.mark.asyncio
    async def test_remove_participant_drops_their_invite(self, async_db, trip, owner, guest):
        stored = await async_db.create_trip(trip, owner["id"])
        _, updated = await async_db.create_invite(
            _invite(stored), add_participant(stored, guest, "VIEW_ONLY"), expected_version=1
        )
        removed = await async_db.remove_participant(
            trip["id"], "Bruno@Example.com", remove_participant(updated, guest["email"]), expected_version=2
        )
        assert removed["version"] == 3
        assert await async_db.get_invite("inv-1") is None
        assert not await async_db.is_member(trip["id"], guest["email"])

    @pytest.mark.asyncio
    async def test_stale_removal_keeps_invite(self, async_db, trip, owner, guest):
        stored = await async_db.create_trip(trip, owner["id"])
        _, updated = await async_db.create_invite(
            _invite(stored), add_participant(stored, guest, "VIEW_ONLY"), expected_version=1
        )
        with pytest.raises(ConflictError) as exc:
            await async_db.remove_participant(
                trip["id"], guest["email"], remove_participant(updated, guest["email"]), expected_version=1
            )
        assert exc.value.code == ErrorCode.STALE_TRIP
        assert await async_db.get_invite("inv-1") is not None

    @pytest.mark.asyncio
    async def test_inbox_is_union_of_received_pending_and_sent_rejected(self, async_db, trip, owner, guest):
        stored = await async_db.create_trip(trip, owner["id"])
        _, stored = await async_db.create_invite(
            _invite(stored), add_participant(stored, guest, "VIEW_ONLY"), expected_version=1
        )
        rome = new_trip(guest, destination="Rome", start_date="2025-06-01", end_date="2025-06-02")
        rome = await async_db.create_trip(rome, guest["id"])
        await async_db.create_invite(
            {
                **_invite(rome, guest_email=owner["email"], invite_id="inv-2"),
                "host_name": "Bruno",
                "host_email": guest["email"],
            },
            add_participant(rome, owner, "EDIT"),
            expected_version=1,
        )

        # Bruno: one pending invite from Ana; Ana: one pending invite from Bruno.
        assert [i["id"] for i in await async_db.list_inbox(guest["email"])] == ["inv-1"]
        assert [i["id"] for i in await async_db.list_inbox(owner["email"])] == ["inv-2"]

        await async_db.set_invite_status("inv-1", "REJECTED")
        assert [i["id"] for i in await async_db.list_inbox(guest["email"])] == []
        assert sorted(i["id"] for i in await async_db.list_inbox(owner["email"])) == ["inv-1", "inv-2"]

    @pytest.mark.asyncio
    async def test_list_by_guest_and_host(self, async_db, trip, owner, guest):
        stored = await async_db.create_trip(trip, owner["id"])
        await async_db.create_invite(_invite(stored), add_participant(stored, guest, "VIEW_ONLY"), expected_version=1)

        assert len(await async_db.list_invites_by_guest(guest["email"], ["PENDING"])) == 1
        assert await async_db.list_invites_by_guest(guest["email"], ["REJECTED"]) == []
        assert len(await async_db.list_invites_by_host("ANA@example.com")) == 1

    @pytest.mark.asyncio
    async def test_delete_missing_invite(self, async_db):
        with pytest.raises(NotFoundError) as exc:
            await async_db.delete_invite("nope")
        assert exc.value.code == ErrorCode.INVITE_NOT_FOUND


@pytest.mark.asyncio
async def test_bounded_maps_timeout():
    async def slow():
        await asyncio.sleep(1)

    with pytest.raises(PersistenceError) as exc:
        await bounded(slow(), 0.01, "slow call")
    assert exc.value.code == ErrorCode.TIMEOUT
