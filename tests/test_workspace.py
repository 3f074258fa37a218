"""Tests for the per-session workspace."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from tripshare.errors import PersistenceError
from tripshare.state import View
from tripshare.workspace import Workspace


@pytest.fixture
def workspace(orchestrator, invite_service):
    return Workspace(orchestrator, invite_service)


@pytest.mark.asyncio
async def test_load_and_open(workspace, stored_trip, owner):
    await workspace.load(owner)
    assert workspace.view is View.TRIP_LIST
    assert [t["id"] for t in workspace.trips] == [stored_trip["id"]]

    workspace.open_trip(stored_trip["id"])
    assert workspace.view is View.TRIP
    assert workspace.current_trip["id"] == stored_trip["id"]
    assert workspace.can_edit_current is True


@pytest.mark.asyncio
async def test_create_trip_opens_it(workspace, owner):
    await workspace.load(owner)
    trip = await workspace.create_trip(destination="Madrid", start_date="2025-09-01", end_date="2025-09-02")
    assert workspace.view is View.TRIP
    assert workspace.current_trip_id == trip["id"]
    assert workspace.trips[0]["id"] == trip["id"]


@pytest.mark.asyncio
async def test_mutation_commits_after_success(workspace, orchestrator, stored_trip, owner):
    await workspace.load(owner)
    workspace.open_trip(stored_trip["id"])

    await workspace.perform(orchestrator.set_budget(workspace.current_trip, owner, 42))
    assert workspace.current_trip["budget_cents"] == 42
    assert workspace.current_trip["version"] == stored_trip["version"] + 1


@pytest.mark.asyncio
async def test_failed_mutation_leaves_state(workspace, orchestrator, stored_trip, owner):
    await workspace.load(owner)
    workspace.open_trip(stored_trip["id"])
    before = workspace.current_trip

    orchestrator.repo.replace_trip = AsyncMock(side_effect=PersistenceError("down"))
    with pytest.raises(PersistenceError):
        await workspace.perform(orchestrator.set_budget(workspace.current_trip, owner, 42))
    assert workspace.current_trip is before
    assert workspace.current_trip["budget_cents"] == stored_trip["budget_cents"]


@pytest.mark.asyncio
async def test_losing_access_returns_to_trip_list(workspace, orchestrator, stored_trip, owner, guest):
    _, result = await orchestrator.invite(stored_trip, owner, guest["email"], "EDIT")

    await workspace.load(guest)
    workspace.open_trip(stored_trip["id"])
    await workspace.perform(orchestrator.remove_participant(workspace.current_trip, guest, guest["email"]))

    assert workspace.view is View.TRIP_LIST
    assert workspace.current_trip is None
    assert workspace.trips == []


@pytest.mark.asyncio
async def test_invite_answers_refresh_inbox(workspace, orchestrator, stored_trip, owner, guest):
    invite, _ = await orchestrator.invite(stored_trip, owner, guest["email"], "VIEW_ONLY")

    await workspace.load(guest)
    assert [i["id"] for i in workspace.inbox] == [invite["id"]]

    trip = await workspace.accept_invite(invite["id"])
    assert workspace.inbox == []
    assert [t["id"] for t in workspace.trips] == [trip["id"]]
    assert workspace.trips[0]["version"] == trip["version"]

    workspace.open_trip(trip["id"])
    assert workspace.can_edit_current is False


@pytest.mark.asyncio
async def test_host_dismisses_rejection(workspace, invite_service, orchestrator, stored_trip, owner, guest):
    invite, _ = await orchestrator.invite(stored_trip, owner, guest["email"], "EDIT")
    await invite_service.decline(invite["id"], guest)

    await workspace.load(owner)
    assert [i["status"] for i in workspace.inbox] == ["REJECTED"]
    await workspace.dismiss_invite(invite["id"])
    assert workspace.inbox == []
