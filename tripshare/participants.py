"""Participant synchronization: permission edits, removals and access checks.

Edits work by whole-list replacement: each function returns a new trip whose
``participants`` list was mapped or filtered. The owner entry is never
removed or demoted here, whoever asks.
"""

from __future__ import annotations

from copy import deepcopy

from tripshare.errors import AuthorizationError, ErrorCode, NotFoundError
from tripshare.permissions import find_participant, is_owner, parse_permission
from tripshare.state import Participant, Permission, Trip, User, normalize_email


def has_access(trip: Trip, email: str) -> bool:
    """Whether ``email`` still appears in the trip's participant list."""
    return find_participant(trip, email) is not None


def add_participant(trip: Trip, user: User, permission: str) -> Trip:
    """Insert ``user`` at ``permission``; idempotent for an existing participant.

    An existing entry gets the new permission, except the owner, who stays EDIT.
    """
    permission = parse_permission(permission)
    email = normalize_email(user["email"])
    updated = deepcopy(trip)
    existing = find_participant(updated, email)
    if existing is not None:
        if not is_owner(updated, email):
            existing["permission"] = permission
        return updated

    entry: Participant = {"name": user["name"], "email": email, "permission": permission}
    updated.setdefault("participants", []).append(entry)
    return updated


def change_permission(trip: Trip, email: str, permission: str) -> Trip:
    permission = parse_permission(permission)
    if find_participant(trip, email) is None:
        raise NotFoundError(f"{email} is not a participant", code=ErrorCode.PARTICIPANT_NOT_FOUND)
    if is_owner(trip, email) and permission != Permission.EDIT.value:
        raise AuthorizationError("the owner cannot be demoted", code=ErrorCode.OWNER_PROTECTED)

    target = normalize_email(email)
    updated = deepcopy(trip)
    updated["participants"] = [
        {**p, "permission": permission} if normalize_email(p["email"]) == target else p
        for p in updated["participants"]
    ]
    return updated


def remove_participant(trip: Trip, email: str) -> Trip:
    if find_participant(trip, email) is None:
        raise NotFoundError(f"{email} is not a participant", code=ErrorCode.PARTICIPANT_NOT_FOUND)
    if is_owner(trip, email):
        raise AuthorizationError("the owner cannot be removed", code=ErrorCode.OWNER_PROTECTED)

    target = normalize_email(email)
    updated = deepcopy(trip)
    updated["participants"] = [p for p in updated["participants"] if normalize_email(p["email"]) != target]
    return updated


def display_names(trip: Trip, emails: list[str]) -> list[str]:
    """Resolve stored participant emails to current display names.

    Former participants fall back to their email.
    """
    names = []
    for email in emails:
        participant = find_participant(trip, email)
        names.append(participant["name"] if participant else email)
    return names
