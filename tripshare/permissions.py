"""Permission model: who may mutate a shared trip document."""

from __future__ import annotations

from tripshare.errors import AuthorizationError, ErrorCode, ValidationError
from tripshare.state import Participant, Permission, Trip, normalize_email


def find_participant(trip: Trip, email: str) -> Participant | None:
    target = normalize_email(email)
    for participant in trip.get("participants", []):
        if normalize_email(participant.get("email")) == target:
            return participant
    return None


def is_owner(trip: Trip, email: str) -> bool:
    return bool(email) and normalize_email(trip.get("owner_email")) == normalize_email(email)


def can_edit(trip: Trip, user_email: str) -> bool:
    """True iff the user is an EDIT participant of a trip that is still active."""
    if trip.get("is_completed"):
        return False
    participant = find_participant(trip, user_email)
    return participant is not None and participant.get("permission") == Permission.EDIT.value


def require_edit(trip: Trip, user_email: str) -> None:
    """Raise AuthorizationError unless ``can_edit`` holds."""
    if can_edit(trip, user_email):
        return
    if trip.get("is_completed"):
        raise AuthorizationError(
            f"Trip {trip.get('id')} is completed", code=ErrorCode.TRIP_COMPLETED
        )
    raise AuthorizationError(
        f"{user_email} cannot edit trip {trip.get('id')}", code=ErrorCode.EDIT_REQUIRED
    )


def validate_participant(participant: Participant) -> None:
    if not (participant.get("name") or "").strip():
        raise ValidationError("participant name is required")
    if not normalize_email(participant.get("email")):
        raise ValidationError("participant email is required", code=ErrorCode.MISSING_EMAIL)
    if participant.get("permission") not in {p.value for p in Permission}:
        raise ValidationError(f"invalid permission {participant.get('permission')!r}")


def parse_permission(value: str) -> str:
    try:
        return Permission(value).value
    except ValueError as e:
        raise ValidationError(f"invalid permission {value!r}") from e
