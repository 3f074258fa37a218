"""Trip document construction and itinerary edits.

Every function here is pure: it deep-copies the incoming snapshot and returns
the edited copy, so a caller's snapshot survives a failed save untouched.
"""

from __future__ import annotations

import uuid
from copy import deepcopy
from datetime import date, datetime, timedelta, timezone

from tripshare.errors import ConflictError, ErrorCode, NotFoundError, ValidationError
from tripshare.permissions import find_participant, validate_participant
from tripshare.state import (
    Activity,
    BudgetStyle,
    Category,
    Currency,
    Day,
    Permission,
    Trip,
    TripPreferences,
    User,
    normalize_email,
)

DEFAULT_CATEGORIES: list[Category] = [
    {"id": "1", "name": "Lodging"},
    {"id": "2", "name": "Food"},
    {"id": "3", "name": "Leisure"},
    {"id": "4", "name": "Transport"},
    {"id": "5", "name": "Emergency"},
]


def _parse_date(value: str | date | None) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat((value or "").strip())
    except ValueError as e:
        raise ValidationError(f"invalid date {value!r}", code=ErrorCode.INVALID_DATES) from e


def build_days(start_date: str | date, end_date: str | date) -> list[Day]:
    """One Day per calendar day in [start, end], numbered from 1."""
    start = _parse_date(start_date)
    end = _parse_date(end_date)
    if start > end:
        raise ValidationError("start date is after end date", code=ErrorCode.INVALID_DATES)

    days: list[Day] = []
    current = start
    while current <= end:
        days.append({"date": current.isoformat(), "day_number": len(days) + 1, "activities": []})
        current += timedelta(days=1)
    return days


def new_trip(
    owner: User,
    *,
    destination: str,
    start_date: str,
    end_date: str,
    name: str = "",
    budget_cents: int = 0,
    currency: str = Currency.BRL.value,
) -> Trip:
    """Build a fresh trip owned by ``owner``: empty plan, default categories."""
    if not (destination or "").strip() or not start_date or not end_date:
        raise ValidationError("destination and dates are required", code=ErrorCode.INVALID_DATES)

    trip: Trip = {
        "id": uuid.uuid4().hex,
        "name": (name or "").strip() or destination.strip(),
        "destination": destination.strip(),
        "start_date": _parse_date(start_date).isoformat(),
        "end_date": _parse_date(end_date).isoformat(),
        "budget_cents": budget_cents,
        "currency": currency,
        "days": build_days(start_date, end_date),
        "participants": [
            {"name": owner["name"], "email": normalize_email(owner["email"]), "permission": Permission.EDIT.value}
        ],
        "categories": deepcopy(DEFAULT_CATEGORIES),
        "owner_email": normalize_email(owner["email"]),
        "is_completed": False,
        "preferences": {"likes": [], "dislikes": [], "budget_style": BudgetStyle.COMFORTABLE.value},
        "version": 0,
    }
    validate_trip(trip)
    return trip


def validate_trip(trip: Trip) -> None:
    """Check the document-level invariants before a trip is handed to the store."""
    if trip.get("currency") not in {c.value for c in Currency}:
        raise ValidationError(f"invalid currency {trip.get('currency')!r}", code=ErrorCode.INVALID_CURRENCY)
    budget = trip.get("budget_cents")
    if not isinstance(budget, int) or isinstance(budget, bool) or budget < 0:
        raise ValidationError(f"invalid budget {budget!r}", code=ErrorCode.INVALID_BUDGET)

    seen: set[str] = set()
    for participant in trip.get("participants", []):
        validate_participant(participant)
        email = normalize_email(participant["email"])
        if email in seen:
            raise ValidationError(f"duplicate participant {email}")
        seen.add(email)

    owner = find_participant(trip, trip.get("owner_email", ""))
    if owner is None or owner.get("permission") != Permission.EDIT.value:
        raise ValidationError("the owner must be an EDIT participant")

    days = trip.get("days", [])
    expected = _parse_date(trip.get("start_date"))
    for index, day in enumerate(days, start=1):
        if day.get("day_number") != index or _parse_date(day.get("date")) != expected:
            raise ValidationError(f"day plan is not contiguous at day {index}", code=ErrorCode.INVALID_DATES)
        expected += timedelta(days=1)
    if days and _parse_date(days[-1]["date"]) != _parse_date(trip.get("end_date")):
        raise ValidationError("day plan does not reach the end date", code=ErrorCode.INVALID_DATES)


# ─── Activities ───────────────────────────────────


def iter_activities(trip: Trip):
    for day in trip.get("days", []):
        yield from day.get("activities", [])


def find_activity(trip: Trip, activity_id: str) -> tuple[int, int]:
    """Locate an activity by id across all days; first match wins."""
    for day_index, day in enumerate(trip.get("days", [])):
        for activity_index, activity in enumerate(day.get("activities", [])):
            if activity.get("id") == activity_id:
                return day_index, activity_index
    raise NotFoundError(f"activity {activity_id} not found", code=ErrorCode.ACTIVITY_NOT_FOUND)


def _day_index(trip: Trip, day_number: int) -> int:
    for index, day in enumerate(trip.get("days", [])):
        if day.get("day_number") == day_number:
            return index
    raise ValidationError(f"day {day_number} not in trip")


def _check_cost(value: int, field: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValidationError(f"{field} must be a non-negative amount of cents")
    return value


def _check_activity_participants(trip: Trip, emails: list[str]) -> list[str]:
    cleaned: list[str] = []
    for email in emails or []:
        email = normalize_email(email)
        if find_participant(trip, email) is None:
            raise NotFoundError(f"{email} is not a participant", code=ErrorCode.PARTICIPANT_NOT_FOUND)
        if email not in cleaned:
            cleaned.append(email)
    return cleaned


def add_activity(
    trip: Trip,
    day_number: int,
    *,
    name: str,
    category: str,
    estimated_cost_cents: int = 0,
    participants: list[str] | None = None,
) -> tuple[Trip, Activity]:
    if not (name or "").strip():
        raise ValidationError("activity name is required")
    updated = deepcopy(trip)
    day = updated["days"][_day_index(updated, day_number)]
    activity: Activity = {
        "id": uuid.uuid4().hex,
        "name": name.strip(),
        "category": category,
        "estimated_cost_cents": _check_cost(estimated_cost_cents, "estimated cost"),
        "real_cost_cents": None,
        "is_confirmed": False,
        "participants": _check_activity_participants(updated, participants or []),
        "confirmed_at": None,
    }
    day["activities"].append(activity)
    return updated, activity


def update_activity(trip: Trip, activity_id: str, **changes) -> Trip:
    """Edit name/category/estimate/participants of an activity.

    Confirmed activities keep their real cost and participant list.
    """
    updated = deepcopy(trip)
    day_index, activity_index = find_activity(updated, activity_id)
    activity = updated["days"][day_index]["activities"][activity_index]

    if "name" in changes:
        if not (changes["name"] or "").strip():
            raise ValidationError("activity name is required")
        activity["name"] = changes["name"].strip()
    if "category" in changes:
        activity["category"] = changes["category"]
    if "estimated_cost_cents" in changes:
        activity["estimated_cost_cents"] = _check_cost(changes["estimated_cost_cents"], "estimated cost")
    if "participants" in changes:
        emails = _check_activity_participants(updated, changes["participants"])
        if activity.get("is_confirmed") and emails != activity.get("participants", []):
            raise ConflictError(f"activity {activity_id} is confirmed", code=ErrorCode.ACTIVITY_CONFIRMED)
        activity["participants"] = emails
    if "real_cost_cents" in changes or "is_confirmed" in changes:
        raise ValidationError("use confirm_activity to record the real cost")
    return updated


def delete_activity(trip: Trip, activity_id: str) -> Trip:
    updated = deepcopy(trip)
    day_index, activity_index = find_activity(updated, activity_id)
    del updated["days"][day_index]["activities"][activity_index]
    return updated


def confirm_activity(trip: Trip, activity_id: str, real_cost_cents: int, participants: list[str]) -> Trip:
    """Irreversibly record what an activity really cost and who shared it."""
    updated = deepcopy(trip)
    day_index, activity_index = find_activity(updated, activity_id)
    activity = updated["days"][day_index]["activities"][activity_index]
    if activity.get("is_confirmed"):
        raise ConflictError(f"activity {activity_id} already confirmed", code=ErrorCode.ACTIVITY_CONFIRMED)

    activity["real_cost_cents"] = _check_cost(real_cost_cents, "real cost")
    activity["participants"] = _check_activity_participants(updated, participants)
    activity["is_confirmed"] = True
    activity["confirmed_at"] = datetime.now(timezone.utc).isoformat()
    return updated


# ─── Trip settings ────────────────────────────────


def add_category(trip: Trip, name: str) -> tuple[Trip, Category]:
    name = (name or "").strip()
    if not name:
        raise ValidationError("category name is required")
    if any(c["name"].lower() == name.lower() for c in trip.get("categories", [])):
        raise ValidationError(f"category {name!r} already exists")
    updated = deepcopy(trip)
    category: Category = {"id": uuid.uuid4().hex, "name": name}
    updated.setdefault("categories", []).append(category)
    return updated, category


def remove_category(trip: Trip, category_id: str) -> Trip:
    """Drop a category; activities keep their (now orphaned) label."""
    updated = deepcopy(trip)
    updated["categories"] = [c for c in updated.get("categories", []) if c["id"] != category_id]
    return updated


def set_budget(trip: Trip, budget_cents: int) -> Trip:
    if not isinstance(budget_cents, int) or isinstance(budget_cents, bool) or budget_cents < 0:
        raise ValidationError(f"invalid budget {budget_cents!r}", code=ErrorCode.INVALID_BUDGET)
    updated = deepcopy(trip)
    updated["budget_cents"] = budget_cents
    return updated


def set_currency(trip: Trip, currency: str) -> Trip:
    try:
        code = Currency(str(currency).upper()).value
    except ValueError as e:
        raise ValidationError(f"invalid currency {currency!r}", code=ErrorCode.INVALID_CURRENCY) from e
    updated = deepcopy(trip)
    updated["currency"] = code
    return updated


def parse_preference_list(value: str | list[str]) -> list[str]:
    """'museums, , food ' -> ['museums', 'food']"""
    items = value.split(",") if isinstance(value, str) else value
    return [item.strip() for item in items if item and item.strip()]


def set_preferences(
    trip: Trip,
    *,
    likes: str | list[str] | None = None,
    dislikes: str | list[str] | None = None,
    budget_style: str | None = None,
) -> Trip:
    updated = deepcopy(trip)
    prefs: TripPreferences = dict(updated.get("preferences") or {})
    if likes is not None:
        prefs["likes"] = parse_preference_list(likes)
    if dislikes is not None:
        prefs["dislikes"] = parse_preference_list(dislikes)
    if budget_style is not None:
        try:
            prefs["budget_style"] = BudgetStyle(budget_style).value
        except ValueError as e:
            raise ValidationError(f"invalid budget style {budget_style!r}") from e
    updated["preferences"] = prefs
    return updated


def conclude(trip: Trip) -> Trip:
    """One-way switch: a concluded trip becomes read-only for everyone."""
    updated = deepcopy(trip)
    updated["is_completed"] = True
    return updated
