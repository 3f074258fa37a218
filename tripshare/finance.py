"""Financial aggregation: totals, category breakdowns and per-traveler shares.

All amounts are integer cents. Splitting an amount among ``n`` people uses the
largest-remainder rule so the shares always add back up to the amount: the
first ``amount % n`` people in list order carry one extra cent.
"""

from __future__ import annotations

import logging

from tripshare.errors import ValidationError
from tripshare.itinerary import iter_activities
from tripshare.permissions import find_participant
from tripshare.state import (
    Activity,
    CategorySlice,
    Day,
    FinancialSummary,
    ParticipantSpend,
    SortOrder,
    SplitMode,
    Trip,
    normalize_email,
)

logger = logging.getLogger(__name__)


def split_evenly(amount_cents: int, count: int) -> list[int]:
    """Split into ``count`` integer shares summing to ``amount_cents``."""
    if count <= 0:
        return []
    base, remainder = divmod(amount_cents, count)
    return [base + 1 if i < remainder else base for i in range(count)]


def confirmed_activities(trip: Trip) -> list[Activity]:
    return [a for a in iter_activities(trip) if a.get("is_confirmed")]


def _real_cost(activity: Activity) -> int:
    return activity.get("real_cost_cents") or 0


def activity_share(activity: Activity, email: str) -> int:
    """Share of a confirmed activity owed by ``email``; 0 if not listed on it."""
    emails = [normalize_email(e) for e in activity.get("participants", [])]
    target = normalize_email(email)
    if target not in emails:
        return 0
    return split_evenly(_real_cost(activity), len(emails))[emails.index(target)]


def total_spent(trip: Trip) -> int:
    return sum(_real_cost(a) for a in confirmed_activities(trip))


def remaining_balance(trip: Trip) -> int:
    """Budget minus spend. Negative means over budget; never clamped."""
    return trip.get("budget_cents", 0) - total_spent(trip)


def suggested_daily_budget(trip: Trip) -> int:
    days = max(1, len(trip.get("days", [])))
    people = max(1, len(trip.get("participants", [])))
    return round(trip.get("budget_cents", 0) / days / people)


def spend_by_category(trip: Trip, traveler: str | None = None) -> list[CategorySlice]:
    """Category totals, largest first, ready for a legend or pie chart.

    With ``traveler`` set only activities listing them count, and only their
    share of each one. A category whose share rounds to zero cents still gets
    a slice. Empty when nothing confirmed matches.
    """
    totals: dict[str, int] = {}
    for activity in confirmed_activities(trip):
        if traveler:
            if normalize_email(traveler) not in [normalize_email(e) for e in activity.get("participants", [])]:
                continue
            cost = activity_share(activity, traveler)
        else:
            cost = _real_cost(activity)
        category = activity.get("category") or ""
        totals[category] = totals.get(category, 0) + cost

    if not totals:
        return []
    grand_total = sum(totals.values())
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        {"name": name, "value_cents": value, "percent": round(value * 100 / grand_total, 2) if grand_total else 0.0}
        for name, value in ordered
    ]


def individual_spending(trip: Trip, sort: SortOrder | str = SortOrder.DEFAULT) -> list[ParticipantSpend]:
    """Each participant's summed share of the confirmed activities they joined."""
    confirmed = confirmed_activities(trip)
    spending: list[ParticipantSpend] = [
        {
            "name": p["name"],
            "email": p["email"],
            "spent_cents": sum(activity_share(a, p["email"]) for a in confirmed),
        }
        for p in trip.get("participants", [])
    ]
    return sort_spending(spending, sort)


def equal_spending(trip: Trip) -> list[ParticipantSpend]:
    """Total spend divided evenly over the whole roster, ignoring who joined what."""
    participants = trip.get("participants", [])
    shares = split_evenly(total_spent(trip), len(participants))
    return [
        {"name": p["name"], "email": p["email"], "spent_cents": share}
        for p, share in zip(participants, shares)
    ]


def parse_sort_order(value: SortOrder | str) -> SortOrder:
    try:
        return SortOrder(value)
    except ValueError as e:
        raise ValidationError(f"invalid sort order {value!r}") from e


def parse_split_mode(value: SplitMode | str) -> SplitMode:
    try:
        return SplitMode(value)
    except ValueError as e:
        raise ValidationError(f"invalid split mode {value!r}") from e


def sort_spending(spending: list[ParticipantSpend], sort: SortOrder | str) -> list[ParticipantSpend]:
    order = parse_sort_order(sort)
    if order is SortOrder.NAME_ASC:
        return sorted(spending, key=lambda s: s["name"].casefold())
    if order is SortOrder.SPENT_DESC:
        return sorted(spending, key=lambda s: s["spent_cents"], reverse=True)
    if order is SortOrder.SPENT_ASC:
        return sorted(spending, key=lambda s: s["spent_cents"])
    return list(spending)


def day_totals(day: Day) -> dict[str, int]:
    """Estimated (all activities) and confirmed (real cost) totals for one day."""
    activities = day.get("activities", [])
    return {
        "estimated_cents": sum(a.get("estimated_cost_cents") or 0 for a in activities),
        "confirmed_cents": sum(_real_cost(a) for a in activities),
    }


def expense_list(trip: Trip, traveler: str | None = None) -> list[Activity]:
    """Confirmed activities, most recently confirmed first."""
    expenses = confirmed_activities(trip)
    if traveler:
        target = normalize_email(traveler)
        expenses = [a for a in expenses if target in [normalize_email(e) for e in a.get("participants", [])]]
    return sorted(expenses, key=lambda a: a.get("confirmed_at") or "", reverse=True)


def build_summary(
    trip: Trip,
    *,
    traveler: str | None = None,
    split_mode: SplitMode | str = SplitMode.INDIVIDUAL,
    sort: SortOrder | str = SortOrder.DEFAULT,
) -> FinancialSummary:
    """Everything the financial view shows, in one pass over the trip."""
    if traveler and find_participant(trip, traveler) is None:
        logger.debug("Traveler filter %s is not on trip %s", traveler, trip.get("id"))

    mode = parse_split_mode(split_mode)
    order = parse_sort_order(sort)
    spent = total_spent(trip)
    remaining = trip.get("budget_cents", 0) - spent
    by_category = spend_by_category(trip, traveler)
    per_participant = individual_spending(trip, order) if mode is SplitMode.INDIVIDUAL else equal_spending(trip)

    return {
        "currency": trip.get("currency", ""),
        "budget_cents": trip.get("budget_cents", 0),
        "total_spent_cents": spent,
        "remaining_cents": remaining,
        "is_over_budget": remaining < 0,
        "suggested_daily_cents": suggested_daily_budget(trip),
        "selected_traveler": normalize_email(traveler) if traveler else None,
        "filtered_total_cents": sum(s["value_cents"] for s in by_category),
        "by_category": by_category,
        "split_mode": mode.value,
        "per_participant": per_participant,
    }
