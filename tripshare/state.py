"""
Domain schema: trip documents, participants, invites.

Trip documents are TypedDicts so they round-trip through JSON unchanged.
Enums use the str mixin for easy serialisation.
Money is always integer minor units (cents); fields carry a ``_cents`` suffix.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, TypedDict


# ─── Enums ────────────────────────────────────────


class Permission(str, Enum):
    EDIT = "EDIT"
    VIEW_ONLY = "VIEW_ONLY"


class Currency(str, Enum):
    BRL = "BRL"
    USD = "USD"
    EUR = "EUR"


class InviteStatus(str, Enum):
    PENDING = "PENDING"
    REJECTED = "REJECTED"


class BudgetStyle(str, Enum):
    ECONOMY = "economy"
    COMFORTABLE = "comfortable"
    LUXURY = "luxury"


class SplitMode(str, Enum):
    INDIVIDUAL = "individual"
    EQUAL = "equal"


class SortOrder(str, Enum):
    DEFAULT = "default"
    NAME_ASC = "name_asc"
    SPENT_DESC = "spent_desc"
    SPENT_ASC = "spent_asc"


class View(str, Enum):
    TRIP_LIST = "trip_list"
    TRIP = "trip"


# ─── People ───────────────────────────────────────


class User(TypedDict):
    id: str
    name: str
    email: str


class Participant(TypedDict):
    name: str
    email: str
    permission: str  # Permission value


# ─── Trip document ────────────────────────────────


class Activity(TypedDict, total=False):
    id: str
    name: str
    category: str
    estimated_cost_cents: int
    real_cost_cents: Optional[int]
    is_confirmed: bool
    participants: list[str]  # participant emails
    confirmed_at: Optional[str]  # ISO timestamp


class Day(TypedDict):
    date: str  # YYYY-MM-DD
    day_number: int
    activities: list[Activity]


class Category(TypedDict):
    id: str
    name: str


class TripPreferences(TypedDict, total=False):
    likes: list[str]
    dislikes: list[str]
    budget_style: str  # BudgetStyle value


class Trip(TypedDict, total=False):
    id: str
    name: str
    destination: str
    start_date: str
    end_date: str
    budget_cents: int
    currency: str  # Currency value
    days: list[Day]
    participants: list[Participant]
    categories: list[Category]
    owner_email: str
    is_completed: bool
    preferences: TripPreferences
    version: int  # assigned by the store; bumped on every replace


class Invite(TypedDict):
    id: str
    trip_id: str
    trip_name: str
    host_name: str
    host_email: str
    guest_email: str
    permission: str  # Permission value
    status: str  # InviteStatus value


# ─── Financial views ──────────────────────────────


class ParticipantSpend(TypedDict):
    name: str
    email: str
    spent_cents: int


class CategorySlice(TypedDict):
    name: str
    value_cents: int
    percent: float


class FinancialSummary(TypedDict):
    currency: str
    budget_cents: int
    total_spent_cents: int
    remaining_cents: int
    is_over_budget: bool
    suggested_daily_cents: int
    selected_traveler: Optional[str]
    filtered_total_cents: int
    by_category: list[CategorySlice]
    split_mode: str  # SplitMode value
    per_participant: list[ParticipantSpend]


def normalize_email(email: str | None) -> str:
    """Canonical form used for every email comparison."""
    return (email or "").strip().lower()
