"""Suggestion agent: activity ideas and a free-text itinerary for a trip.

Suggestions are advisory. Any model or parsing failure degrades to an empty
list or an apology message; trip state is never touched from here.
"""

from __future__ import annotations

import json
import logging

from tripshare.agents.base import BaseAgent
from tripshare.errors import ValidationError
from tripshare.state import Activity, Trip, TripPreferences
from tripshare.tools.currency import to_cents

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5

SYSTEM_PROMPT = """\
You are the Suggestion Agent for a collaborative trip planner.

RULES:
1. NEVER suggest anything on the travelers' dislike list.
2. Keep suggestions consistent with the budget style (economy, comfortable, luxury).
3. Do not repeat activities the travelers already planned.
4. Be concise.
"""

ACTIVITY_PROMPT = """\
Suggest up to {limit} activities for a trip to {destination}.

Budget style: {budget_style}
Likes: {likes}
Dislikes: {dislikes}
Already planned: {existing}

Return ONLY a JSON array, no prose:
[{{"name": "...", "category": "Lodging|Food|Leisure|Transport|Emergency", "estimated_cost": 0.0}}]
estimated_cost is per group, in the trip currency, as a plain number.
"""

ITINERARY_PROMPT = """\
Write a short day-by-day itinerary for this trip, using markdown headings and
bullet lists. Mention rough costs that fit the budget style.
"""

APOLOGY = "Sorry, I couldn't generate suggestions right now. Please try again in a moment."


def _extract_json_array(text: str) -> list | None:
    """Pull a JSON array out of a model reply, tolerating code fences."""
    try:
        data = json.loads(text)
        return data if isinstance(data, list) else None
    except json.JSONDecodeError:
        pass

    for marker in ("```json", "```"):
        if marker in text:
            try:
                start = text.index(marker) + len(marker)
                end = text.index("```", start)
                data = json.loads(text[start:end].strip())
                return data if isinstance(data, list) else None
            except (ValueError, json.JSONDecodeError):
                continue

    try:
        start = text.index("[")
        end = text.rindex("]") + 1
        data = json.loads(text[start:end])
        return data if isinstance(data, list) else None
    except (ValueError, json.JSONDecodeError):
        logger.warning("Failed to parse suggestion JSON")
        return None


def _to_activity(item: dict) -> Activity | None:
    name = str(item.get("name") or "").strip()
    if not name:
        return None
    try:
        estimated = max(0, to_cents(item.get("estimated_cost", 0) or 0))
    except ValidationError:
        estimated = 0
    return {
        "name": name,
        "category": str(item.get("category") or "Leisure").strip(),
        "estimated_cost_cents": estimated,
    }


class SuggestionAgent(BaseAgent):
    agent_name = "suggestions"

    def get_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    async def suggest_activities(
        self,
        destination: str,
        preferences: TripPreferences | None,
        existing_activities: list[Activity],
    ) -> list[Activity]:
        """Activity drafts (name, category, estimated_cost_cents); [] on any failure."""
        prefs = preferences or {}
        prompt = ACTIVITY_PROMPT.format(
            limit=MAX_SUGGESTIONS,
            destination=destination,
            budget_style=prefs.get("budget_style", "comfortable"),
            likes=", ".join(prefs.get("likes") or []) or "none given",
            dislikes=", ".join(prefs.get("dislikes") or []) or "none given",
            existing=", ".join(a.get("name", "") for a in existing_activities) or "nothing yet",
        )
        try:
            text = await self.invoke(prompt)
        except Exception:
            logger.exception("Activity suggestion call failed for %s", destination)
            return []

        items = _extract_json_array(text) or []
        planned = {(a.get("name") or "").strip().lower() for a in existing_activities}
        drafts: list[Activity] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            draft = _to_activity(item)
            if draft is None or draft["name"].lower() in planned:
                continue
            planned.add(draft["name"].lower())
            drafts.append(draft)
            if len(drafts) >= MAX_SUGGESTIONS:
                break
        logger.info("Got %d activity suggestions for %s", len(drafts), destination)
        return drafts

    async def suggest_itinerary_text(self, trip: Trip) -> str:
        try:
            return await self.invoke(ITINERARY_PROMPT, trip=trip)
        except Exception:
            logger.exception("Itinerary suggestion call failed for trip %s", trip.get("id"))
            return APOLOGY
