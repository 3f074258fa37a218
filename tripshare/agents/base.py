"""Base agent class for the language-model collaborators."""

from __future__ import annotations

import logging

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage

from tripshare.config.settings import get_settings
from tripshare.state import Trip
from tripshare.tools.currency import format_money

logger = logging.getLogger(__name__)


def get_trip_context(trip: Trip) -> str:
    """Build a trip-context block injected into the system prompt.

    Returns an empty string when the trip has no destination.
    """
    if not trip or not trip.get("destination"):
        return ""

    prefs = trip.get("preferences") or {}
    code = trip.get("currency", "BRL")
    parts = [
        "\n--- TRIP CONTEXT ---",
        f"Destination: {trip['destination']}",
        f"Dates: {trip.get('start_date', '?')} to {trip.get('end_date', '?')} ({len(trip.get('days', []))} days)",
        f"Total budget: {format_money(trip.get('budget_cents', 0), code)} ({code})",
        f"Budget style: {prefs.get('budget_style', 'comfortable')}",
        f"Travelers: {len(trip.get('participants', []))}",
        f"Likes: {', '.join(prefs.get('likes') or []) or 'none given'}",
        f"Dislikes: {', '.join(prefs.get('dislikes') or []) or 'none given'}",
        "--- END TRIP CONTEXT ---\n",
    ]
    return "\n".join(parts)


class BaseAgent:
    """Wraps ChatAnthropic with model selection and trip-context injection."""

    agent_name: str = "base"
    max_tokens: int = 2048

    _TONE_PREAMBLE = (
        "You are a friendly, knowledgeable travel assistant. "
        "Be warm but concise. Use plain language.\n\n"
    )

    def __init__(self) -> None:
        settings = get_settings()
        self.llm = ChatAnthropic(
            model=settings.SUGGESTION_MODEL,
            anthropic_api_key=settings.ANTHROPIC_API_KEY,
            max_tokens=self.max_tokens,
            timeout=settings.LLM_TIMEOUT,
            max_retries=settings.LLM_MAX_RETRIES,
        )

    def get_system_prompt(self) -> str:
        """Override in subclasses to provide the agent-specific system prompt."""
        return "You are a helpful travel planning assistant."

    def build_system_prompt(self, trip: Trip | None = None) -> str:
        base_prompt = self._TONE_PREAMBLE + self.get_system_prompt()
        context = get_trip_context(trip) if trip else ""
        return f"{base_prompt}\n{context}" if context else base_prompt

    async def invoke(self, user_message: str, trip: Trip | None = None) -> str:
        """Run a single LLM call with system prompt + user message."""
        messages = [
            SystemMessage(content=self.build_system_prompt(trip)),
            HumanMessage(content=user_message),
        ]
        response = await self.llm.ainvoke(messages)
        return response.content
