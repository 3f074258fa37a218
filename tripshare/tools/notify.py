"""Invite email dispatch through the EmailJS REST API.

Delivery is best-effort: every failure is logged and reported as ``False``;
nothing here raises into the invite flow.
"""

from __future__ import annotations

import logging

import httpx

from tripshare.config.settings import Settings, get_settings
from tripshare.state import Invite, Permission

logger = logging.getLogger(__name__)

PERMISSION_TEXT = {
    Permission.EDIT.value: "edit the trip",
    Permission.VIEW_ONLY.value: "only view the trip",
}


class InviteNotifier:
    """Sends the 'you have been invited' email for an invite."""

    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings or get_settings()
        self._transport = transport

    @property
    def configured(self) -> bool:
        s = self.settings
        return bool(s.EMAILJS_SERVICE_ID and s.EMAILJS_TEMPLATE_ID and s.EMAILJS_PUBLIC_KEY)

    def build_payload(self, invite: Invite) -> dict:
        s = self.settings
        return {
            "service_id": s.EMAILJS_SERVICE_ID,
            "template_id": s.EMAILJS_TEMPLATE_ID,
            "user_id": s.EMAILJS_PUBLIC_KEY,
            "template_params": {
                "to_email": invite["guest_email"],
                "to_name": invite["guest_email"].split("@")[0],
                "trip_name": invite["trip_name"],
                "host_name": invite["host_name"],
                "permission_text": PERMISSION_TEXT.get(invite["permission"], invite["permission"]),
                "app_url": s.APP_URL,
            },
        }

    async def send_invite(self, invite: Invite) -> bool:
        if not self.configured:
            logger.warning(
                "EmailJS is not configured; invite %s saved but no email sent to %s",
                invite["id"], invite["guest_email"],
            )
            return False

        try:
            async with httpx.AsyncClient(timeout=self.settings.EMAIL_TIMEOUT, transport=self._transport) as client:
                resp = await client.post(self.settings.EMAILJS_API_URL, json=self.build_payload(invite))
                resp.raise_for_status()
        except Exception:
            logger.exception("Failed to send invite email for invite %s", invite["id"])
            return False

        logger.info("Invite email sent to %s for trip %s", invite["guest_email"], invite["trip_id"])
        return True
