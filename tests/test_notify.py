"""Tests for invite email dispatch."""

from __future__ import annotations

import json

import httpx
import pytest

from tripshare.config.settings import Settings
from tripshare.tools.notify import InviteNotifier

INVITE = {
    "id": "inv-1",
    "trip_id": "trip-1",
    "trip_name": "Lisbon",
    "host_name": "Ana",
    "host_email": "ana@example.com",
    "guest_email": "bruno@example.com",
    "permission": "VIEW_ONLY",
    "status": "PENDING",
}


def _settings() -> Settings:
    return Settings(
        EMAILJS_SERVICE_ID="svc",
        EMAILJS_TEMPLATE_ID="tpl",
        EMAILJS_PUBLIC_KEY="pub",
        APP_URL="https://trips.example.com",
    )


@pytest.mark.asyncio
async def test_sends_template_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, text="OK")

    notifier = InviteNotifier(_settings(), transport=httpx.MockTransport(handler))
    assert await notifier.send_invite(INVITE) is True

    assert seen["url"] == "https://api.emailjs.com/api/v1.0/email/send"
    assert seen["body"]["service_id"] == "svc"
    assert seen["body"]["user_id"] == "pub"
    assert seen["body"]["template_params"] == {
        "to_email": "bruno@example.com",
        "to_name": "bruno",
        "trip_name": "Lisbon",
        "host_name": "Ana",
        "permission_text": "only view the trip",
        "app_url": "https://trips.example.com",
    }


@pytest.mark.asyncio
async def test_unconfigured_returns_false():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    notifier = InviteNotifier(Settings(), transport=httpx.MockTransport(handler))
    assert notifier.configured is False
    assert await notifier.send_invite(INVITE) is False


@pytest.mark.asyncio
async def test_http_error_returns_false():
    notifier = InviteNotifier(_settings(), transport=httpx.MockTransport(lambda r: httpx.Response(400)))
    assert await notifier.send_invite(INVITE) is False


@pytest.mark.asyncio
async def test_network_error_returns_false():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    notifier = InviteNotifier(_settings(), transport=httpx.MockTransport(handler))
    assert await notifier.send_invite(INVITE) is False
