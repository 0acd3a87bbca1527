"""Tests for the Slack Events API endpoint via real HTTP calls."""

from __future__ import annotations

import json
import time
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp.test_utils import TestClient, TestServer

from vibeflow_notify.config.settings import Settings
from vibeflow_notify.errors import DispatchError
from vibeflow_notify.server.app import AppFactory
from vibeflow_notify.services.signature import compute_slack_signature
from vibeflow_notify.state.delivery_log import DeliveryLogStore

SIGNING_SECRET = "test-signing-secret"


@pytest.fixture()
def settings(data_dir: Path, monkeypatch) -> Settings:
    monkeypatch.setenv("SLACK_SIGNING_SECRET", SIGNING_SECRET)
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-test")
    monkeypatch.setenv("NOTIFY_API_SECRET", "api-secret")
    return Settings()


@pytest.fixture()
def dispatcher() -> MagicMock:
    d = MagicMock()
    d.send_direct_message = AsyncMock(return_value="D1")
    d.post_to_webhook = AsyncMock(return_value=200)
    return d


def _signed(payload: dict | str, *, secret: str = SIGNING_SECRET, ts: int | None = None) -> dict:
    body = payload if isinstance(payload, str) else json.dumps(payload)
    timestamp = str(ts if ts is not None else int(time.time()))
    return {
        "data": body,
        "headers": {
            "Content-Type": "application/json",
            "X-Slack-Request-Timestamp": timestamp,
            "X-Slack-Signature": compute_slack_signature(timestamp, body, secret),
        },
    }


def _team_join(user: dict) -> dict:
    return {"type": "event_callback", "event": {"type": "team_join", "user": user}}


class TestSlackEvents:
    @pytest.mark.asyncio
    async def test_url_verification(self, settings, dispatcher):
        app = await AppFactory(settings, dispatcher=dispatcher).build()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/api/slack/events",
                **_signed({"type": "url_verification", "challenge": "abc123"}),
            )
            assert resp.status == 200
            assert await resp.json() == {"challenge": "abc123"}

    @pytest.mark.asyncio
    async def test_bad_signature(self, settings, dispatcher):
        app = await AppFactory(settings, dispatcher=dispatcher).build()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/api/slack/events",
                **_signed({"type": "url_verification", "challenge": "x"}, secret="wrong"),
            )
            assert resp.status == 401
            assert await resp.json() == {"error": "Invalid signature"}

    @pytest.mark.asyncio
    async def test_missing_headers(self, settings, dispatcher):
        app = await AppFactory(settings, dispatcher=dispatcher).build()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/slack/events", data='{"type":"url_verification"}')
            assert resp.status == 401

    @pytest.mark.asyncio
    async def test_stale_timestamp(self, settings, dispatcher):
        app = await AppFactory(settings, dispatcher=dispatcher).build()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/api/slack/events",
                **_signed({"type": "url_verification", "challenge": "x"}, ts=int(time.time()) - 600),
            )
            assert resp.status == 401

    @pytest.mark.asyncio
    async def test_oversized_timestamp(self, settings, dispatcher):
        app = await AppFactory(settings, dispatcher=dispatcher).build()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/api/slack/events",
                **_signed({"type": "url_verification", "challenge": "x"}, ts=int("9" * 400)),
            )
            assert resp.status == 401
            assert await resp.json() == {"error": "Invalid signature"}

    @pytest.mark.asyncio
    async def test_missing_credentials(self, data_dir, dispatcher):
        app = await AppFactory(Settings(), dispatcher=dispatcher).build()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/api/slack/events", **_signed({"type": "url_verification", "challenge": "x"}),
            )
            assert resp.status == 500
            assert await resp.json() == {"error": "Server configuration error"}

    @pytest.mark.asyncio
    async def test_invalid_json(self, settings, dispatcher):
        app = await AppFactory(settings, dispatcher=dispatcher).build()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/api/slack/events", **_signed("not json"))
            assert resp.status == 400
            assert await resp.json() == {"error": "Invalid JSON body"}

    @pytest.mark.asyncio
    async def test_unknown_event_acknowledged(self, settings, dispatcher):
        app = await AppFactory(settings, dispatcher=dispatcher).build()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/api/slack/events",
                **_signed({"type": "event_callback", "event": {"type": "message"}}),
            )
            assert resp.status == 200
            assert await resp.json() == {"ok": True}
        dispatcher.send_direct_message.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("event", ["team_join", ["team_join"], 42, None])
    async def test_non_object_event_acknowledged(self, settings, dispatcher, event):
        app = await AppFactory(settings, dispatcher=dispatcher).build()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/api/slack/events", **_signed({"type": "event_callback", "event": event}),
            )
            assert resp.status == 200
            assert await resp.json() == {"ok": True}
        dispatcher.send_direct_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_team_join_sends_welcome(self, settings, dispatcher):
        app = await AppFactory(settings, dispatcher=dispatcher).build()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/api/slack/events",
                **_signed(_team_join({"id": "U42", "name": "ana", "real_name": "Ana Lima"})),
            )
            assert resp.status == 200
            assert await resp.json() == {"ok": True}
            await app["background"].drain()

        user_id, message = dispatcher.send_direct_message.await_args.args
        assert user_id == "U42"
        assert message.to_dict()["blocks"][0]["text"]["text"] == "👋 Bem-vindo ao Vibe Flow!"
        entry = DeliveryLogStore(settings.delivery_log_path).query()["entries"][0]
        assert entry["recipient"] == "U42"
        assert entry["display_name"] == "Ana Lima"
        assert entry["status"] == "success"

    @pytest.mark.asyncio
    async def test_team_join_falls_back_to_name(self, settings, dispatcher):
        app = await AppFactory(settings, dispatcher=dispatcher).build()
        async with TestClient(TestServer(app)) as client:
            await client.post("/api/slack/events", **_signed(_team_join({"id": "U7", "name": "bia"})))
            await app["background"].drain()

        entry = DeliveryLogStore(settings.delivery_log_path).query()["entries"][0]
        assert entry["display_name"] == "bia"

    @pytest.mark.asyncio
    async def test_welcome_failure_still_acknowledged(self, settings, dispatcher):
        dispatcher.send_direct_message = AsyncMock(
            side_effect=DispatchError("Failed to open DM channel: user_not_found"),
        )
        app = await AppFactory(settings, dispatcher=dispatcher).build()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/api/slack/events", **_signed(_team_join({"id": "U9", "name": "x"})),
            )
            assert resp.status == 200
            await app["background"].drain()

        entry = DeliveryLogStore(settings.delivery_log_path).query()["entries"][0]
        assert entry["status"] == "failed"
        assert entry["error_message"] == "Failed to open DM channel: user_not_found"

    @pytest.mark.asyncio
    async def test_events_route_skips_bearer_auth(self, settings, dispatcher):
        app = await AppFactory(settings, dispatcher=dispatcher).build()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/api/slack/events", **_signed({"type": "url_verification", "challenge": "c"}),
            )
            assert resp.status == 200
