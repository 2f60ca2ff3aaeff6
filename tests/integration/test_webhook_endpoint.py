"""Integration tests for the FastAPI webhook endpoint."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from line_gateway.api.oauth import HttpAccessTokenIssuer
from line_gateway.api.reply import HttpReplyTransport, Reply
from line_gateway.errors import OAuthUnexpectedStatusError
from line_gateway.handlers import EchoHandler
from line_gateway.pipeline import WebhookPipeline
from line_gateway.server.app import create_app, create_app_from_env
from tests.conftest import (
    FakeReplyTransport,
    FakeTokenIssuer,
    RecordingHandler,
    make_body,
    make_channel,
    make_event,
    make_registry,
    make_text_event,
    sign,
)


def _make_app(handler: RecordingHandler | None = None, **kwargs: Any) -> tuple[Any, FakeReplyTransport]:
    transport = kwargs.pop("transport", None) or FakeReplyTransport()
    issuer = kwargs.pop("issuer", None) or FakeTokenIssuer()
    registry = make_registry(make_channel(handler=handler or RecordingHandler()))
    return create_app(WebhookPipeline(registry, issuer, transport)), transport


async def _post(app: Any, body: bytes, headers: dict[str, str] | None = None) -> httpx.Response:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.post("/webhook", content=body, headers=headers or {})


class TestWebhookEndpoint:
    @pytest.mark.asyncio
    async def test_health(self) -> None:
        app, _ = _make_app()
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_valid_delivery_returns_200_and_replies(self) -> None:
        app, transport = _make_app(RecordingHandler([Reply.text("hi")]))
        body = make_body([make_event("follow", reply_token="tok1")])

        resp = await _post(app, body, {"X-Line-Signature": sign(body)})

        assert resp.status_code == 200
        assert transport.sent[0][1].reply_token == "tok1"

    @pytest.mark.asyncio
    async def test_missing_signature_header_returns_401(self) -> None:
        handler = RecordingHandler()
        app, _ = _make_app(handler)
        resp = await _post(app, make_body([make_event("follow")]))
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid webhook signature"
        assert handler.events == []

    @pytest.mark.asyncio
    async def test_bad_signature_returns_401(self) -> None:
        handler = RecordingHandler()
        app, _ = _make_app(handler)
        body = make_body([make_event("follow")])
        resp = await _post(app, body, {"X-Line-Signature": sign(body, secret="wrong")})
        assert resp.status_code == 401
        assert handler.events == []

    @pytest.mark.asyncio
    async def test_unknown_destination_returns_404(self) -> None:
        app, _ = _make_app()
        body = make_body([], destination="U999")
        resp = await _post(app, body, {"X-Line-Signature": sign(body)})
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_malformed_body_returns_400(self) -> None:
        app, _ = _make_app()
        resp = await _post(app, b"not json", {"X-Line-Signature": sign(b"not json")})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_non_string_event_type_returns_400(self) -> None:
        handler = RecordingHandler()
        app, _ = _make_app(handler)
        body = json.dumps({"destination": "U123", "events": [{"type": []}]}).encode()
        resp = await _post(app, body, {"X-Line-Signature": sign(body)})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Malformed request body"
        assert handler.events == []

    @pytest.mark.asyncio
    async def test_handler_failure_returns_500(self) -> None:
        class Broken:
            def handle_webhook_event(self, event):
                raise KeyError("missing")

        registry = make_registry(make_channel(handler=Broken()))
        app = create_app(WebhookPipeline(registry, FakeTokenIssuer(), FakeReplyTransport()))
        body = make_body([make_event("follow")])
        resp = await _post(app, body, {"X-Line-Signature": sign(body)})
        assert resp.status_code == 500

    @pytest.mark.asyncio
    async def test_token_failure_returns_502(self) -> None:
        app, _ = _make_app(
            RecordingHandler([Reply.text("hi")]),
            issuer=FakeTokenIssuer(error=OAuthUnexpectedStatusError(500)),
        )
        body = make_body([make_event("follow")])
        resp = await _post(app, body, {"X-Line-Signature": sign(body)})
        assert resp.status_code == 502
        assert resp.json()["error"] == "Access token issuance failed"


class TestAgainstMockPlatform:
    """Full stack: FastAPI app, pipeline and httpx transports against a mock API."""

    @pytest.mark.asyncio
    async def test_echo_round_trip(self) -> None:
        requests: list[httpx.Request] = []

        def platform(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.path == "/v2/oauth/accessToken":
                return httpx.Response(200, json={
                    "access_token": "live-token", "expires_in": 2592000, "token_type": "Bearer",
                })
            return httpx.Response(200, json={})

        mock = httpx.MockTransport(platform)
        registry = make_registry(make_channel(handler=EchoHandler()))
        pipeline = WebhookPipeline(
            registry,
            HttpAccessTokenIssuer("https://api.test", transport=mock),
            HttpReplyTransport("https://api.test", transport=mock),
        )
        app = create_app(pipeline)
        body = make_body([make_text_event("ping", reply_token="r1")])

        resp = await _post(app, body, {"X-Line-Signature": sign(body)})

        assert resp.status_code == 200
        assert [r.url.path for r in requests] == ["/v2/oauth/accessToken", "/v2/bot/message/reply"]
        reply_request = requests[1]
        assert reply_request.headers["authorization"] == "Bearer live-token"
        assert json.loads(reply_request.content) == {
            "replyToken": "r1",
            "messages": [{"type": "text", "text": "ping"}],
            "notificationDisabled": False,
        }

    @pytest.mark.asyncio
    async def test_reply_rejection_returns_502(self) -> None:
        def platform(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v2/oauth/accessToken":
                return httpx.Response(200, json={
                    "access_token": "t", "expires_in": 1, "token_type": "Bearer",
                })
            return httpx.Response(400, json={"message": "Invalid reply token"})

        mock = httpx.MockTransport(platform)
        registry = make_registry(make_channel(handler=RecordingHandler([Reply.text("x")])))
        pipeline = WebhookPipeline(
            registry,
            HttpAccessTokenIssuer("https://api.test", transport=mock),
            HttpReplyTransport("https://api.test", transport=mock),
        )
        body = make_body([make_event("follow")])

        resp = await _post(create_app(pipeline), body, {"X-Line-Signature": sign(body)})

        assert resp.status_code == 502
        assert resp.json()["error"] == "Reply delivery failed"


class TestCreateAppFromEnv:
    @pytest.mark.asyncio
    async def test_builds_app_from_channel_file(self, tmp_path: Path, monkeypatch) -> None:
        channels = tmp_path / "channels.json"
        channels.write_text(json.dumps([
            {"channel_id": 1, "user_id": "U123", "secret_env": "TEST_LINE_SECRET"},
        ]))
        monkeypatch.setenv("LINE_CHANNELS_PATH", str(channels))
        monkeypatch.setenv("TEST_LINE_SECRET", "env-secret")
        monkeypatch.setenv("AUDIT_LOG_PATH", str(tmp_path / "audit.jsonl"))

        app = create_app_from_env()
        body = make_body([make_event("unfollow", reply_token=None)])

        ok = await _post(app, body, {"X-Line-Signature": sign(body, secret="env-secret")})
        rejected = await _post(app, body, {"X-Line-Signature": sign(body)})

        assert ok.status_code == 200
        assert rejected.status_code == 401
        assert "signature_failure" in (tmp_path / "audit.jsonl").read_text()
