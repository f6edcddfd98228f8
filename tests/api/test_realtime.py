"""
Tests for the realtime consultation channel admission.
"""

import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect

from src.adapters.auth.crypto import create_access_token
from src.api import deps


@pytest.fixture
def strict(monkeypatch) -> None:
    monkeypatch.setenv("WS_AUTH_STRICT", "true")


@pytest.fixture
def permissive(monkeypatch) -> None:
    monkeypatch.delenv("WS_AUTH_STRICT", raising=False)


def _assert_rejected(client, url: str) -> None:
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(url) as ws:
            ws.receive_json()
    assert exc.value.code == 1008
    assert exc.value.reason == "Unauthorized"


class TestStrictMode:
    def test_valid_token_admitted(self, client, practitioner, jwt_secret, strict) -> None:
        token = create_access_token({"userEmail": practitioner.email}, jwt_secret)

        with client.websocket_connect(f"/ws/consultation?token={token}") as ws:
            event = ws.receive_json()

        assert event["event"] == "connected"
        assert event["outcome"] == "admitted"
        assert event["user"]["email"] == practitioner.email
        assert event["user"]["role"] == "practitioner"

    def test_bearer_header_admitted(self, client, practitioner, jwt_secret, strict) -> None:
        token = create_access_token({"userEmail": practitioner.email}, jwt_secret)

        with client.websocket_connect(
            "/ws/consultation", headers={"Authorization": f"Bearer {token}"}
        ) as ws:
            assert ws.receive_json()["outcome"] == "admitted"

    def test_no_token_rejected(self, client, jwt_secret, strict) -> None:
        _assert_rejected(client, "/ws/consultation")

    def test_rejection_accepted_then_closed(self, client, jwt_secret, strict) -> None:
        with client.websocket_connect("/ws/consultation") as ws:
            message = ws.receive()

        assert message["type"] == "websocket.close"
        assert message["code"] == 1008
        assert message["reason"] == "Unauthorized"

    def test_bad_signature_rejected(self, client, practitioner, jwt_secret, strict) -> None:
        token = create_access_token({"userEmail": practitioner.email}, "wrong")
        _assert_rejected(client, f"/ws/consultation?token={token}")

    def test_unknown_user_rejected(self, client, practitioner, jwt_secret, strict) -> None:
        token = create_access_token({"userEmail": "ghost@example.com"}, jwt_secret)
        _assert_rejected(client, f"/ws/consultation?token={token}")

    def test_missing_secret_rejected(self, client, practitioner, monkeypatch, strict) -> None:
        monkeypatch.delenv("JWT_SECRET", raising=False)
        token = create_access_token({"userEmail": practitioner.email}, "whatever")
        _assert_rejected(client, f"/ws/consultation?token={token}")

    def test_identity_lookup_runs_off_event_loop(
        self, app, client, user_repo, practitioner, jwt_secret, strict
    ) -> None:
        loops = []

        class RecordingUserRepo:
            def get_by_email(self, email):
                try:
                    loops.append(asyncio.get_running_loop())
                except RuntimeError:
                    loops.append(None)
                return user_repo.get_by_email(email)

        app.dependency_overrides[deps.get_user_repo] = RecordingUserRepo
        token = create_access_token({"userEmail": practitioner.email}, jwt_secret)

        with client.websocket_connect(f"/ws/consultation?token={token}") as ws:
            assert ws.receive_json()["outcome"] == "admitted"

        assert loops == [None]


class TestPermissiveMode:
    def test_no_token_anonymous(self, client, jwt_secret, permissive) -> None:
        with client.websocket_connect("/ws/consultation") as ws:
            event = ws.receive_json()

        assert event == {"event": "connected", "outcome": "anonymous", "user": None}

    def test_bad_token_anonymous(self, client, jwt_secret, permissive) -> None:
        with client.websocket_connect("/ws/consultation?token=garbage") as ws:
            event = ws.receive_json()

        assert event["outcome"] == "anonymous"

    def test_valid_token_identified(self, client, practitioner, jwt_secret, permissive) -> None:
        token = create_access_token({"userEmail": practitioner.email}, jwt_secret)

        with client.websocket_connect(f"/ws/consultation?token={token}") as ws:
            assert ws.receive_json()["user"]["display_name"] == "Ada Lovelace"

    def test_ping_pong(self, client, jwt_secret, permissive) -> None:
        with client.websocket_connect("/ws/consultation") as ws:
            ws.receive_json()
            ws.send_json({"event": "ping"})
            assert ws.receive_json() == {"event": "pong"}

    def test_malformed_frame_keeps_connection(self, client, jwt_secret, permissive) -> None:
        with client.websocket_connect("/ws/consultation") as ws:
            ws.receive_json()
            ws.send_text("hello")
            assert ws.receive_json() == {"event": "error", "message": "Malformed message"}
            ws.send_json({"event": "ping"})
            assert ws.receive_json() == {"event": "pong"}


class TestStrictToggle:
    def test_flag_read_per_attempt(self, client, jwt_secret, monkeypatch) -> None:
        monkeypatch.setenv("WS_AUTH_STRICT", "false")
        with client.websocket_connect("/ws/consultation") as ws:
            assert ws.receive_json()["outcome"] == "anonymous"

        monkeypatch.setenv("WS_AUTH_STRICT", "true")
        _assert_rejected(client, "/ws/consultation")
