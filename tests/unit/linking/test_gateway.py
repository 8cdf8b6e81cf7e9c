"""Tests for SupabaseAuthGateway against a stubbed GoTrue REST API."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from salvage_bot.linking.errors import GatewayError
from salvage_bot.linking.gateway import SupabaseAuthGateway
from salvage_bot.linking.models import ExchangedSession
from salvage_bot.linking.pkce import code_challenge_s256

SUPABASE_URL = "https://project.supabase.test"
CALLBACK_URL = "https://bot.example.com/auth/callback"
STATE = "123456789012345678"


# --------------------------------------------------------------------------- #
# Helpers                                                                     #
# --------------------------------------------------------------------------- #
def _response(status: int, body: Any = None, text: str = "") -> SimpleNamespace:
    resp = SimpleNamespace()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.text = text

    def _json() -> Any:
        if body is None:
            raise ValueError("no json")
        return body

    resp.json = _json
    return resp


def _settings_ok(monkeypatch: pytest.MonkeyPatch, *, discord: bool = True) -> dict[str, object]:
    captured: dict[str, object] = {}

    def fake_get(url: str, *, headers: dict, timeout: tuple[int, int]) -> object:  # noqa: ANN001
        captured["url"] = url
        captured["headers"] = headers
        return _response(200, {"external": {"discord": discord, "email": True}})

    monkeypatch.setattr(requests, "get", fake_get, raising=True)
    return captured


@pytest.fixture()
def gateway() -> SupabaseAuthGateway:
    return SupabaseAuthGateway(SUPABASE_URL + "/", "anon-key")


# --------------------------------------------------------------------------- #
# authorize_url                                                               #
# --------------------------------------------------------------------------- #
def test_authorize_url_carries_state_and_pkce(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    captured = _settings_ok(monkeypatch)

    url = gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)

    parsed = urlparse(url)
    query = parse_qs(parsed.query)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == f"{SUPABASE_URL}/auth/v1/authorize"
    assert query["provider"] == ["discord"]
    assert query["redirect_to"] == [CALLBACK_URL]
    assert query["state"] == [STATE]
    assert query["code_challenge_method"] == ["s256"]
    assert query["code_challenge"][0]
    assert gateway.has_pending(STATE)

    assert captured["url"] == f"{SUPABASE_URL}/auth/v1/settings"
    assert captured["headers"]["apikey"] == "anon-key"  # type: ignore[index]


def test_authorize_url_fails_when_provider_disabled(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    _settings_ok(monkeypatch, discord=False)
    with pytest.raises(GatewayError, match="not enabled"):
        gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)
    assert not gateway.has_pending(STATE)


def test_authorize_url_fails_when_backend_unreachable(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    def fake_get(url: str, **kwargs: Any) -> object:
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(requests, "get", fake_get, raising=True)
    with pytest.raises(GatewayError, match="connection refused"):
        gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)


def test_authorize_url_reports_backend_error_message(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        requests,
        "get",
        lambda url, **kwargs: _response(401, {"message": "Invalid API key"}),
        raising=True,
    )
    with pytest.raises(GatewayError, match="Invalid API key") as exc_info:
        gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)
    assert exc_info.value.status_code == 401


# --------------------------------------------------------------------------- #
# exchange_code                                                               #
# --------------------------------------------------------------------------- #
def test_exchange_code_posts_pkce_grant(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    _settings_ok(monkeypatch)
    url = gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)
    challenge = parse_qs(urlparse(url).query)["code_challenge"][0]

    captured: dict[str, Any] = {}

    def fake_post(url: str, *, params: dict, json: dict, headers: dict, timeout: tuple[int, int]) -> object:  # noqa: ANN001
        captured.update(url=url, params=params, json=json, headers=headers)
        return _response(
            200,
            {
                "access_token": "t1",
                "refresh_token": "r1",
                "expires_in": 3600,
                "user": {"id": "u-9"},
            },
        )

    monkeypatch.setattr(requests, "post", fake_post, raising=True)

    session = gateway.exchange_code(code="abc", state=STATE)

    assert session == ExchangedSession(
        access_token="t1", refresh_token="r1", expires_in=3600, user_id="u-9"
    )
    assert captured["url"] == f"{SUPABASE_URL}/auth/v1/token"
    assert captured["params"] == {"grant_type": "pkce"}
    assert captured["json"]["auth_code"] == "abc"
    # the verifier sent is the one the challenge in the URL was derived from
    assert code_challenge_s256(captured["json"]["code_verifier"]) == challenge
    assert not gateway.has_pending(STATE)


def test_exchange_code_without_pending_login_fails(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[str] = []
    monkeypatch.setattr(
        requests, "post", lambda url, **kwargs: calls.append(url), raising=True
    )
    with pytest.raises(GatewayError, match="No pending login"):
        gateway.exchange_code(code="abc", state=STATE)
    assert calls == []


def test_replayed_code_is_not_exchanged_twice(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    _settings_ok(monkeypatch)
    gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)

    calls: list[str] = []

    def fake_post(url: str, **kwargs: Any) -> object:
        calls.append(url)
        return _response(
            200,
            {"access_token": "t1", "refresh_token": "r1", "expires_in": 60, "user": {"id": "u"}},
        )

    monkeypatch.setattr(requests, "post", fake_post, raising=True)

    gateway.exchange_code(code="abc", state=STATE)
    with pytest.raises(GatewayError):
        gateway.exchange_code(code="abc", state=STATE)
    assert len(calls) == 1


def test_exchange_code_rejected_by_backend(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    _settings_ok(monkeypatch)
    gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)
    monkeypatch.setattr(
        requests,
        "post",
        lambda url, **kwargs: _response(
            400, {"error": "invalid_grant", "error_description": "Invalid auth code"}
        ),
        raising=True,
    )
    with pytest.raises(GatewayError, match="Invalid auth code"):
        gateway.exchange_code(code="stale", state=STATE)


def test_exchange_code_network_error(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    _settings_ok(monkeypatch)
    gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)

    def fake_post(url: str, **kwargs: Any) -> object:
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(requests, "post", fake_post, raising=True)
    with pytest.raises(GatewayError, match="Token request failed"):
        gateway.exchange_code(code="abc", state=STATE)


def test_exchange_code_without_session_returns_none(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    _settings_ok(monkeypatch)
    gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)
    monkeypatch.setattr(
        requests, "post", lambda url, **kwargs: _response(200, {"user": None}), raising=True
    )
    assert gateway.exchange_code(code="abc", state=STATE) is None


def test_gateway_requires_credentials() -> None:
    with pytest.raises(ValueError):
        SupabaseAuthGateway("", "key")


@pytest.mark.parametrize(
    "body",
    [
        {"external": ["discord"]},
        {"external": "discord"},
        ["discord"],
    ],
)
def test_authorize_url_rejects_malformed_settings(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch, body: Any
) -> None:
    monkeypatch.setattr(requests, "get", lambda url, **kwargs: _response(200, body), raising=True)
    with pytest.raises(GatewayError, match="malformed"):
        gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)
    assert not gateway.has_pending(STATE)


@pytest.mark.parametrize(
    "body",
    [
        {"access_token": "t", "user": {"id": "u"}, "expires_in": "3600.0"},
        {"access_token": "t", "user": {"id": "u"}, "expires_in": [3600]},
        {"access_token": "t", "user": ["u"], "expires_in": 3600},
        ["t"],
    ],
)
def test_exchange_code_rejects_malformed_token_response(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch, body: Any
) -> None:
    _settings_ok(monkeypatch)
    gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)
    monkeypatch.setattr(requests, "post", lambda url, **kwargs: _response(200, body), raising=True)

    with pytest.raises(GatewayError, match="malformed"):
        gateway.exchange_code(code="abc", state=STATE)


# --------------------------------------------------------------------------- #
# several pending logins for one state                                        #
# --------------------------------------------------------------------------- #
class _PkceBackend:
    """Token endpoint that only accepts a code with the verifier of its challenge."""

    def __init__(self) -> None:
        self.challenges: dict[str, str] = {}
        self.used: set[str] = set()
        self.attempts: list[str] = []

    def issue(self, code: str, authorize_url: str) -> None:
        self.challenges[code] = parse_qs(urlparse(authorize_url).query)["code_challenge"][0]

    def post(self, url: str, *, params: dict, json: dict, headers: dict, timeout: tuple[int, int]) -> object:  # noqa: ANN001
        code = json["auth_code"]
        self.attempts.append(code)
        if code in self.used or code not in self.challenges:
            return _response(404, {"error_description": "invalid flow state, no valid flow state found"})
        if code_challenge_s256(json["code_verifier"]) != self.challenges[code]:
            return _response(400, {"error_description": "code challenge does not match previously saved code verifier"})
        self.used.add(code)
        return _response(
            200,
            {"access_token": f"token-{code}", "refresh_token": "r", "expires_in": 3600, "user": {"id": "u-1"}},
        )


def test_older_login_link_still_completes(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    _settings_ok(monkeypatch)
    backend = _PkceBackend()
    monkeypatch.setattr(requests, "post", backend.post, raising=True)

    backend.issue("code-1", gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL))
    backend.issue("code-2", gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL))

    first = gateway.exchange_code(code="code-1", state=STATE)
    assert first is not None and first.access_token == "token-code-1"
    assert gateway.has_pending(STATE)

    second = gateway.exchange_code(code="code-2", state=STATE)
    assert second is not None and second.access_token == "token-code-2"
    assert not gateway.has_pending(STATE)


def test_rejected_code_keeps_pending_logins(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    _settings_ok(monkeypatch)
    backend = _PkceBackend()
    monkeypatch.setattr(requests, "post", backend.post, raising=True)

    gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)
    backend.issue("code-2", gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL))

    with pytest.raises(GatewayError, match="invalid flow state"):
        gateway.exchange_code(code="code-from-first", state=STATE)
    assert gateway.has_pending(STATE)

    session = gateway.exchange_code(code="code-2", state=STATE)
    assert session is not None


def test_replayed_code_rejected_while_other_login_pending(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    _settings_ok(monkeypatch)
    backend = _PkceBackend()
    monkeypatch.setattr(requests, "post", backend.post, raising=True)

    backend.issue("code-1", gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL))
    gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)

    gateway.exchange_code(code="code-1", state=STATE)
    with pytest.raises(GatewayError):
        gateway.exchange_code(code="code-1", state=STATE)
    assert gateway.has_pending(STATE)


def test_pending_logins_per_state_are_capped(monkeypatch: pytest.MonkeyPatch) -> None:
    gateway = SupabaseAuthGateway(SUPABASE_URL, "anon-key", pending_per_state=3)
    _settings_ok(monkeypatch)
    backend = _PkceBackend()
    monkeypatch.setattr(requests, "post", backend.post, raising=True)

    oldest = gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)
    for _ in range(3):
        gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)
    backend.issue("code-oldest", oldest)

    with pytest.raises(GatewayError):
        gateway.exchange_code(code="code-oldest", state=STATE)
    assert len(backend.attempts) == 3


def test_backend_outage_stops_trying_other_verifiers(
    gateway: SupabaseAuthGateway, monkeypatch: pytest.MonkeyPatch
) -> None:
    _settings_ok(monkeypatch)
    gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)
    gateway.authorize_url(state=STATE, redirect_to=CALLBACK_URL)

    calls: list[str] = []

    def fake_post(url: str, **kwargs: Any) -> object:
        calls.append(url)
        return _response(503, text="upstream unavailable")

    monkeypatch.setattr(requests, "post", fake_post, raising=True)

    with pytest.raises(GatewayError) as exc_info:
        gateway.exchange_code(code="abc", state=STATE)
    assert exc_info.value.status_code == 503
    assert len(calls) == 1
    assert gateway.has_pending(STATE)
