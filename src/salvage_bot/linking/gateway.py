"""Backend gateway for the Supabase (GoTrue) Discord OAuth flow.

The gateway is the only component that talks to the authorization server.  It
speaks the GoTrue REST API directly:

``GET  {SUPABASE_URL}/auth/v1/settings``
    Checked before issuing a login URL, so an unreachable backend or a
    disabled Discord provider fails at ``/login`` time rather than in the
    user's browser.
``GET  {SUPABASE_URL}/auth/v1/authorize``
    Built locally; the user's browser follows it.
``POST {SUPABASE_URL}/auth/v1/token?grant_type=pkce``
    Trades the authorization code (plus PKCE verifier) for a session.

Supabase only issues codes in its PKCE flow, so the gateway keeps the code
verifiers of pending logins in a bounded TTL cache keyed by the ``state``
value, the same job the Supabase client libraries do with their auth storage.
Several logins per state may be pending at once.  A verifier is removed when
the backend accepts it; codes are single-use on the backend, so a replayed
callback is rejected there.

Every failure surfaces as :class:`~salvage_bot.linking.errors.GatewayError`.
The calls are blocking (``requests``); async callers run them in a worker
thread.
"""

from __future__ import annotations

import logging
import threading
from typing import Final, Protocol, runtime_checkable
from urllib.parse import urlencode

import requests
from cachetools import TTLCache

from salvage_bot.linking.errors import GatewayError
from salvage_bot.linking.models import ExchangedSession
from salvage_bot.linking.pkce import CHALLENGE_METHOD, PkcePair
from salvage_bot.utils.logging import mask_sensitive

_LOG = logging.getLogger("salvage-bot.linking.gateway")

PENDING_LOGIN_TTL_SECONDS: Final[int] = 900
PENDING_LOGIN_MAXSIZE: Final[int] = 4096
PENDING_LOGINS_PER_STATE: Final[int] = 5
_TIMEOUT: Final[tuple[int, int]] = (5, 20)


@runtime_checkable
class AuthGateway(Protocol):
    """Backend operations needed by the linking service."""

    def authorize_url(self, *, state: str, redirect_to: str) -> str: ...
    def exchange_code(self, *, code: str, state: str) -> ExchangedSession | None: ...


def _error_message(resp: requests.Response) -> str:
    """Extract the human-readable error GoTrue put in a non-2xx response."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            value = body.get(key)
            if value:
                return str(value)
    return (resp.text or f"HTTP {resp.status_code}")[:200]


class SupabaseAuthGateway(AuthGateway):
    """GoTrue REST implementation of :class:`AuthGateway`."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        provider: str = "discord",
        scopes: str | None = None,
        pending_ttl: int = PENDING_LOGIN_TTL_SECONDS,
        pending_maxsize: int = PENDING_LOGIN_MAXSIZE,
        pending_per_state: int = PENDING_LOGINS_PER_STATE,
    ) -> None:
        if not base_url or not api_key:
            raise ValueError("Supabase URL and API key are required")
        self.auth_url = f"{base_url.rstrip('/')}/auth/v1"
        self.provider = provider
        self.scopes = scopes
        self._api_key = api_key
        self._pending_ttl = pending_ttl
        self._pending_per_state = pending_per_state
        # state -> [(issued_at, verifier), ...], oldest first
        self._pending: TTLCache[str, list[tuple[float, str]]] = TTLCache(
            maxsize=pending_maxsize, ttl=pending_ttl
        )
        self._pending_lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #
    @property
    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
        }

    def _ensure_provider_enabled(self) -> None:
        try:
            resp = requests.get(
                f"{self.auth_url}/settings", headers=self._headers, timeout=_TIMEOUT
            )
        except requests.RequestException as exc:
            raise GatewayError(f"Auth settings request failed: {exc}") from exc

        if not resp.ok:
            raise GatewayError(_error_message(resp), status_code=resp.status_code)

        try:
            body = resp.json()
        except ValueError:
            raise GatewayError("Auth settings response is not valid JSON") from None
        external = body.get("external") if isinstance(body, dict) else None
        if not isinstance(external, dict):
            raise GatewayError("Auth settings response is malformed")
        if not external.get(self.provider):
            raise GatewayError(f"{self.provider} provider is not enabled")

    def _live_verifiers(self, state: str) -> list[tuple[float, str]]:
        """Return the unexpired pending entries for *state*; caller holds the lock."""
        cutoff = self._pending.timer() - self._pending_ttl
        return [entry for entry in self._pending.get(state, []) if entry[0] > cutoff]

    def _forget_verifier(self, state: str, verifier: str) -> None:
        with self._pending_lock:
            remaining = [e for e in self._live_verifiers(state) if e[1] != verifier]
            if remaining:
                self._pending[state] = remaining
            else:
                self._pending.pop(state, None)

    def has_pending(self, state: str) -> bool:
        """Return *True* if a login for *state* is waiting for its callback."""
        with self._pending_lock:
            return bool(self._live_verifiers(state))

    # ------------------------------------------------------------------ #
    # AuthGateway                                                        #
    # ------------------------------------------------------------------ #
    def authorize_url(self, *, state: str, redirect_to: str) -> str:
        """Return the provider authorize URL carrying *state* and a PKCE challenge.

        Earlier URLs for the same *state* stay usable; only the
        ``pending_per_state`` most recent verifiers are kept.
        """
        self._ensure_provider_enabled()

        pkce = PkcePair.generate()
        params: dict[str, str] = {
            "provider": self.provider,
            "redirect_to": redirect_to,
            "code_challenge": pkce.challenge,
            "code_challenge_method": CHALLENGE_METHOD,
            "state": state,
        }
        if self.scopes:
            params["scopes"] = self.scopes

        with self._pending_lock:
            entries = self._live_verifiers(state)
            entries.append((self._pending.timer(), pkce.verifier))
            self._pending[state] = entries[-self._pending_per_state :]

        _LOG.debug("Built authorize URL for state=%s", mask_sensitive(state))
        return f"{self.auth_url}/authorize?{urlencode(params)}"

    def exchange_code(self, *, code: str, state: str) -> ExchangedSession | None:
        """Exchange *code* for a session; ``None`` if the backend returned none.

        Pending verifiers for *state* are tried newest first.  A verifier is
        dropped once the backend accepts it; rejected attempts leave the
        pending logins in place.
        """
        with self._pending_lock:
            verifiers = [v for _, v in reversed(self._live_verifiers(state))]
        if not verifiers:
            raise GatewayError("No pending login for this account; run /login again")

        rejection = GatewayError("Token exchange failed")
        for verifier in verifiers:
            try:
                resp = requests.post(
                    f"{self.auth_url}/token",
                    params={"grant_type": "pkce"},
                    json={"auth_code": code, "code_verifier": verifier},
                    headers=self._headers,
                    timeout=_TIMEOUT,
                )
            except requests.RequestException as exc:
                raise GatewayError(f"Token request failed: {exc}") from exc

            if resp.ok:
                self._forget_verifier(state, verifier)
                return self._parse_session(resp)

            rejection = GatewayError(_error_message(resp), status_code=resp.status_code)
            if resp.status_code >= 500:
                break

        raise rejection

    @staticmethod
    def _parse_session(resp: requests.Response) -> ExchangedSession | None:
        try:
            data = resp.json()
        except ValueError:
            raise GatewayError("Token response is not valid JSON") from None
        if not isinstance(data, dict):
            raise GatewayError("Token response is malformed")

        user = data.get("user")
        if user is not None and not isinstance(user, dict):
            raise GatewayError("Token response is malformed")

        access_token = data.get("access_token")
        user_id = (user or {}).get("id")
        if not access_token or not user_id:
            return None

        try:
            expires_in = int(data.get("expires_in") or 0)
        except (TypeError, ValueError):
            raise GatewayError("Token response is malformed") from None

        return ExchangedSession(
            access_token=str(access_token),
            refresh_token=data.get("refresh_token") or "",
            expires_in=expires_in,
            user_id=str(user_id),
        )
