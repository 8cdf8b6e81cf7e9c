"""LinkService – links Discord identities to backend accounts.

This service encapsulates the *business logic* of the account-linking flow.
The ``/login`` command and the ``/auth/callback`` HTTP handler are thin
façades over the two halves implemented here:

* :meth:`LinkService.create_login_url` – the identity linker.  Produces an
  authorization URL whose ``state`` is the caller's Discord user ID.  Writes
  nothing to the session store.
* :meth:`LinkService.complete_link` – the callback receiver.  Validates the
  returned ``code``/``state``, exchanges the code and stores the resulting
  :class:`CredentialBundle` under the Discord user ID.

Backend calls are blocking and run in Starlette's threadpool; the session
store is only touched on the event-loop thread once the call has returned, so
exactly one store write happens per successful callback and none on failure.

Nothing here is retried.  **All secrets are redacted** from logs.
"""

from __future__ import annotations

import logging

from starlette.concurrency import run_in_threadpool

from salvage_bot.linking.clock import Clock, default_clock
from salvage_bot.linking.errors import (
    AuthorizationDenied,
    ExchangeFailed,
    GatewayError,
    InvalidState,
    LinkGenerationError,
    MissingCode,
)
from salvage_bot.linking.gateway import AuthGateway
from salvage_bot.linking.log_utils import get_link_logger
from salvage_bot.linking.models import CredentialBundle
from salvage_bot.linking.state import build_state, validate_state
from salvage_bot.linking.store import SessionStore, default_store

_LOG = logging.getLogger("salvage-bot.linking.service")

NO_SESSION_MESSAGE = "No session returned from authentication"


class LinkService:
    """Application service orchestrating the Discord account-linking flow."""

    def __init__(
        self,
        gateway: AuthGateway,
        store: SessionStore | None = None,
        *,
        callback_url: str,
        clock: Clock = default_clock,
    ) -> None:
        if not callback_url:
            raise ValueError("callback_url is required")
        self.gateway = gateway
        self.store = store if store is not None else default_store()
        self.callback_url = callback_url
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Identity linker                                                    #
    # ------------------------------------------------------------------ #
    async def create_login_url(self, identity: str) -> str:
        """Return an authorization URL that links *identity* once completed.

        Raises
        ------
        LinkGenerationError
            If the backend cannot issue a URL.  Safe to retry.
        """
        log = get_link_logger(
            base_logger_name="salvage-bot.linking.service", identity=identity
        )
        try:
            state = build_state(identity)
        except InvalidState as exc:
            raise LinkGenerationError(str(exc)) from None

        try:
            url = await run_in_threadpool(
                lambda: self.gateway.authorize_url(
                    state=state, redirect_to=self.callback_url
                )
            )
        except GatewayError as exc:
            log.warning("Login URL generation failed: %s", exc)
            raise LinkGenerationError() from exc

        if not url:
            log.warning("Backend returned no login URL")
            raise LinkGenerationError()

        log.info("Issued login URL")
        return url

    # ------------------------------------------------------------------ #
    # Callback receiver                                                  #
    # ------------------------------------------------------------------ #
    async def complete_link(
        self,
        *,
        code: str | None,
        state: str | None,
        error: str | None = None,
        error_description: str | None = None,
        correlation_id: str | None = None,
    ) -> CredentialBundle:
        """Finish the flow started by :meth:`create_login_url`.

        Raises
        ------
        AuthorizationDenied
            The provider reported *error*; no exchange is attempted.
        MissingCode, MissingState, InvalidState
            The callback is malformed.
        ExchangeFailed
            The code was rejected (invalid, expired, already used) or the
            backend returned no session.
        """
        log = get_link_logger(
            base_logger_name="salvage-bot.linking.service",
            identity=state,
            correlation_id=correlation_id,
        )

        if error:
            log.warning("Provider returned OAuth error %s", error)
            raise AuthorizationDenied(error, error_description)

        if not code:
            raise MissingCode()

        identity = validate_state(state)

        try:
            session = await run_in_threadpool(
                lambda: self.gateway.exchange_code(code=code, state=identity)
            )
        except GatewayError as exc:
            log.warning("Code exchange failed: %s", exc)
            raise ExchangeFailed(f"Failed to exchange code: {exc}") from exc

        if session is None:
            log.error("Code exchange returned no session")
            raise ExchangeFailed(NO_SESSION_MESSAGE)

        try:
            bundle = CredentialBundle.from_exchange(session, clock=self._clock)
        except ValueError:
            log.error("Code exchange returned an already-expired session")
            raise ExchangeFailed(NO_SESSION_MESSAGE) from None

        self.store.put(identity, bundle)
        log.info(
            "Linked account (session expires in %ss)", session.expires_in
        )
        return bundle

    # ------------------------------------------------------------------ #
    # Session helpers used by the bot                                    #
    # ------------------------------------------------------------------ #
    def unlink(self, identity: str) -> bool:
        """Forget *identity*'s session; return *True* if a live one existed."""
        existed = self.store.get(identity) is not None
        self.store.delete(identity)
        if existed:
            get_link_logger(
                base_logger_name="salvage-bot.linking.service", identity=identity
            ).info("Unlinked account")
        return existed
