"""In-process session storage for linked Discord accounts.

This module introduces a *narrow* storage interface (:class:`SessionStore`)
and the process-lifetime implementation (:class:`InMemorySessionStore`):

* **Keyed by identity** – one :class:`CredentialBundle` per Discord user ID;
  a second login overwrites the first (last-write-wins).
* **Lazy expiry** – an expired bundle is evicted the next time it is read.
  There is no background sweep, so an expired entry may stay in memory until
  its identity is looked up again.
* **Volatile** – a restart drops every session and users must ``/login``
  again.

The store is only touched from the event-loop thread (the callback handler
writes after its awaited exchange returns, commands read), so it carries no
lock.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from salvage_bot.linking.clock import Clock, default_clock
from salvage_bot.linking.models import CredentialBundle
from salvage_bot.utils.logging import mask_sensitive

_LOG = logging.getLogger("salvage-bot.linking.store")


@runtime_checkable
class SessionStore(Protocol):
    """Minimal storage contract for linked sessions."""

    def put(self, identity: str, bundle: CredentialBundle) -> None: ...
    def get(self, identity: str) -> CredentialBundle | None: ...
    def delete(self, identity: str) -> None: ...


class InMemorySessionStore(SessionStore):
    """Dict-backed implementation of :class:`SessionStore`."""

    def __init__(self, *, clock: Clock = default_clock) -> None:
        self._clock = clock
        self._sessions: dict[str, CredentialBundle] = {}

    def put(self, identity: str, bundle: CredentialBundle) -> None:
        replaced = identity in self._sessions
        self._sessions[identity] = bundle
        _LOG.debug(
            "Stored session identity=%s replaced=%s", mask_sensitive(identity), replaced
        )

    def get(self, identity: str) -> CredentialBundle | None:
        bundle = self._sessions.get(identity)
        if bundle is None:
            return None
        if bundle.is_expired(clock=self._clock):
            del self._sessions[identity]
            _LOG.debug("Evicted expired session identity=%s", mask_sensitive(identity))
            return None
        return bundle

    def delete(self, identity: str) -> None:
        self._sessions.pop(identity, None)

    # Raw presence, without the expiry check performed by ``get``.
    def __contains__(self, identity: object) -> bool:
        return identity in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


# --------------------------------------------------------------------------- #
# Convenience – default singleton                                             #
# --------------------------------------------------------------------------- #

_default_store: InMemorySessionStore | None = None


def default_store() -> InMemorySessionStore:
    """Return a process-wide singleton :class:`InMemorySessionStore`."""
    global _default_store  # noqa: PLW0603
    if _default_store is None:
        _default_store = InMemorySessionStore()
    return _default_store
