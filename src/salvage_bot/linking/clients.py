"""Request-scoped Supabase clients authenticated as a linked user."""

from __future__ import annotations

import logging
from typing import Callable

from supabase import Client, ClientOptions, create_client

from salvage_bot.linking.models import CredentialBundle
from salvage_bot.linking.store import SessionStore
from salvage_bot.utils.logging import mask_sensitive

_LOG = logging.getLogger("salvage-bot.linking.clients")

ClientBuilder = Callable[..., Client]


class ScopedClientFactory:
    """Build a fresh Supabase client for one linked Discord identity.

    A new client is created on every call so that a token never outlives the
    request it was looked up for.  Expired sessions are not refreshed: the
    store evicts them and the user has to ``/login`` again.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        supabase_url: str,
        supabase_key: str,
        client_builder: ClientBuilder = create_client,
    ) -> None:
        self.store = store
        self.supabase_url = supabase_url
        self.supabase_key = supabase_key
        self._build = client_builder

    def session_for(self, identity: str) -> CredentialBundle | None:
        """Return the live bundle a client for *identity* would be built from."""
        return self.store.get(identity)

    def get(self, identity: str) -> Client | None:
        """Return a client for *identity*, or ``None`` if it has no live session."""
        bundle = self.session_for(identity)
        if bundle is None:
            _LOG.debug("No linked session for identity=%s", mask_sensitive(identity))
            return None

        options = ClientOptions(
            headers={"Authorization": f"Bearer {bundle.access_token}"},
            auto_refresh_token=False,
            persist_session=False,
        )
        return self._build(self.supabase_url, self.supabase_key, options=options)
