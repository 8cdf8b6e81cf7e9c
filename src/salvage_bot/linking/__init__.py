"""Account-linking core package.

This namespace hosts the **HTTP-agnostic** building blocks that link a
Discord identity to a Supabase account through an OAuth authorization-code
handoff.

Sub-modules
-----------
clock
    Test-friendly time abstraction.
models
    Immutable credential bundle / exchanged-session records.
state
    Validation of the ``state`` value round-tripped through the provider.
pkce
    Proof-Key for Code Exchange helpers.
store
    Process-lifetime session store with lazy expiry.
gateway
    Supabase auth (GoTrue) REST gateway.
service
    The identity linker and callback receiver.
clients
    Request-scoped, user-authenticated Supabase clients.
errors
    Exception types used by the linking logic.
log_utils
    Structured logging helpers (thin wrapper around :pymod:`logging`).

All public objects are re-exported here for convenience.
"""

from __future__ import annotations

from .clock import Clock, default_clock, now_ms  # noqa: F401
from .models import CredentialBundle, ExchangedSession  # noqa: F401
from .state import build_state, validate_state, is_valid_identity  # noqa: F401
from .pkce import PkcePair, code_challenge_s256  # noqa: F401
from .store import SessionStore, InMemorySessionStore, default_store  # noqa: F401
from .gateway import AuthGateway, SupabaseAuthGateway  # noqa: F401
from .service import LinkService  # noqa: F401
from .clients import ScopedClientFactory  # noqa: F401
from .errors import (  # noqa: F401
    AuthorizationDenied,
    ExchangeFailed,
    GatewayError,
    InvalidState,
    LinkError,
    LinkGenerationError,
    MissingCode,
    MissingState,
)
from .log_utils import get_link_logger  # noqa: F401

__all__ = [
    # clock
    "Clock",
    "default_clock",
    "now_ms",
    # models
    "CredentialBundle",
    "ExchangedSession",
    # state
    "build_state",
    "validate_state",
    "is_valid_identity",
    # pkce
    "PkcePair",
    "code_challenge_s256",
    # store
    "SessionStore",
    "InMemorySessionStore",
    "default_store",
    # gateway
    "AuthGateway",
    "SupabaseAuthGateway",
    # service
    "LinkService",
    # clients
    "ScopedClientFactory",
    # errors
    "LinkError",
    "LinkGenerationError",
    "AuthorizationDenied",
    "MissingCode",
    "MissingState",
    "InvalidState",
    "ExchangeFailed",
    "GatewayError",
    # logging helpers
    "get_link_logger",
]
