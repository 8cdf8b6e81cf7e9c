"""State parameter handling for the Discord → backend account-linking flow.

The Discord user ID is sent to the authorization server as the OAuth
``state`` parameter and comes back, unmodified, on the callback.  It is the
only thing binding the callback to the user who ran ``/login``, so it is
treated as untrusted input on return:

* it must be present and non-empty;
* it must look like an external identity: 1-64 characters drawn from
  ``[A-Za-z0-9_-]``.  Discord snowflakes are plain digits and always qualify.

The value is **not** signed; see DESIGN.md for the hardening question.

Logging
-------
Only a masked prefix of the identity is ever logged.
"""

from __future__ import annotations

import logging
import re
from typing import Final

from salvage_bot.linking.errors import InvalidState, MissingState
from salvage_bot.utils.logging import mask_sensitive

_LOG = logging.getLogger("salvage-bot.linking.state")

MAX_IDENTITY_LEN: Final[int] = 64
_IDENTITY_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_-]+$")


def is_valid_identity(value: str | None) -> bool:
    """Return *True* if *value* has the shape of an external identity."""
    return bool(value) and len(value) <= MAX_IDENTITY_LEN and bool(_IDENTITY_RE.match(value))


def build_state(identity: str) -> str:
    """Return the ``state`` value to embed in the authorization request.

    Raises
    ------
    InvalidState
        If *identity* could never be accepted back by :func:`validate_state`.
    """
    if not is_valid_identity(identity):
        raise InvalidState("Identity cannot be used as OAuth state")
    return identity


def validate_state(state: str | None) -> str:
    """Validate a ``state`` received on the callback and return the identity.

    Raises
    ------
    MissingState
        If *state* is missing or empty.
    InvalidState
        If *state* does not match the identity shape.
    """
    if not state:
        raise MissingState()
    if not is_valid_identity(state):
        _LOG.debug("Rejected malformed state (len=%d)", len(state))
        raise InvalidState()
    _LOG.debug("Accepted state for identity=%s", mask_sensitive(state, 4))
    return state
