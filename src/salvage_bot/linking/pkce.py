"""PKCE (Proof Key for Code Exchange) support for the Supabase auth flow.

Supabase only hands out authorization *codes* in its PKCE flow, so each
``/login`` generates a verifier/challenge pair: the challenge travels in the
authorize URL, the verifier is presented again when the code is exchanged.

Only the S256 transformation is implemented.

This module intentionally performs **no logging** of verifiers or challenges.
"""

from __future__ import annotations

import base64
import secrets
from dataclasses import dataclass
from hashlib import sha256
from typing import Final

# RFC 7636 §4.1: 43-128 characters from the unreserved set.
_MIN_LEN: Final[int] = 43
_MAX_LEN: Final[int] = 128
_DEFAULT_BYTES: Final[int] = 48  # 64 url-safe characters

CHALLENGE_METHOD: Final[str] = "s256"


def code_challenge_s256(verifier: str) -> str:
    """Return the base64url (unpadded) SHA-256 digest of *verifier*."""
    digest = sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


@dataclass(frozen=True, slots=True)
class PkcePair:
    """A code verifier and the challenge derived from it."""

    verifier: str
    challenge: str

    @classmethod
    def generate(cls, nbytes: int = _DEFAULT_BYTES) -> "PkcePair":
        """Generate a fresh pair from *nbytes* of randomness."""
        verifier = secrets.token_urlsafe(nbytes)
        if not _MIN_LEN <= len(verifier) <= _MAX_LEN:
            raise ValueError("code verifier length must be 43-128 characters")
        return cls(verifier=verifier, challenge=code_challenge_s256(verifier))

    def __repr__(self) -> str:
        return "PkcePair(verifier='***', challenge='***')"
