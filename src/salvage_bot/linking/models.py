"""Typed, immutable records used by the account-linking core."""

from __future__ import annotations

from dataclasses import dataclass

from salvage_bot.linking.clock import Clock, default_clock, now_ms
from salvage_bot.utils.logging import mask_sensitive


@dataclass(frozen=True, slots=True)
class ExchangedSession:
    """What the backend returned for a successful authorization-code exchange."""

    access_token: str
    refresh_token: str
    expires_in: int
    user_id: str

    def __repr__(self) -> str:
        return (
            f"ExchangedSession(access_token={mask_sensitive(self.access_token)!r}, "
            f"expires_in={self.expires_in}, user_id={self.user_id!r})"
        )


@dataclass(frozen=True, slots=True)
class CredentialBundle:
    """One authorized backend session for one Discord identity.

    ``expires_at`` is an absolute UNIX timestamp in **milliseconds**.  Bundles
    are never mutated; a second login replaces the stored bundle wholesale.
    """

    access_token: str
    refresh_token: str
    expires_at: int
    subject_id: str

    def is_expired(self, *, clock: Clock = default_clock) -> bool:
        """Return *True* once the current time is strictly past ``expires_at``."""
        return now_ms(clock) > self.expires_at

    @classmethod
    def from_exchange(
        cls, session: ExchangedSession, *, clock: Clock = default_clock
    ) -> "CredentialBundle":
        """Build a bundle expiring ``session.expires_in`` seconds from now."""
        if session.expires_in <= 0:
            raise ValueError("session lifetime must be positive")
        return cls(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=now_ms(clock) + session.expires_in * 1000,
            subject_id=session.user_id,
        )

    def __repr__(self) -> str:
        return (
            f"CredentialBundle(access_token={mask_sensitive(self.access_token)!r}, "
            f"refresh_token={mask_sensitive(self.refresh_token)!r}, "
            f"expires_at={self.expires_at}, subject_id={self.subject_id!r})"
        )
