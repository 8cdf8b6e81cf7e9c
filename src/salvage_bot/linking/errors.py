"""Exception types raised by the account-linking core.

Only lightweight, **data-carrying** exceptions live here so that the HTTP
callback and the Discord commands can turn them into responses or
user-facing messages.  ``detail`` is always safe to show to the user: it never
contains tokens, codes or verifiers.

An absent session is *not* an error; lookups return ``None`` instead.
"""

from __future__ import annotations


class LinkError(RuntimeError):
    """Base class for every failure of the linking flow."""

    status_code: int = 400
    kind: str = "link_error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or "Account linking failed.")
        self.detail: str = str(self)

    def to_payload(self) -> dict[str, str]:
        """Return a JSON-serialisable payload **without secrets**."""
        return {"error": self.kind, "message": self.detail}


class LinkGenerationError(LinkError):
    """The backend could not issue an authorization URL."""

    kind = "link_generation_failed"
    status_code = 502

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or "Failed to generate login link.")


class AuthorizationDenied(LinkError):
    """The provider reported an error on the callback (e.g. ``access_denied``)."""

    kind = "authorization_denied"

    def __init__(self, error: str, description: str | None = None) -> None:
        self.error = error
        self.description = description
        text = f"{error}: {description}" if description else error
        super().__init__(f"OAuth error: {text}")


class MissingCode(LinkError):
    """The callback carried no authorization code."""

    kind = "missing_code"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or "Missing authorization code")


class MissingState(LinkError):
    """The callback carried no ``state`` (the Discord user ID)."""

    kind = "missing_state"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or "Missing state parameter (Discord user ID)")


class InvalidState(MissingState):
    """The ``state`` value does not look like an external identity."""

    kind = "invalid_state"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or "Invalid state parameter (Discord user ID)")


class ExchangeFailed(LinkError):
    """The authorization code could not be exchanged for a session."""

    kind = "exchange_failed"


class GatewayError(Exception):
    """Raised by the backend gateway; always converted at the service boundary."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
