"""Constants shared by the Discord surface."""

from typing import Final

SITE_URL: Final[str] = "https://salvageunion.io"

EMBED_FOOTER_TEXT: Final[str] = "salvageunion.io"
EMBED_FOOTER_ICON_URL: Final[str] = f"{SITE_URL}/favicon.png"

# Discord API error codes for an interaction that can no longer be answered:
# 10062 Unknown interaction (token expired), 40060 already acknowledged.
EXPIRED_INTERACTION_CODES: Final[frozenset[int]] = frozenset({10062, 40060})

LINK_INSTRUCTIONS: Final[str] = (
    "Your Discord account is not linked to Salvage Union. Run `/login` to link it."
)
