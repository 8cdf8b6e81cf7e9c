"""Logging helpers shared by the bot, the callback server and the linking core."""

from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(level: int | str = logging.INFO, stream=sys.stderr) -> logging.Logger:  # noqa: ANN001
    """Configure the root logger once and return the ``salvage-bot`` logger.

    Calling it again only adjusts the level, so tests and the CLI can both use
    it without stacking handlers.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    if not any(getattr(h, "_salvage_bot", False) for h in root.handlers):
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._salvage_bot = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level)

    # discord.py is chatty at DEBUG
    logging.getLogger("discord").setLevel(max(level, logging.INFO))

    return logging.getLogger("salvage-bot")


def mask_sensitive(value: str | None, keep_chars: int = 4) -> str:
    """Mask *value*, keeping only its first ``keep_chars`` characters."""
    if not value:
        return ""
    if len(value) <= keep_chars * 2:
        return "*" * len(value)
    return value[:keep_chars] + "*" * (len(value) - keep_chars)
