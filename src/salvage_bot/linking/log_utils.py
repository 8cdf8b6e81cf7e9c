"""Structured logging helpers for the account-linking flow.

Only the following *non-sensitive* fields are ever attached to log records:

- ``identity``       – Discord user ID, truncated to its first 4 characters
- ``correlation_id`` – per-request ID set by the HTTP middleware

Tokens, codes, verifiers and full identities never reach a log record.

Usage
-----
>>> from salvage_bot.linking.log_utils import get_link_logger
>>> log = get_link_logger(identity="123456789012345678", correlation_id="c0ffee")
>>> log.info("Account linked")
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping

from salvage_bot.utils.logging import mask_sensitive


class _LinkLoggerAdapter(logging.LoggerAdapter):
    """Attach masked identity and correlation ID to every record."""

    extra_keys = ("identity", "correlation_id")

    def __init__(self, logger: logging.Logger, context: Mapping[str, Any] | None = None):
        context = context or {}
        fields: dict[str, Any] = {}
        for key in self.extra_keys:
            value = context.get(key)
            if value is None:
                continue
            fields[key] = mask_sensitive(str(value), 4) if key == "identity" else value
        super().__init__(logger, fields)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        record_extra = dict(kwargs.get("extra") or {})
        for key, value in self.extra.items():
            record_extra.setdefault(key, value)
        kwargs["extra"] = record_extra
        if self.extra:
            suffix = " ".join(f"{key}={value}" for key, value in self.extra.items())
            msg = f"{msg} [{suffix}]"
        return msg, kwargs


def get_link_logger(
    *,
    base_logger_name: str = "salvage-bot.linking",
    identity: str | None = None,
    correlation_id: str | None = None,
) -> logging.LoggerAdapter:
    """Return a logger for the linking flow carrying *identity* and *correlation_id*."""
    return _LinkLoggerAdapter(
        logging.getLogger(base_logger_name),
        {"identity": identity, "correlation_id": correlation_id},
    )
