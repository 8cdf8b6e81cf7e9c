"""Utility functions for reading environment variables."""

import os
from typing import Tuple


def env_str(name: str, default: str | None = None) -> str | None:
    """Return the stripped value of *name*, treating blank values as unset."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def env_int(name: str, default: int) -> int:
    """
    Return ``int(os.environ[name])`` or *default* when unset or blank.

    Raises:
        ValueError: If the value is set but is not an integer.
    """
    raw = env_str(name)
    if raw is None:
        return default
    return int(raw)


def missing_vars(names: Tuple[str, ...] | list[str]) -> list[str]:
    """Return the subset of *names* that are unset or blank, in order."""
    return [name for name in names if env_str(name) is None]
