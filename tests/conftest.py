"""Shared pytest configuration."""

import pytest


@pytest.fixture
def anyio_backend():
    """Run ``@pytest.mark.anyio`` tests on asyncio only (discord.py needs it)."""
    return "asyncio"
