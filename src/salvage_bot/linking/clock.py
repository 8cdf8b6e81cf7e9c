"""Clock abstraction for testable time handling in the account-linking core.

A ``Clock`` is any callable returning the current UNIX timestamp as ``float``
seconds.  Session expiry is tracked at *millisecond* precision, so every
component that needs "now" goes through an injected clock and the
:func:`now_ms` helper instead of calling ``time.time()`` directly.

Example
-------
>>> from salvage_bot.linking.clock import default_clock, now_ms
>>> isinstance(default_clock(), float)
True
>>> now_ms(lambda: 1.5)
1500
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Callable protocol returning *seconds* since the UNIX epoch."""

    def __call__(self) -> float: ...


def default_clock() -> float:
    """Default implementation that delegates to ``time.time()``."""
    return time.time()


def now_ms(clock: Clock = default_clock) -> int:
    """Return the current time of *clock* in whole milliseconds."""
    return int(clock() * 1000)
