"""Clock abstraction for the session controller and game loop.

Core timing logic depends on this interface rather than calling real time
directly, so tests can drive the listening window on virtual time.
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock with a matching cooperative sleep."""

    def now(self) -> float:
        """Return monotonic seconds."""

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for *seconds*."""


class RealClock:
    """Production clock backed by time.monotonic() and asyncio.sleep()."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
