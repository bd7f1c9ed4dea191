"""Clock backed by the real system time and asyncio sleep."""

import asyncio
import time
from datetime import datetime

from pacekeeper.domain.interfaces.clock import Clock


class SystemClock(Clock):
    """Real-time clock. ``monotonic`` is immune to wall-clock adjustments."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now()

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
