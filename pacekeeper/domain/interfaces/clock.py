"""Interface for reading time and waiting.

Injected into the throttle gate and the maintenance scheduler so that
pacing, cooldowns and calendar decisions can be tested without real delays.
"""

import abc
from datetime import datetime


class Clock(abc.ABC):
    """Abstract Base Class for time sources."""

    @abc.abstractmethod
    def monotonic(self) -> float:
        """Returns a monotonic timestamp in seconds, used for pacing arithmetic."""
        pass

    @abc.abstractmethod
    def now(self) -> datetime:
        """Returns the current local wall-clock time, used for calendar decisions."""
        pass

    @abc.abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspends the calling task for ``seconds``.

        Cancellation follows asyncio semantics: cancelling the awaiting task
        raises ``asyncio.CancelledError`` out of this call.
        """
        pass
