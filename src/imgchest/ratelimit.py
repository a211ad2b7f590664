from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from imgchest.config import REQUESTS_PER_MINUTE

if TYPE_CHECKING:
    from collections.abc import Awaitable
    from collections.abc import Callable

logger: logging.Logger = logging.getLogger(__name__)

ONE_MINUTE = 60.0


class RateLimiter:
    """Fixed-window request budget, refreshed every minute.

    Callers await ``acquire()`` before each request. Once the budget for the
    current window is spent, ``acquire()`` sleeps until the window rolls over.
    """

    def __init__(
        self,
        requests_per_minute: int = REQUESTS_PER_MINUTE,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if requests_per_minute < 1:
            msg = "requests_per_minute must be >= 1"
            raise ValueError(msg)

        self._requests_per_minute: int = requests_per_minute
        self._clock: Callable[[], float] = clock
        self._sleep: Callable[[float], Awaitable[object]] = sleep

        self._window_start: float = clock()
        self._remaining: int = requests_per_minute

    def get_sleep_duration(self) -> float | None:
        """Reserve a request slot if one is free.

        Returns:
            None if a request may be made now (the slot is taken), otherwise
            the number of seconds to wait before asking again.
        """
        now: float = self._clock()
        elapsed: float = now - self._window_start

        if elapsed >= ONE_MINUTE:
            self._window_start = now
            self._remaining = self._requests_per_minute
            elapsed = 0.0

        if self._remaining > 0:
            self._remaining -= 1
            return None

        return max(ONE_MINUTE - elapsed, 0.0)

    async def acquire(self) -> None:
        """Wait until a request may be made."""
        while True:
            duration: float | None = self.get_sleep_duration()
            if duration is None:
                return

            logger.debug("Rate limit reached, sleeping %.2fs", duration)
            await self._sleep(duration)
