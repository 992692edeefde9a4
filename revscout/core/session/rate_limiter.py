"""Rate limiting for revscout.

Enforces a randomized minimum spacing between consecutive requests.
"""

import asyncio
import random
import time
from typing import Any, Awaitable, Callable, Optional

from revscout.core.logging import logger


class RateLimiter:
    """Spaces requests by a delay sampled uniformly from [min_delay, max_delay].

    Spacing is measured from the end of the previous request, so the first
    request never waits. A fresh sample is drawn for every call to avoid a
    detectable cadence.
    """

    def __init__(
        self,
        min_delay: float,
        max_delay: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        if min_delay < 0 or max_delay < min_delay:
            raise ValueError("delay range must satisfy 0 <= min_delay <= max_delay")
        self.min_delay = min_delay
        self.max_delay = max_delay
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._last_request_end: Optional[float] = None

    @property
    def last_request_end(self) -> Optional[float]:
        return self._last_request_end

    def next_spacing(self) -> float:
        """Sample the spacing for the next request."""
        return self._rng.uniform(self.min_delay, self.max_delay)

    async def wait(self) -> float:
        """Suspend until the sampled spacing since the last request has passed.

        Returns:
            Seconds actually waited
        """
        if self._last_request_end is None:
            return 0.0
        spacing = self.next_spacing()
        elapsed = self._clock() - self._last_request_end
        delay = spacing - elapsed
        if delay <= 0:
            return 0.0
        logger.debug("rate_limit_wait", delay=round(delay, 3), spacing=round(spacing, 3))
        await self._sleep(delay)
        return delay

    def mark(self) -> None:
        """Record the end of a request."""
        self._last_request_end = self._clock()
