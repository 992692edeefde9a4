"""Session management for revscout.

Tracks the logical session (request count and age), gates requests through the
rate limiter, and rotates the underlying session resource when a budget runs out.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from revscout.core.logging import logger
from revscout.core.operation_config import OperationConfig
from revscout.core.session.rate_limiter import RateLimiter


class SessionResource(ABC):
    """Something with an identity that can be torn down and rebuilt.

    A browser context, an HTTP client with its cookie jar, a credential set.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create a fresh identity/context."""

    @abstractmethod
    async def teardown(self) -> None:
        """Release the current identity/context."""


@dataclass
class Session:
    """Request counter and start time of the current session."""

    request_count: int = 0
    started_at: float = 0.0
    rotations: int = 0

    def age(self, now: float) -> float:
        return now - self.started_at


class SessionManager:
    """Rate-limits requests and rotates the session after a usage budget.

    Rotation happens when ``request_count >= max_requests_per_session`` or the
    session is older than ``session_rotation_interval``. Rotation tears down and
    reinitializes the resource and completes before the next request proceeds.
    Rotation suspends on the resource, so it runs under an asyncio.Lock.
    """

    def __init__(
        self,
        resource: SessionResource,
        config: OperationConfig,
        rate_limiter: Optional[RateLimiter] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize SessionManager.

        Args:
            resource: Session resource to initialize, rotate and tear down
            config: OperationConfig with rotation budget and rate-limit range
            rate_limiter: Optional RateLimiter (built from config if omitted)
            clock: Monotonic time source (injectable for tests)
        """
        self.resource = resource
        self.max_requests = config.max_requests_per_session
        self.rotation_interval = config.session_rotation_interval
        self.rate_limiter = rate_limiter or RateLimiter(
            config.rate_limit_min_delay, config.rate_limit_max_delay, clock=clock
        )
        self._clock = clock
        self._lock = asyncio.Lock()
        self.session: Optional[Session] = None

    @property
    def active(self) -> bool:
        return self.session is not None

    async def start(self) -> None:
        """Initialize the resource if no session is active."""
        async with self._lock:
            if self.session is None:
                await self.resource.initialize()
                self.session = Session(started_at=self._clock())
                logger.info("session_started")

    async def before_request(self) -> None:
        """Gate a request: ensure a fresh session, then wait out rate-limit spacing."""
        await self.start()
        async with self._lock:
            if self._expired():
                await self._rotate("max_age")
        await self.rate_limiter.wait()

    async def after_request(self) -> None:
        """Record the end of a request and rotate if the budget is spent."""
        self.rate_limiter.mark()
        await self.maybe_rotate()

    async def maybe_rotate(self) -> bool:
        """Count one request against the session and rotate if a budget is exceeded.

        Returns:
            True if a rotation happened
        """
        await self.start()
        async with self._lock:
            self.session.request_count += 1
            if self.session.request_count >= self.max_requests:
                await self._rotate("max_requests")
                return True
            if self._expired():
                await self._rotate("max_age")
                return True
            return False

    async def close(self) -> None:
        """Tear down the resource and forget the session."""
        async with self._lock:
            if self.session is not None:
                await self.resource.teardown()
                logger.info("session_closed", requests=self.session.request_count)
                self.session = None

    def _expired(self) -> bool:
        return self.session is not None and (
            self.session.age(self._clock()) >= self.rotation_interval
        )

    async def _rotate(self, reason: str) -> None:
        previous = self.session
        logger.info(
            "session_rotating",
            reason=reason,
            requests=previous.request_count if previous else 0,
        )
        await self.resource.teardown()
        await self.resource.initialize()
        self.session = Session(
            started_at=self._clock(),
            rotations=(previous.rotations + 1) if previous else 1,
        )
        logger.info("session_rotated", rotations=self.session.rotations)
