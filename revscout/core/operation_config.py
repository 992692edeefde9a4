"""Operation configuration for revscout.

Immutable settings for retry, polling, caching, session rotation and rate limiting.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds.

    - NETWORK: Transport failures, 429 and 5xx responses (retryable)
    - TIMEOUT: Per-call or overall deadline exceeded (retryable)
    - BLOCKED: Anti-bot denial, challenge pages, 401/403 (never retried)
    - NOT_FOUND: Missing resource (404)
    - PARSING: Malformed or unexpected payload
    - UNKNOWN: Anything else (no retry)
    """

    NETWORK = "network"
    TIMEOUT = "timeout"
    BLOCKED = "blocked"
    NOT_FOUND = "not_found"
    PARSING = "parsing"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.TIMEOUT})


@dataclass(frozen=True)
class OperationConfig:
    """Settings supplied once at construction and never mutated afterward.

    All durations are in seconds.
    """

    max_attempts: int = 3
    base_delay: float = 2.0
    max_backoff_delay: float = 300.0
    request_timeout: float = 60.0
    overall_timeout: Optional[float] = None
    poll_interval: float = 15.0
    poll_backoff_factor: float = 1.0  # 1.0 = fixed interval
    max_poll_interval: float = 60.0
    max_poll_attempts: int = 20
    max_consecutive_poll_errors: int = 5
    cache_ttl: float = 3600.0
    max_requests_per_session: int = 50
    session_rotation_interval: float = 1800.0
    rate_limit_min_delay: float = 1.0
    rate_limit_max_delay: float = 3.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.max_poll_attempts < 1:
            raise ValueError("max_poll_attempts must be at least 1")
        if self.max_consecutive_poll_errors < 1:
            raise ValueError("max_consecutive_poll_errors must be at least 1")
        if self.max_requests_per_session < 1:
            raise ValueError("max_requests_per_session must be at least 1")
        if self.poll_backoff_factor < 1.0:
            raise ValueError("poll_backoff_factor must be >= 1.0")
        if self.rate_limit_min_delay < 0 or self.rate_limit_max_delay < self.rate_limit_min_delay:
            raise ValueError("rate limit delay range must satisfy 0 <= min <= max")
        for name in ("base_delay", "request_timeout", "poll_interval", "cache_ttl",
                     "session_rotation_interval"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.overall_timeout is not None and self.overall_timeout <= 0:
            raise ValueError("overall_timeout must be positive when set")

    def backoff_delay(self, attempt: int) -> float:
        """Delay to wait after failed attempt number ``attempt`` (1-based)."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_backoff_delay)
