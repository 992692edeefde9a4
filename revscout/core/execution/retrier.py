"""Backoff retrier for revscout.

The single retry primitive used by every network-facing operation.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from revscout.core.errors import ClassifiedError
from revscout.core.execution.error_classifier import ErrorClassifier
from revscout.core.logging import logger
from revscout.core.operation_config import OperationConfig

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


class BackoffRetrier:
    """Retries an async operation with exponential backoff.

    Between attempt k and k+1 it waits ``base_delay * 2 ** (k - 1)`` seconds,
    capped at ``max_backoff_delay``. No jitter is applied, so waits are
    deterministic. Non-retryable errors (BLOCKED in particular) abort at once
    without consuming the remaining attempts.
    """

    def __init__(
        self,
        config: OperationConfig,
        classifier: Optional[ErrorClassifier] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize BackoffRetrier.

        Args:
            config: OperationConfig with max_attempts and base_delay
            classifier: ErrorClassifier used on raw failures
            sleep: Awaitable sleep function (injectable for tests)
        """
        self.config = config
        self.classifier = classifier or ErrorClassifier()
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> T:
        """Run ``operation`` until it succeeds or attempts are exhausted.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            max_attempts: Override for config.max_attempts
            context: Extra fields attached to classified errors and log events

        Returns:
            The operation's result

        Raises:
            ClassifiedError: The last classified failure
        """
        attempts = max_attempts if max_attempts is not None else self.config.max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        context = context or {}
        attempt = 0

        while True:
            attempt += 1
            try:
                return await operation()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = self.classifier.classify(e, context)

            if not last_error.retryable:
                logger.warning(
                    "retry_aborted",
                    attempt=attempt,
                    kind=last_error.kind.value,
                    error=last_error.message,
                    **context,
                )
                raise last_error from last_error.cause

            if attempt >= attempts:
                logger.error(
                    "retry_exhausted",
                    attempts=attempts,
                    kind=last_error.kind.value,
                    error=last_error.message,
                    **context,
                )
                raise last_error from last_error.cause

            delay = self.config.backoff_delay(attempt)
            logger.warning(
                "retry_scheduled",
                attempt=attempt,
                max_attempts=attempts,
                delay=delay,
                kind=last_error.kind.value,
                error=last_error.message,
                **context,
            )
            await self._sleep(delay)
