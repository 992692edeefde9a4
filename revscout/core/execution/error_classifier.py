"""Error classifier for revscout.

Maps any raw failure into a ClassifiedError for retry decisions.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from revscout.core.detection.block_detector import BlockDetector
from revscout.core.errors import ClassifiedError
from revscout.core.operation_config import ErrorKind


class ErrorClassifier:
    """Classifies errors into the closed ErrorKind set.

    Pure: no I/O. Precedence, first match wins:
    1. Response content matches a block signature -> BLOCKED
    2. Deadline exceeded without a response -> TIMEOUT
    3. No response at all (connection refused, DNS failure) -> NETWORK
    4. Status 429 or 5xx -> NETWORK
    5. Status 404 -> NOT_FOUND
    6. Status 401/403 -> BLOCKED
    7. Malformed payloads -> PARSING
    8. Anything else -> UNKNOWN
    """

    def __init__(self, detector: Optional[BlockDetector] = None):
        self.detector = detector or BlockDetector()

    def classify(
        self, error: BaseException, context: Optional[Dict[str, Any]] = None
    ) -> ClassifiedError:
        """Classify a raw failure.

        Args:
            error: Exception raised by an external call
            context: Optional diagnostics; ``content`` and ``url`` keys are inspected
                for block signatures when the error carries no response body

        Returns:
            ClassifiedError wrapping ``error`` as its cause
        """
        if isinstance(error, ClassifiedError):
            return error

        context = dict(context or {})
        content = context.pop("content", None)
        url = context.get("url")
        response = getattr(error, "response", None) if isinstance(error, httpx.HTTPStatusError) else None

        if response is not None:
            verdict = self.detector.inspect_response(response)
        else:
            verdict = self.detector.inspect(content, url=url, requested_url=context.get("requested_url"))
        if verdict.blocked:
            return ClassifiedError(
                ErrorKind.BLOCKED, f"Access blocked: {verdict.reason}", error, context
            )

        if self._is_timeout(error):
            return ClassifiedError(
                ErrorKind.TIMEOUT, f"Request timed out: {str(error) or type(error).__name__}", error, context
            )

        if response is None and isinstance(error, (httpx.TransportError, ConnectionError, OSError)):
            return ClassifiedError(
                ErrorKind.NETWORK, f"Network error: no response received ({error})", error, context
            )

        if response is not None:
            status = response.status_code
            message = f"API Error ({status}): {self._response_message(response) or error}"
            return self.classify_status(status, message, error, context)

        if isinstance(error, (json.JSONDecodeError, ValidationError, KeyError, TypeError)):
            return ClassifiedError(
                ErrorKind.PARSING, f"Failed to parse response: {error}", error, context
            )

        return ClassifiedError(
            ErrorKind.UNKNOWN, str(error) or "Unknown error occurred", error, context
        )

    @staticmethod
    def classify_status(
        status: int,
        message: str,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ClassifiedError:
        """Classify an error status code (rules 4-6, else UNKNOWN)."""
        context = dict(context or {})
        context.setdefault("status_code", status)
        if status == 429 or 500 <= status < 600:
            kind = ErrorKind.NETWORK
        elif status == 404:
            kind = ErrorKind.NOT_FOUND
        elif status in (401, 403):
            kind = ErrorKind.BLOCKED
        else:
            kind = ErrorKind.UNKNOWN
        return ClassifiedError(kind, message, cause, context)

    @staticmethod
    def _is_timeout(error: BaseException) -> bool:
        if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
            return True
        # Playwright's TimeoutError does not subclass the builtin one
        return type(error).__name__ == "TimeoutError" and type(error).__module__.startswith(
            "playwright"
        )

    @staticmethod
    def _response_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except (ValueError, UnicodeDecodeError):
            return None
        if isinstance(body, dict):
            return body.get("message") or body.get("error")
        return None
