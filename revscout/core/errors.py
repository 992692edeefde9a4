"""Classified error type for revscout.

Every failure that leaves a network-facing operation is one of these.
"""

from typing import Any, Dict, Optional

from revscout.core.operation_config import RETRYABLE_KINDS, ErrorKind


class ClassifiedError(Exception):
    """Failure tagged with an ErrorKind.

    ``retryable`` is derived from the kind and cannot be set independently.
    The lower-level failure is kept on ``cause`` (and as ``__cause__`` when raised
    with ``raise ... from``).
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.cause = cause
        self.context = dict(context or {})

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view for logs and API responses."""
        data: Dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.cause is not None:
            data["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        if self.context:
            data["context"] = self.context
        return data

    def __repr__(self) -> str:
        return f"ClassifiedError(kind={self.kind.value!r}, message={self.message!r})"
