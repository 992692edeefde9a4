"""Execution module for revscout.

Provides error classification, backoff retries and overall deadlines.
"""

from revscout.core.execution.deadline import run_with_deadline
from revscout.core.execution.error_classifier import ErrorClassifier
from revscout.core.execution.retrier import BackoffRetrier

__all__ = ["BackoffRetrier", "ErrorClassifier", "run_with_deadline"]
