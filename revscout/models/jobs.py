"""Remote scrape job models for revscout.

A job is created by a trigger call and only moves forward:
RUNNING -> READY | FAILED.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class JobStatus(str, Enum):
    """Status reported by the remote job service."""

    RUNNING = "running"
    READY = "ready"
    FAILED = "failed"

    @classmethod
    def parse(cls, value: Any) -> "JobStatus":
        """Parse a wire status. Unrecognised in-progress values count as running.

        Raises:
            ValueError: If value is not a string
        """
        if not isinstance(value, str):
            raise ValueError(f"Invalid job status: {value!r}")
        normalized = value.strip().lower()
        if normalized in ("ready", "done", "completed"):
            return cls.READY
        if normalized in ("failed", "error"):
            return cls.FAILED
        return cls.RUNNING


class JobPhase(str, Enum):
    """Client-side protocol state."""

    IDLE = "idle"
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


TERMINAL_PHASES = frozenset({JobPhase.COMPLETED, JobPhase.FAILED, JobPhase.TIMED_OUT})

_PHASE_TRANSITIONS = {
    JobPhase.IDLE: {JobPhase.SUBMITTED},
    JobPhase.SUBMITTED: {JobPhase.POLLING},
    JobPhase.POLLING: {JobPhase.POLLING, JobPhase.COMPLETED, JobPhase.FAILED, JobPhase.TIMED_OUT},
}


@dataclass
class Job:
    """One remote scraping task and the client's view of it."""

    id: str
    status: JobStatus = JobStatus.RUNNING
    phase: JobPhase = JobPhase.SUBMITTED
    result: Optional[Any] = None
    failure_reason: Optional[str] = None
    poll_attempts: int = 0
    history: List[JobPhase] = field(default_factory=lambda: [JobPhase.IDLE, JobPhase.SUBMITTED])

    @property
    def terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def advance(self, phase: JobPhase) -> None:
        """Move to ``phase``.

        Raises:
            ValueError: On a backward or skipped transition
        """
        if phase not in _PHASE_TRANSITIONS.get(self.phase, set()):
            raise ValueError(f"Illegal job transition {self.phase.value} -> {phase.value}")
        if phase != self.phase:
            self.history.append(phase)
        self.phase = phase

    def mark_ready(self, result: Any) -> None:
        self.status = JobStatus.READY
        self.result = result
        self.advance(JobPhase.COMPLETED)

    def mark_failed(self, reason: Optional[str]) -> None:
        self.status = JobStatus.FAILED
        self.failure_reason = reason
        self.advance(JobPhase.FAILED)
