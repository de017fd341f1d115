"""Error types raised across the mission execution boundary."""

from __future__ import annotations


class TaskValidationError(ValueError):
    """Incoming task payload is malformed; no turn is attempted."""


class ReadinessError(RuntimeError):
    """Worker gateway endpoint could not be brought up."""


class TurnProcessError(RuntimeError):
    """Worker process for one turn could not be started."""

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient
