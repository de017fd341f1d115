"""Process runner interface used by the turn executor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(slots=True)
class ProcessRunRequest:
    """Inputs required to run one worker process."""

    command: str
    timeout_seconds: float
    env: dict[str, str] | None = None
    graceful_shutdown_seconds: float = 2.0


@dataclass(slots=True)
class ProcessRunResult:
    """Outcome of a finished or forcibly stopped process."""

    exit_code: int | None
    timed_out: bool
    stdout: str
    stderr: str


class ProcessRunner(Protocol):
    """Protocol implemented by process runners."""

    def run(self, request: ProcessRunRequest) -> ProcessRunResult:
        """Run the command to completion or timeout and return its output."""
