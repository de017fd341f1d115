"""Process runner implementations."""

from mission_worker.mission.backend.base import ProcessRunner, ProcessRunRequest, ProcessRunResult
from mission_worker.mission.backend.subprocess_runner import TIMEOUT_EXIT_CODE, SubprocessRunner

__all__ = [
    "TIMEOUT_EXIT_CODE",
    "ProcessRunRequest",
    "ProcessRunResult",
    "ProcessRunner",
    "SubprocessRunner",
]
