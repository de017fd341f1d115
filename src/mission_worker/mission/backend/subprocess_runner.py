"""Subprocess-based runner for one-shot worker CLI invocations."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import tempfile
import time
from typing import IO

from mission_worker.mission.backend.base import ProcessRunRequest, ProcessRunResult
from mission_worker.mission.errors import TurnProcessError

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124
_POLL_INTERVAL_SECONDS = 0.1


class SubprocessRunner:
    """Run a shell command line with a hard deadline, capturing stdout/stderr."""

    def __init__(self, *, poll_interval_seconds: float = _POLL_INTERVAL_SECONDS) -> None:
        self._poll_interval_seconds = poll_interval_seconds

    def run(self, request: ProcessRunRequest) -> ProcessRunResult:
        env = os.environ.copy()
        if request.env:
            env.update(request.env)

        # Output goes to temp files so whatever was written survives a kill.
        with (
            tempfile.TemporaryFile("w+", encoding="utf-8", errors="replace") as stdout_handle,
            tempfile.TemporaryFile("w+", encoding="utf-8", errors="replace") as stderr_handle,
        ):
            try:
                process = subprocess.Popen(  # noqa: S602
                    request.command,
                    shell=True,
                    env=env,
                    stdin=subprocess.DEVNULL,
                    start_new_session=True,
                    stdout=stdout_handle,
                    stderr=stderr_handle,
                    text=True,
                )
            except OSError as error:
                raise TurnProcessError(
                    f"Worker process failed to start: {error}",
                    transient=True,
                ) from error

            exit_code, timed_out = self._wait(
                process,
                timeout_seconds=request.timeout_seconds,
                graceful_shutdown_seconds=request.graceful_shutdown_seconds,
            )
            return ProcessRunResult(
                exit_code=exit_code,
                timed_out=timed_out,
                stdout=_read_back(stdout_handle),
                stderr=_read_back(stderr_handle),
            )

    def _wait(
        self,
        process: subprocess.Popen[str],
        *,
        timeout_seconds: float,
        graceful_shutdown_seconds: float,
    ) -> tuple[int | None, bool]:
        start_monotonic = time.monotonic()
        while True:
            returncode = process.poll()
            if returncode is not None:
                return returncode, False

            if time.monotonic() - start_monotonic >= timeout_seconds:
                logger.warning(
                    "Worker process pid=%s exceeded %.1fs timeout; terminating",
                    process.pid,
                    timeout_seconds,
                )
                _terminate_process(process, grace_seconds=graceful_shutdown_seconds)
                return TIMEOUT_EXIT_CODE, True

            time.sleep(self._poll_interval_seconds)


def _read_back(handle: IO[str]) -> str:
    handle.flush()
    handle.seek(0)
    return handle.read()


def _terminate_process(process: subprocess.Popen[str], *, grace_seconds: float) -> None:
    """Stop the shell and everything it spawned; the worker runs in its own session."""

    _signal_group(process, signal.SIGTERM)
    try:
        process.wait(timeout=grace_seconds)
    except subprocess.TimeoutExpired:
        _signal_group(process, signal.SIGKILL)
        process.wait(timeout=grace_seconds)
        return
    # The shell may exit on SIGTERM while its children are still alive.
    _signal_group(process, signal.SIGKILL)


def _signal_group(process: subprocess.Popen[str], signum: signal.Signals) -> None:
    try:
        os.killpg(process.pid, signum)
    except ProcessLookupError:
        return
    except OSError as error:
        logger.debug("Signal %s to process group %s failed: %s", signum.name, process.pid, error)
