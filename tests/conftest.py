"""Shared test fixtures."""

from __future__ import annotations

import os
import shlex
import sys
from pathlib import Path

import pytest

from mission_worker.mission.backend import ProcessRunRequest, ProcessRunResult
from mission_worker.mission.contracts import TaskRequest
from mission_worker.mission.errors import ReadinessError

_SRC_DIR = Path(__file__).resolve().parent.parent / "src"

ECHO_WORKER_MODULE = "mission_worker.mission.backend.echo_worker"


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRunner:
    """Process runner returning scripted results and advancing the clock per run."""

    def __init__(
        self,
        results: list[ProcessRunResult | Exception],
        *,
        clock: FakeClock | None = None,
        seconds_per_run: float = 0.0,
    ) -> None:
        self.results = list(results)
        self.clock = clock
        self.seconds_per_run = seconds_per_run
        self.requests: list[ProcessRunRequest] = []

    def run(self, request: ProcessRunRequest) -> ProcessRunResult:
        self.requests.append(request)
        if self.clock is not None:
            self.clock.advance(self.seconds_per_run)
        item = self.results.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def prompts(self) -> list[str]:
        return [shlex.split(request.command)[-1] for request in self.requests]


class StaticReadiness:
    """Readiness collaborator that counts calls and optionally fails."""

    def __init__(self, error: str | None = None) -> None:
        self.error = error
        self.calls = 0

    def ensure_ready(self) -> None:
        self.calls += 1
        if self.error is not None:
            raise ReadinessError(self.error)


def ok(stdout: str, *, stderr: str = "") -> ProcessRunResult:
    return ProcessRunResult(exit_code=0, timed_out=False, stdout=stdout, stderr=stderr)


def failed(stderr: str, *, exit_code: int = 1, stdout: str = "") -> ProcessRunResult:
    return ProcessRunResult(exit_code=exit_code, timed_out=False, stdout=stdout, stderr=stderr)


def make_request(**overrides: object) -> TaskRequest:
    fields: dict[str, object] = {
        "agent_id": "builder",
        "task_id": "task-42",
        "task_subject": "Add a health endpoint",
        "task_description": "Expose GET /health returning {\"ok\": true}.",
        "soul_content": "You are a careful backend engineer.",
    }
    fields.update(overrides)
    return TaskRequest(**fields)  # type: ignore[arg-type]


@pytest.fixture(autouse=True)
def _isolated_mission_env(monkeypatch):
    """Drop MISSION_WORKER_* variables from the developer environment."""
    for name in list(os.environ):
        if name.startswith("MISSION_WORKER_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def echo_worker_command(monkeypatch) -> str:
    """Shell command running the echo worker with the current interpreter."""
    python_path = os.environ.get("PYTHONPATH", "")
    monkeypatch.setenv(
        "PYTHONPATH",
        f"{_SRC_DIR}{os.pathsep}{python_path}" if python_path else str(_SRC_DIR),
    )
    return f"{shlex.quote(sys.executable)} -m {ECHO_WORKER_MODULE}"
