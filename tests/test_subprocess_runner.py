from __future__ import annotations

import shlex
import subprocess
import sys
import time

import allure
import pytest
from conftest import make_request

from mission_worker.mission.backend import (
    TIMEOUT_EXIT_CODE,
    ProcessRunRequest,
    SubprocessRunner,
)
from mission_worker.mission.completion import DONE_MARKER, NEEDS_MORE_WORK_MARKER
from mission_worker.mission.contracts import ProviderCredentials, ProviderKind
from mission_worker.mission.errors import TurnProcessError
from mission_worker.mission.executor import MissionExecutor, TurnExecutor
from mission_worker.mission.gateway import AlwaysReady
from mission_worker.mission.models import LoopState

pytestmark = [
    allure.epic("Mission Execution"),
    allure.feature("Process Runner"),
]

_PYTHON = shlex.quote(sys.executable)


def _python_command(code: str) -> str:
    return f"{_PYTHON} -c {shlex.quote(code)}"


def test_runner_captures_exit_code_stdout_and_stderr() -> None:
    result = SubprocessRunner().run(
        ProcessRunRequest(
            command=_python_command(
                "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)",
            ),
            timeout_seconds=30,
        ),
    )
    assert result.exit_code == 3
    assert result.timed_out is False
    assert result.stdout == "out\n"
    assert result.stderr == "err\n"


def test_runner_applies_env_overlay() -> None:
    result = SubprocessRunner().run(
        ProcessRunRequest(
            command=_python_command("import os; print(os.environ['MISSION_TEST_KEY'])"),
            timeout_seconds=30,
            env={"MISSION_TEST_KEY": "overlay-value"},
        ),
    )
    assert result.exit_code == 0
    assert result.stdout.strip() == "overlay-value"


def test_runner_kills_process_after_timeout_and_keeps_partial_output() -> None:
    result = SubprocessRunner(poll_interval_seconds=0.05).run(
        ProcessRunRequest(
            command=_python_command(
                "import sys, time; print('started', flush=True); time.sleep(30)",
            ),
            timeout_seconds=1.0,
            graceful_shutdown_seconds=1.0,
        ),
    )
    assert result.timed_out is True
    assert result.exit_code == TIMEOUT_EXIT_CODE
    assert "started" in result.stdout


def test_runner_timeout_kills_processes_spawned_by_the_shell(tmp_path) -> None:
    marker = tmp_path / "late.txt"
    command = f"cd {shlex.quote(str(tmp_path))} && sh -c 'sleep 2; echo late > late.txt'"

    result = SubprocessRunner(poll_interval_seconds=0.05).run(
        ProcessRunRequest(command=command, timeout_seconds=0.3, graceful_shutdown_seconds=1.0),
    )
    time.sleep(3)

    assert result.timed_out is True
    assert result.exit_code == TIMEOUT_EXIT_CODE
    assert not marker.exists()


def test_runner_raises_turn_process_error_when_start_fails(monkeypatch) -> None:
    def _broken_popen(*_args, **_kwargs):
        raise OSError("no shell available")

    monkeypatch.setattr(subprocess, "Popen", _broken_popen)
    with pytest.raises(TurnProcessError, match="failed to start") as error_info:
        SubprocessRunner().run(ProcessRunRequest(command="true", timeout_seconds=5))
    assert error_info.value.transient is True


def _echo_executor(worker_command: str) -> MissionExecutor:
    return MissionExecutor(
        turn_executor=TurnExecutor(
            runner=SubprocessRunner(poll_interval_seconds=0.05),
            worker_command=worker_command,
            gateway_url="ws://localhost:18789",
        ),
        readiness=AlwaysReady(),
    )


def test_echo_worker_completes_on_second_turn(echo_worker_command: str) -> None:
    executor = _echo_executor(f"{echo_worker_command} --complete-on-turn 2")
    request = make_request(
        task_subject="Write the user's guide",
        task_description="Cover 'install' and 'usage'.",
        max_iterations=3,
    )
    result = executor.execute(request)

    assert result.success is True
    assert result.state == LoopState.STOPPED_SUCCESS
    assert result.turns_used == 2
    assert NEEDS_MORE_WORK_MARKER in result.turns[0].output
    assert "subject=Write the user's guide" in result.turns[0].output
    assert "turn=2" in result.output
    assert DONE_MARKER in result.output


def test_echo_worker_receives_credentials_and_model(echo_worker_command: str) -> None:
    executor = _echo_executor(f"{echo_worker_command} --print-env OPENAI_BASE_URL")
    request = make_request(
        model_override="xai/grok-4",
        api_credentials=ProviderCredentials(provider=ProviderKind.XAI, api_key="xai-key"),
    )
    result = executor.execute(request)

    assert result.success is True
    assert "model=xai/grok-4" in result.output
    assert "OPENAI_BASE_URL=https://api.x.ai/v1" in result.output


def test_echo_worker_failure_surfaces_stderr(echo_worker_command: str) -> None:
    executor = _echo_executor(
        f"{echo_worker_command} --exit-code 2 --stderr 'model quota exceeded'",
    )
    result = executor.execute(make_request())

    assert result.success is False
    assert result.state == LoopState.STOPPED_FAILED
    assert result.error == "model quota exceeded\n"
