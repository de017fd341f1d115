"""Controllers for mission CLI commands."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, replace
from pathlib import Path

import httpx

from mission_worker.config import Settings
from mission_worker.mission.backend import ProcessRunner, SubprocessRunner
from mission_worker.mission.contracts import (
    TaskRequest,
    clamp_max_iterations,
    load_request_payload,
    parse_request_text,
    parse_task_request,
)
from mission_worker.mission.executor import MissionExecutor, TurnExecutor
from mission_worker.mission.gateway import (
    AlwaysReady,
    GatewayReadiness,
    HttpGatewayReadiness,
    probe_gateway,
)
from mission_worker.mission.models import ExecutionResult

SMOKE_TASK_SUBJECT = "Smoke check"
SMOKE_SOUL_CONTENT = "You are a diagnostics agent. Answer briefly."


@dataclass(slots=True)
class MissionExecuteCommand:
    """CLI input for one task execution."""

    request_path: Path | None
    max_iterations: int | None = None
    model_override: str | None = None
    skip_gateway_check: bool = False


@dataclass(slots=True)
class GatewayStatusCommand:
    """CLI input for a gateway reachability probe."""

    health_url: str | None = None


@dataclass(slots=True)
class MissionSmokeCommand:
    """CLI input for a synthetic single-shot run against the worker."""

    prompt: str
    expect_substring: str
    worker_command: str | None = None
    skip_gateway_check: bool = False


@dataclass(slots=True)
class MissionCliReport:
    """Lines to render in CLI plus overall status."""

    lines: list[str]
    success: bool


class MissionCliController:
    """Coordinates task execution and diagnostics CLI operations."""

    def __init__(self, *, runner: ProcessRunner | None = None) -> None:
        self._runner = runner

    def execute(self, command: MissionExecuteCommand) -> MissionCliReport:
        settings = _settings()
        if command.request_path is None:
            payload = parse_request_text(sys.stdin.read())
        else:
            payload = load_request_payload(command.request_path)
        request = parse_task_request(payload)
        if command.max_iterations is not None:
            request = replace(request, max_iterations=clamp_max_iterations(command.max_iterations))
        if command.model_override:
            request = replace(request, model_override=command.model_override)

        result = self._run(
            settings=settings,
            request=request,
            skip_gateway_check=command.skip_gateway_check,
        )
        return MissionCliReport(
            lines=[json.dumps(result.to_payload(), ensure_ascii=False, indent=2)],
            success=result.success,
        )

    def gateway_status(self, command: GatewayStatusCommand) -> MissionCliReport:
        settings = _settings()
        url = command.health_url or settings.gateway.health_url
        with httpx.Client(
            timeout=httpx.Timeout(settings.gateway.request_timeout_seconds),
        ) as client:
            status = probe_gateway(url, client=client)

        lines = [
            f"gateway_url={status.url}",
            f"gateway_running={'yes' if status.reachable else 'no'}",
        ]
        if status.status_code is not None:
            lines.append(f"status_code={status.status_code}")
        if status.error:
            lines.append(f"error={status.error}")
        return MissionCliReport(lines=lines, success=status.reachable)

    def smoke(self, command: MissionSmokeCommand) -> MissionCliReport:
        settings = _settings()
        if command.worker_command:
            settings.worker.command = command.worker_command.strip()
        request = TaskRequest(
            agent_id="smoke",
            task_id="smoke-check",
            task_subject=SMOKE_TASK_SUBJECT,
            task_description=command.prompt,
            soul_content=SMOKE_SOUL_CONTENT,
        )
        result = self._run(
            settings=settings,
            request=request,
            skip_gateway_check=command.skip_gateway_check,
        )
        found = command.expect_substring in result.output
        passed = result.success and found
        lines = [
            f"worker_command={settings.worker.command}",
            f"run={'ok' if result.success else 'failed'} "
            f"expect={'found' if found else 'missing'} duration_ms={result.duration_ms}",
        ]
        if result.error:
            lines.append(f"error={result.error}")
        lines.append(f"Smoke status: {'passed' if passed else 'failed'}")
        return MissionCliReport(lines=lines, success=passed)

    def _run(
        self,
        *,
        settings: Settings,
        request: TaskRequest,
        skip_gateway_check: bool,
    ) -> ExecutionResult:
        turn_executor = TurnExecutor(
            runner=self._runner or SubprocessRunner(),
            worker_command=settings.worker.command,
            gateway_url=settings.worker.gateway_url,
            graceful_shutdown_seconds=settings.worker.graceful_shutdown_seconds,
        )
        if skip_gateway_check or settings.gateway.skip_check:
            return _execute(turn_executor, AlwaysReady(), settings, request)
        with HttpGatewayReadiness(
            health_url=settings.gateway.health_url,
            ready_timeout_seconds=settings.gateway.ready_timeout_seconds,
            poll_interval_seconds=settings.gateway.poll_interval_seconds,
            request_timeout_seconds=settings.gateway.request_timeout_seconds,
        ) as readiness:
            return _execute(turn_executor, readiness, settings, request)


def _execute(
    turn_executor: TurnExecutor,
    readiness: GatewayReadiness,
    settings: Settings,
    request: TaskRequest,
) -> ExecutionResult:
    executor = MissionExecutor(
        turn_executor=turn_executor,
        readiness=readiness,
        budget=settings.budget.to_turn_budget(),
    )
    return executor.execute(request)


def _settings() -> Settings:
    settings = Settings.from_env()
    settings.validate()
    return settings
