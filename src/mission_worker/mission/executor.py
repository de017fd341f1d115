"""Multi-turn task execution: turn executor and the execution loop."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from mission_worker.mission.backend import ProcessRunner, ProcessRunRequest
from mission_worker.mission.budget import TurnBudget, next_turn_timeout_ms
from mission_worker.mission.command import build_worker_command
from mission_worker.mission.completion import classify_turn_output
from mission_worker.mission.contracts import TaskRequest
from mission_worker.mission.credentials import build_provider_env
from mission_worker.mission.errors import ReadinessError, TurnProcessError
from mission_worker.mission.gateway import GatewayReadiness
from mission_worker.mission.models import ExecutionResult, LoopState, TurnOutcome, TurnRecord
from mission_worker.mission.prompts import build_first_turn_prompt, build_follow_up_prompt

logger = logging.getLogger(__name__)

ERROR_MAX_CHARS = 500
NO_OUTPUT_ERROR = "No output produced"


class TurnExecutor:
    """Runs one turn: prompt, worker process, classification."""

    def __init__(
        self,
        *,
        runner: ProcessRunner,
        worker_command: str,
        gateway_url: str,
        graceful_shutdown_seconds: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.runner = runner
        self.worker_command = worker_command
        self.gateway_url = gateway_url
        self.graceful_shutdown_seconds = graceful_shutdown_seconds
        self._clock = clock

    def run_turn(
        self,
        request: TaskRequest,
        *,
        turn: int,
        timeout_ms: int,
        previous_output: str,
    ) -> TurnOutcome:
        """Run one turn; raises ``TurnProcessError`` if the worker cannot start."""

        if turn == 1:
            prompt = build_first_turn_prompt(request, multi_turn=request.multi_turn)
        else:
            prompt = build_follow_up_prompt(
                request,
                turn=turn,
                previous_output=previous_output,
                is_final_turn=turn == request.max_iterations,
            )
        command = build_worker_command(
            worker_command=self.worker_command,
            gateway_url=self.gateway_url,
            prompt=prompt,
            model_override=request.model_override,
        )
        env = build_provider_env(request.api_credentials)

        logger.info(
            "Task %s turn %d/%d: starting worker (timeout=%dms, prompt_chars=%d)",
            request.task_id,
            turn,
            request.max_iterations,
            timeout_ms,
            len(prompt),
        )
        started = self._clock()
        result = self.runner.run(
            ProcessRunRequest(
                command=command,
                timeout_seconds=timeout_ms / 1000,
                env=env or None,
                graceful_shutdown_seconds=self.graceful_shutdown_seconds,
            ),
        )
        duration_ms = _elapsed_ms(started, self._clock())

        verdict = classify_turn_output(result.stdout, result.exit_code)
        logger.info(
            "Task %s turn %d finished: exit_code=%s timed_out=%s completed=%s rule=%s "
            "duration=%dms",
            request.task_id,
            turn,
            result.exit_code,
            result.timed_out,
            verdict.completed,
            verdict.matched_rule,
            duration_ms,
        )
        return TurnOutcome(
            record=TurnRecord(
                turn=turn,
                output=result.stdout,
                duration_ms=duration_ms,
                completed=verdict.completed,
            ),
            exit_code=result.exit_code,
            stderr=result.stderr,
            timed_out=result.timed_out,
        )


class MissionExecutor:
    """Drives turns for one task until success, failure, or budget exhaustion."""

    def __init__(
        self,
        *,
        turn_executor: TurnExecutor,
        readiness: GatewayReadiness,
        budget: TurnBudget | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.turn_executor = turn_executor
        self.readiness = readiness
        self.budget = budget or TurnBudget()
        self._clock = clock

    def execute(self, request: TaskRequest) -> ExecutionResult:
        """Run the task; always returns a result, never raises for known failures."""

        started = self._clock()
        turns: list[TurnRecord] = []
        logger.info(
            "Executing task %s for agent %s (max_iterations=%d)",
            request.task_id,
            request.agent_id,
            request.max_iterations,
        )

        try:
            self.readiness.ensure_ready()
        except ReadinessError as error:
            logger.error("Task %s aborted: gateway not ready: %s", request.task_id, error)
            return self._finish(
                request,
                started=started,
                turns=turns,
                state=LoopState.STOPPED_FAILED,
                success=False,
                error=f"Worker gateway is not ready: {error}",
            )

        try:
            return self._run_turns(
                request,
                started=started,
                budget_started=self._clock(),
                turns=turns,
            )
        except Exception as error:  # noqa: BLE001
            logger.exception("Task %s execution error", request.task_id)
            return self._finish(
                request,
                started=started,
                turns=turns,
                state=LoopState.STOPPED_FAILED,
                success=False,
                error=str(error) or type(error).__name__,
            )

    def _run_turns(
        self,
        request: TaskRequest,
        *,
        started: float,
        budget_started: float,
        turns: list[TurnRecord],
    ) -> ExecutionResult:
        # Budget counts turn time only; the readiness wait is reported in duration_ms.
        previous_output = ""
        last: TurnOutcome | None = None

        for turn in range(1, request.max_iterations + 1):
            timeout_ms = next_turn_timeout_ms(
                budget=self.budget,
                multi_turn=request.multi_turn,
                elapsed_ms=_elapsed_ms(budget_started, self._clock()),
            )
            if timeout_ms is None:
                logger.info(
                    "Task %s: budget exhausted before turn %d",
                    request.task_id,
                    turn,
                )
                return self._exhausted(request, started=started, turns=turns, last=last)

            turn_started = self._clock()
            try:
                outcome = self.turn_executor.run_turn(
                    request,
                    turn=turn,
                    timeout_ms=timeout_ms,
                    previous_output=previous_output,
                )
            except TurnProcessError as error:
                logger.error(
                    "Task %s turn %d could not start (transient=%s): %s",
                    request.task_id,
                    turn,
                    error.transient,
                    error,
                )
                turns.append(
                    TurnRecord(
                        turn=turn,
                        output="",
                        duration_ms=_elapsed_ms(turn_started, self._clock()),
                        completed=False,
                    ),
                )
                return self._finish(
                    request,
                    started=started,
                    turns=turns,
                    state=LoopState.STOPPED_FAILED,
                    success=False,
                    error=str(error),
                )

            turns.append(outcome.record)
            last = outcome
            is_final_turn = turn == request.max_iterations

            if outcome.exit_code != 0 and is_final_turn:
                return self._finish(
                    request,
                    started=started,
                    turns=turns,
                    state=LoopState.STOPPED_FAILED,
                    success=False,
                    error=outcome.stderr if outcome.stderr.strip() else NO_OUTPUT_ERROR,
                )
            if outcome.record.completed:
                return self._finish(
                    request,
                    started=started,
                    turns=turns,
                    state=LoopState.STOPPED_SUCCESS,
                    success=True,
                )
            if outcome.timed_out:
                logger.warning("Task %s turn %d timed out; continuing", request.task_id, turn)
            previous_output = outcome.record.output

        return self._exhausted(request, started=started, turns=turns, last=last)

    def _exhausted(
        self,
        request: TaskRequest,
        *,
        started: float,
        turns: list[TurnRecord],
        last: TurnOutcome | None,
    ) -> ExecutionResult:
        # Best effort: the last output is accepted when its process exited cleanly.
        success = last is not None and last.exit_code == 0
        error = None
        if not success:
            if last is not None and last.stderr.strip():
                error = last.stderr
            else:
                error = f"Task not completed after {len(turns)} turns"
        return self._finish(
            request,
            started=started,
            turns=turns,
            state=LoopState.STOPPED_EXHAUSTED,
            success=success,
            error=error,
        )

    def _finish(  # noqa: PLR0913
        self,
        request: TaskRequest,
        *,
        started: float,
        turns: list[TurnRecord],
        state: LoopState,
        success: bool,
        error: str | None = None,
    ) -> ExecutionResult:
        result = ExecutionResult(
            success=success,
            output=turns[-1].output if turns else "",
            duration_ms=_elapsed_ms(started, self._clock()),
            state=state,
            turns=list(turns),
            error=None if success else truncate_error(error or NO_OUTPUT_ERROR),
            include_turns=request.multi_turn,
        )
        logger.info(
            "Task %s finished: state=%s success=%s turns_used=%d duration=%dms",
            request.task_id,
            state.value,
            success,
            result.turns_used,
            result.duration_ms,
        )
        return result


def truncate_error(message: str) -> str:
    return message[:ERROR_MAX_CHARS]


def _elapsed_ms(started: float, now: float) -> int:
    return int((now - started) * 1000)
