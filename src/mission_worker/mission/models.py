"""Domain models for turn records and execution results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class LoopState(str, Enum):
    """Execution loop states; every ``STOPPED_*`` value is terminal."""

    TURN_PENDING = "turn_pending"
    STOPPED_SUCCESS = "stopped_success"
    STOPPED_EXHAUSTED = "stopped_exhausted"
    STOPPED_FAILED = "stopped_failed"


@dataclass(frozen=True, slots=True)
class TurnRecord:
    """One executed turn."""

    turn: int
    output: str
    duration_ms: int
    completed: bool

    def to_payload(self) -> dict[str, object]:
        return {
            "turn": self.turn,
            "output": self.output,
            "duration_ms": self.duration_ms,
            "completed": self.completed,
        }


@dataclass(frozen=True, slots=True)
class TurnOutcome:
    """Turn record plus process diagnostics kept off the record itself."""

    record: TurnRecord
    exit_code: int | None
    stderr: str
    timed_out: bool = False


@dataclass(slots=True)
class ExecutionResult:
    """Final outcome of one task invocation."""

    success: bool
    output: str
    duration_ms: int
    state: LoopState
    turns: list[TurnRecord] = field(default_factory=list)
    error: str | None = None
    include_turns: bool = False

    @property
    def turns_used(self) -> int:
        return len(self.turns)

    def to_payload(self) -> dict[str, object]:
        """Serialize into the response shape returned to callers."""

        payload: dict[str, object] = {
            "success": self.success,
            "output": self.output,
            "duration_ms": self.duration_ms,
            "turns_used": self.turns_used,
        }
        if not self.success:
            payload["error"] = self.error or ""
        if self.include_turns:
            payload["turn_outputs"] = [record.to_payload() for record in self.turns]
        return payload
