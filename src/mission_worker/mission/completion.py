"""Deterministic completion classification of worker turn output."""

from __future__ import annotations

from dataclasses import dataclass

DONE_MARKER = "[TASK_COMPLETE]"
NEEDS_MORE_WORK_MARKER = "[NEEDS_MORE_WORK]"

HEURISTIC_MIN_CHARS = 100

_FAILURE_INDICATOR_PATTERNS: tuple[str, ...] = (
    "error:",
    "failed",
    "todo:",
    "fixme",
    "not implemented",
    "incomplete",
    "missing",
    "broken",
)


@dataclass(frozen=True, slots=True)
class CompletionVerdict:
    """Classifier verdict with the rule that produced it."""

    completed: bool
    matched_rule: str
    matched_pattern: str | None = None


def classify_turn_output(output: str, exit_code: int | None) -> CompletionVerdict:
    """Classify one turn's stdout; first matching rule wins.

    A ``None`` exit code means the process never reported one (killed) and is
    treated as non-zero.
    """

    if DONE_MARKER in output:
        return CompletionVerdict(
            completed=True,
            matched_rule="done_marker",
            matched_pattern=DONE_MARKER,
        )

    if exit_code != 0:
        return CompletionVerdict(completed=False, matched_rule="nonzero_exit")

    if NEEDS_MORE_WORK_MARKER in output:
        return CompletionVerdict(
            completed=False,
            matched_rule="needs_more_work_marker",
            matched_pattern=NEEDS_MORE_WORK_MARKER,
        )

    if len(output) > HEURISTIC_MIN_CHARS:
        pattern = _first_match(output.lower(), _FAILURE_INDICATOR_PATTERNS)
        if pattern is None:
            return CompletionVerdict(completed=True, matched_rule="heuristic_substantial_output")
        return CompletionVerdict(
            completed=False,
            matched_rule="heuristic_failure_indicator",
            matched_pattern=pattern,
        )

    return CompletionVerdict(completed=False, matched_rule="fallback_incomplete")


def is_turn_complete(output: str, exit_code: int | None) -> bool:
    return classify_turn_output(output, exit_code).completed


def _first_match(haystack: str, patterns: tuple[str, ...]) -> str | None:
    for pattern in patterns:
        if pattern in haystack:
            return pattern
    return None
