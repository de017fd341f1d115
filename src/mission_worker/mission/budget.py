"""Per-turn timeout allocation under a total wall-clock budget."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_TOTAL_BUDGET_MS = 270_000
DEFAULT_PER_TURN_CAP_MS = 180_000
DEFAULT_MIN_REMAINING_MS = 60_000
DEFAULT_SINGLE_SHOT_TIMEOUT_MS = 300_000


@dataclass(frozen=True, slots=True)
class TurnBudget:
    """Budget policy values, in milliseconds."""

    total_budget_ms: int = DEFAULT_TOTAL_BUDGET_MS
    per_turn_cap_ms: int = DEFAULT_PER_TURN_CAP_MS
    min_remaining_ms: int = DEFAULT_MIN_REMAINING_MS
    single_shot_timeout_ms: int = DEFAULT_SINGLE_SHOT_TIMEOUT_MS

    def validate(self) -> None:
        """Raise if the ordering total >= cap >= min_remaining > 0 does not hold."""

        if self.min_remaining_ms <= 0:
            raise ValueError("Minimum remaining budget must be > 0.")
        if self.per_turn_cap_ms < self.min_remaining_ms:
            raise ValueError(
                "Per-turn cap must be >= minimum remaining budget: "
                f"{self.per_turn_cap_ms} < {self.min_remaining_ms}",
            )
        if self.total_budget_ms < self.per_turn_cap_ms:
            raise ValueError(
                "Total budget must be >= per-turn cap: "
                f"{self.total_budget_ms} < {self.per_turn_cap_ms}",
            )
        if self.single_shot_timeout_ms <= 0:
            raise ValueError("Single-shot timeout must be > 0.")


def next_turn_timeout_ms(
    *,
    budget: TurnBudget,
    multi_turn: bool,
    elapsed_ms: int,
) -> int | None:
    """Return the timeout for the next turn, or ``None`` when no turn may start.

    Single-shot requests keep the fixed legacy timeout regardless of elapsed time.
    """

    if not multi_turn:
        return budget.single_shot_timeout_ms

    remaining = budget.total_budget_ms - elapsed_ms
    if remaining < budget.min_remaining_ms:
        return None
    return min(remaining, budget.per_turn_cap_ms)
