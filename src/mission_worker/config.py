"""Runtime configuration for the mission worker."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse, urlunparse

from mission_worker.mission.budget import TurnBudget


@dataclass(slots=True)
class WorkerSettings:
    """How the worker CLI is invoked for one turn."""

    command: str = "clawdbot chat --once"
    gateway_url: str = "ws://localhost:18789"
    graceful_shutdown_seconds: int = 2


@dataclass(slots=True)
class BudgetSettings:
    """Wall-clock policy for multi-turn execution."""

    total_budget_seconds: int = 270
    per_turn_cap_seconds: int = 180
    min_remaining_seconds: int = 60
    single_shot_timeout_seconds: int = 300

    def to_turn_budget(self) -> TurnBudget:
        return TurnBudget(
            total_budget_ms=self.total_budget_seconds * 1000,
            per_turn_cap_ms=self.per_turn_cap_seconds * 1000,
            min_remaining_ms=self.min_remaining_seconds * 1000,
            single_shot_timeout_ms=self.single_shot_timeout_seconds * 1000,
        )


@dataclass(slots=True)
class GatewaySettings:
    """Readiness probing of the worker gateway."""

    health_url: str = "http://localhost:18789"
    ready_timeout_seconds: float = 180.0
    poll_interval_seconds: float = 1.0
    request_timeout_seconds: float = 5.0
    skip_check: bool = False


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    worker: WorkerSettings = field(default_factory=WorkerSettings)
    budget: BudgetSettings = field(default_factory=BudgetSettings)
    gateway: GatewaySettings = field(default_factory=GatewaySettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for a local gateway."""

        gateway_url = os.getenv("MISSION_WORKER_GATEWAY_URL", "ws://localhost:18789").strip()
        return cls(
            worker=WorkerSettings(
                command=os.getenv("MISSION_WORKER_COMMAND", "clawdbot chat --once").strip(),
                gateway_url=gateway_url,
                graceful_shutdown_seconds=int(
                    os.getenv("MISSION_WORKER_GRACEFUL_SHUTDOWN_SECONDS", "2"),
                ),
            ),
            budget=BudgetSettings(
                total_budget_seconds=int(
                    os.getenv("MISSION_WORKER_TOTAL_BUDGET_SECONDS", "270"),
                ),
                per_turn_cap_seconds=int(
                    os.getenv("MISSION_WORKER_PER_TURN_CAP_SECONDS", "180"),
                ),
                min_remaining_seconds=int(
                    os.getenv("MISSION_WORKER_MIN_REMAINING_SECONDS", "60"),
                ),
                single_shot_timeout_seconds=int(
                    os.getenv("MISSION_WORKER_SINGLE_SHOT_TIMEOUT_SECONDS", "300"),
                ),
            ),
            gateway=GatewaySettings(
                health_url=os.getenv(
                    "MISSION_WORKER_GATEWAY_HEALTH_URL",
                    health_url_from_gateway_url(gateway_url),
                ).strip(),
                ready_timeout_seconds=float(
                    os.getenv("MISSION_WORKER_GATEWAY_READY_TIMEOUT_SECONDS", "180"),
                ),
                poll_interval_seconds=float(
                    os.getenv("MISSION_WORKER_GATEWAY_POLL_INTERVAL_SECONDS", "1.0"),
                ),
                request_timeout_seconds=float(
                    os.getenv("MISSION_WORKER_GATEWAY_REQUEST_TIMEOUT_SECONDS", "5.0"),
                ),
                skip_check=_env_bool("MISSION_WORKER_SKIP_GATEWAY_CHECK", default=False),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for inconsistent settings."""

        if not self.worker.command:
            raise ValueError("MISSION_WORKER_COMMAND must not be empty.")
        if not self.worker.gateway_url:
            raise ValueError("MISSION_WORKER_GATEWAY_URL must not be empty.")
        if self.worker.graceful_shutdown_seconds < 0:
            raise ValueError("MISSION_WORKER_GRACEFUL_SHUTDOWN_SECONDS must be >= 0.")
        self.budget.to_turn_budget().validate()
        _validate_http_url(self.gateway.health_url)
        if self.gateway.ready_timeout_seconds <= 0:
            raise ValueError("MISSION_WORKER_GATEWAY_READY_TIMEOUT_SECONDS must be > 0.")
        if self.gateway.poll_interval_seconds <= 0:
            raise ValueError("MISSION_WORKER_GATEWAY_POLL_INTERVAL_SECONDS must be > 0.")
        if self.gateway.request_timeout_seconds <= 0:
            raise ValueError("MISSION_WORKER_GATEWAY_REQUEST_TIMEOUT_SECONDS must be > 0.")


def configure_logging(level: str) -> None:
    """Configure root logging once for CLI runs; logs go to stderr."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def health_url_from_gateway_url(gateway_url: str) -> str:
    """Map a ``ws://`` / ``wss://`` gateway URL to its HTTP counterpart."""

    parsed = urlparse(gateway_url.strip())
    scheme = {"ws": "http", "wss": "https"}.get(parsed.scheme, parsed.scheme)
    return urlunparse(parsed._replace(scheme=scheme))


def _validate_http_url(value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            "Invalid MISSION_WORKER_GATEWAY_HEALTH_URL: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
