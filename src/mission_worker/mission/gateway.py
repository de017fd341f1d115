"""Worker gateway readiness checks."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import httpx

from mission_worker.mission.errors import ReadinessError

logger = logging.getLogger(__name__)


class GatewayReadiness(Protocol):
    """Guarantees the worker endpoint is reachable before a task's first turn."""

    def ensure_ready(self) -> None:
        """Return once the gateway is reachable; raise ``ReadinessError`` otherwise."""


@dataclass(slots=True)
class GatewayStatus:
    """Result of a single gateway probe."""

    url: str
    reachable: bool
    status_code: int | None = None
    error: str | None = None


class AlwaysReady:
    """Readiness collaborator for gateways managed outside this process."""

    def ensure_ready(self) -> None:
        return None


class HttpGatewayReadiness:
    """Poll the gateway's HTTP endpoint until it answers or the deadline passes.

    Any HTTP response counts as reachable: the gateway speaks WebSocket on the
    same port and may reject plain GETs. Success is cached, so repeated calls
    are cheap.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        health_url: str,
        ready_timeout_seconds: float = 180.0,
        poll_interval_seconds: float = 1.0,
        request_timeout_seconds: float = 5.0,
        client: httpx.Client | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.health_url = health_url
        self.ready_timeout_seconds = ready_timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self._client = client or httpx.Client(timeout=httpx.Timeout(request_timeout_seconds))
        self._clock = clock
        self._sleep = sleep
        self._ready = False

    def ensure_ready(self) -> None:
        if self._ready:
            return

        deadline = self._clock() + self.ready_timeout_seconds
        attempts = 0
        while True:
            attempts += 1
            status = probe_gateway(self.health_url, client=self._client)
            if status.reachable:
                logger.info(
                    "Gateway reachable at %s (status=%s, attempts=%d)",
                    self.health_url,
                    status.status_code,
                    attempts,
                )
                self._ready = True
                return

            if self._clock() >= deadline:
                raise ReadinessError(
                    f"gateway at {self.health_url} not reachable after "
                    f"{self.ready_timeout_seconds:.0f}s ({attempts} attempts): {status.error}",
                )
            logger.warning(
                "Gateway not reachable yet at %s: %s; retrying in %.1fs",
                self.health_url,
                status.error,
                self.poll_interval_seconds,
            )
            self._sleep(self.poll_interval_seconds)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpGatewayReadiness:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


def probe_gateway(url: str, *, client: httpx.Client) -> GatewayStatus:
    """Probe the gateway once."""

    try:
        response = client.get(url)
    except httpx.TimeoutException:
        return GatewayStatus(url=url, reachable=False, error="timeout")
    except httpx.HTTPError as exc:
        return GatewayStatus(url=url, reachable=False, error=str(exc) or type(exc).__name__)
    return GatewayStatus(url=url, reachable=True, status_code=response.status_code)
