"""Request contract for mission task execution."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from mission_worker.mission.errors import TaskValidationError

logger = logging.getLogger(__name__)

MIN_ITERATIONS = 1
MAX_ITERATIONS = 5
DEFAULT_ITERATIONS = 1

_REQUIRED_NON_EMPTY_FIELDS = ("agent_id", "task_id", "task_subject")
_OPTIONAL_TEXT_FIELDS = (
    "model_override",
    "team_context",
    "methodology_context",
    "agent_memory",
    "project_memory",
    "project_communications",
    "project_document_index",
)


class ProviderKind(str, Enum):
    """Model providers that per-request credentials may target."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"
    XAI = "xai"
    DEEPSEEK = "deepseek"
    GROQ = "groq"
    MISTRAL = "mistral"
    OPENROUTER = "openrouter"


@dataclass(frozen=True, slots=True)
class ProviderCredentials:
    """API credentials for one provider, supplied with the request."""

    provider: ProviderKind
    api_key: str
    base_url: str | None = None


@dataclass(frozen=True, slots=True)
class TaskRequest:
    """Validated task request; built once and never mutated."""

    agent_id: str
    task_id: str
    task_subject: str
    task_description: str
    soul_content: str
    team_context: str | None = None
    methodology_context: str | None = None
    agent_memory: str | None = None
    project_memory: str | None = None
    project_communications: str | None = None
    project_document_index: str | None = None
    model_override: str | None = None
    api_credentials: ProviderCredentials | None = None
    max_iterations: int = DEFAULT_ITERATIONS

    @property
    def multi_turn(self) -> bool:
        return self.max_iterations > 1


def parse_task_request(payload: object) -> TaskRequest:
    """Validate a raw JSON payload into a ``TaskRequest``."""

    if not isinstance(payload, dict):
        raise TaskValidationError("Request body must be a JSON object")

    for field_name in _REQUIRED_NON_EMPTY_FIELDS:
        value = payload.get(field_name)
        if not isinstance(value, str) or not value:
            raise TaskValidationError(f"{field_name} is required and must be a string")

    if not isinstance(payload.get("task_description"), str):
        raise TaskValidationError("task_description must be a string")

    soul_content = payload.get("soul_content")
    if not isinstance(soul_content, str) or not soul_content:
        raise TaskValidationError("soul_content is required and must be a string")

    optional_values: dict[str, str | None] = {}
    for field_name in _OPTIONAL_TEXT_FIELDS:
        value = payload.get(field_name)
        if value is not None and not isinstance(value, str):
            raise TaskValidationError(f"{field_name} must be a string when provided")
        optional_values[field_name] = value or None

    return TaskRequest(
        agent_id=payload["agent_id"],
        task_id=payload["task_id"],
        task_subject=payload["task_subject"],
        task_description=payload["task_description"],
        soul_content=soul_content,
        api_credentials=parse_provider_credentials(payload.get("api_credentials")),
        max_iterations=clamp_max_iterations(payload.get("max_iterations")),
        **optional_values,
    )


def parse_provider_credentials(raw: object) -> ProviderCredentials | None:
    """Return credentials, or ``None`` when the payload is absent or invalid."""

    if raw is None:
        return None
    if not isinstance(raw, dict):
        logger.warning("Discarding api_credentials: expected an object")
        return None

    provider_raw = raw.get("provider")
    api_key = raw.get("api_key")
    base_url = raw.get("base_url")
    try:
        provider = ProviderKind(provider_raw)
    except ValueError:
        logger.warning("Discarding api_credentials: unsupported provider %r", provider_raw)
        return None
    if not isinstance(api_key, str) or not api_key.strip():
        logger.warning("Discarding api_credentials for %s: api_key is empty", provider.value)
        return None
    if base_url is not None and not isinstance(base_url, str):
        logger.warning("Discarding api_credentials for %s: base_url is not a string", provider.value)
        return None

    if base_url is not None:
        base_url = base_url.strip() or None
    return ProviderCredentials(provider=provider, api_key=api_key, base_url=base_url)


def clamp_max_iterations(raw: object) -> int:
    """Clamp ``max_iterations`` into the supported range; invalid values fall back to 1."""

    if isinstance(raw, bool) or not isinstance(raw, int):
        return DEFAULT_ITERATIONS
    return max(MIN_ITERATIONS, min(MAX_ITERATIONS, raw))


def load_request_payload(path: Path) -> Any:
    """Load a request JSON document from disk."""

    return parse_request_text(path.read_text("utf-8"))


def parse_request_text(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as error:
        raise TaskValidationError(f"Request body is not valid JSON: {error}") from error
