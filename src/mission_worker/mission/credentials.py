"""Map per-request provider credentials onto worker environment variables."""

from __future__ import annotations

from dataclasses import dataclass

from mission_worker.mission.contracts import ProviderCredentials, ProviderKind


@dataclass(frozen=True, slots=True)
class ProviderEnvSpec:
    """Environment variable names (and default base URL) for one provider."""

    api_key_var: str
    base_url_var: str
    default_base_url: str | None = None


_OPENAI_KEY_VAR = "OPENAI_API_KEY"
_OPENAI_BASE_URL_VAR = "OPENAI_BASE_URL"

PROVIDER_ENV_SPECS: dict[ProviderKind, ProviderEnvSpec] = {
    ProviderKind.ANTHROPIC: ProviderEnvSpec("ANTHROPIC_API_KEY", "ANTHROPIC_BASE_URL"),
    ProviderKind.OPENAI: ProviderEnvSpec(_OPENAI_KEY_VAR, _OPENAI_BASE_URL_VAR),
    ProviderKind.GOOGLE: ProviderEnvSpec("GEMINI_API_KEY", "GEMINI_BASE_URL"),
    # OpenAI-compatible providers share the OpenAI variable pair.
    ProviderKind.XAI: ProviderEnvSpec(
        _OPENAI_KEY_VAR,
        _OPENAI_BASE_URL_VAR,
        "https://api.x.ai/v1",
    ),
    ProviderKind.DEEPSEEK: ProviderEnvSpec(
        _OPENAI_KEY_VAR,
        _OPENAI_BASE_URL_VAR,
        "https://api.deepseek.com/v1",
    ),
    ProviderKind.GROQ: ProviderEnvSpec(
        _OPENAI_KEY_VAR,
        _OPENAI_BASE_URL_VAR,
        "https://api.groq.com/openai/v1",
    ),
    ProviderKind.MISTRAL: ProviderEnvSpec(
        _OPENAI_KEY_VAR,
        _OPENAI_BASE_URL_VAR,
        "https://api.mistral.ai/v1",
    ),
    ProviderKind.OPENROUTER: ProviderEnvSpec(
        _OPENAI_KEY_VAR,
        _OPENAI_BASE_URL_VAR,
        "https://openrouter.ai/api/v1",
    ),
}


def build_provider_env(credentials: ProviderCredentials | None) -> dict[str, str]:
    """Return the env overlay for one worker invocation (empty without credentials)."""

    if credentials is None:
        return {}
    spec = PROVIDER_ENV_SPECS[credentials.provider]
    env = {spec.api_key_var: credentials.api_key}
    base_url = credentials.base_url or spec.default_base_url
    if base_url:
        env[spec.base_url_var] = base_url
    return env
