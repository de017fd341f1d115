from __future__ import annotations

import shlex

import allure
import pytest

from mission_worker.mission.command import (
    build_worker_command,
    quote_shell_argument,
    unquote_shell_argument,
)
from mission_worker.mission.contracts import ProviderCredentials, ProviderKind
from mission_worker.mission.credentials import PROVIDER_ENV_SPECS, build_provider_env

pytestmark = [
    allure.epic("Mission Execution"),
    allure.feature("Worker Invocation"),
]


def test_xai_defaults_to_xai_endpoint() -> None:
    env = build_provider_env(ProviderCredentials(provider=ProviderKind.XAI, api_key="xai-key"))
    assert env == {"OPENAI_API_KEY": "xai-key", "OPENAI_BASE_URL": "https://api.x.ai/v1"}


def test_base_url_override_is_used_verbatim() -> None:
    env = build_provider_env(
        ProviderCredentials(
            provider=ProviderKind.XAI,
            api_key="xai-key",
            base_url="https://gateway.internal/xai/",
        ),
    )
    assert env["OPENAI_BASE_URL"] == "https://gateway.internal/xai/"


def test_anthropic_without_override_sets_only_api_key() -> None:
    env = build_provider_env(ProviderCredentials(provider=ProviderKind.ANTHROPIC, api_key="sk"))
    assert env == {"ANTHROPIC_API_KEY": "sk"}


def test_google_uses_gemini_variables() -> None:
    env = build_provider_env(
        ProviderCredentials(
            provider=ProviderKind.GOOGLE,
            api_key="g",
            base_url="https://gemini.example",
        ),
    )
    assert env == {"GEMINI_API_KEY": "g", "GEMINI_BASE_URL": "https://gemini.example"}


@pytest.mark.parametrize(
    ("provider", "base_url"),
    [
        (ProviderKind.DEEPSEEK, "https://api.deepseek.com/v1"),
        (ProviderKind.GROQ, "https://api.groq.com/openai/v1"),
        (ProviderKind.MISTRAL, "https://api.mistral.ai/v1"),
        (ProviderKind.OPENROUTER, "https://openrouter.ai/api/v1"),
    ],
)
def test_openai_compatible_providers_share_openai_variables(
    provider: ProviderKind,
    base_url: str,
) -> None:
    env = build_provider_env(ProviderCredentials(provider=provider, api_key="k"))
    assert env == {"OPENAI_API_KEY": "k", "OPENAI_BASE_URL": base_url}


def test_every_provider_kind_has_an_env_mapping() -> None:
    assert set(PROVIDER_ENV_SPECS) == set(ProviderKind)


def test_no_credentials_means_no_env_overlay() -> None:
    assert build_provider_env(None) == {}


@pytest.mark.parametrize(
    "text",
    ["plain", "it's done", "'''", "", "a'b\"c $HOME `id` \\n", "multi\nline 'quoted'\n"],
)
def test_shell_quoting_round_trips(text: str) -> None:
    quoted = quote_shell_argument(text)
    assert unquote_shell_argument(quoted) == text
    assert shlex.split(quoted) == [text]


def test_quote_replaces_each_single_quote() -> None:
    assert quote_shell_argument("don't") == "'don'\\''t'"


def test_unquote_rejects_unquoted_text() -> None:
    with pytest.raises(ValueError, match="single-quoted"):
        unquote_shell_argument("bare")


def test_worker_command_includes_url_model_and_prompt() -> None:
    command = build_worker_command(
        worker_command="clawdbot chat --once ",
        gateway_url="ws://localhost:18789",
        prompt="Say 'hi'",
        model_override="xai/grok-4",
    )
    assert command.startswith("clawdbot chat --once --url ")
    assert shlex.split(command) == [
        "clawdbot",
        "chat",
        "--once",
        "--url",
        "ws://localhost:18789",
        "--model",
        "xai/grok-4",
        "Say 'hi'",
    ]


def test_worker_command_omits_model_flag_without_override() -> None:
    command = build_worker_command(
        worker_command="clawdbot chat --once",
        gateway_url="ws://localhost:18789",
        prompt="hello",
    )
    assert "--model" not in command
    assert shlex.split(command)[-1] == "hello"
