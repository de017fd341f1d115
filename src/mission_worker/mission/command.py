"""Shell command rendering for worker CLI invocations."""

from __future__ import annotations

_QUOTE_ESCAPE = "'\\''"


def quote_shell_argument(text: str) -> str:
    """Wrap text in single quotes for POSIX ``sh``.

    Each embedded ``'`` closes the quote, adds an escaped quote and reopens it.
    """

    return "'" + text.replace("'", _QUOTE_ESCAPE) + "'"


def unquote_shell_argument(quoted: str) -> str:
    """Invert ``quote_shell_argument``."""

    if len(quoted) < 2 or not (quoted.startswith("'") and quoted.endswith("'")):  # noqa: PLR2004
        raise ValueError("Expected a single-quoted shell argument")
    return quoted[1:-1].replace(_QUOTE_ESCAPE, "'")


def build_worker_command(
    *,
    worker_command: str,
    gateway_url: str,
    prompt: str,
    model_override: str | None = None,
) -> str:
    """Render the one-shot worker CLI command line for a single turn."""

    parts = [worker_command.strip(), "--url", quote_shell_argument(gateway_url)]
    if model_override:
        parts.extend(["--model", quote_shell_argument(model_override)])
    parts.append(quote_shell_argument(prompt))
    return " ".join(parts)
