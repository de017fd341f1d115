"""CLI entrypoint for mission-worker."""

from pathlib import Path

import rich_click as click

from mission_worker import __version__
from mission_worker.config import configure_logging
from mission_worker.mission.contracts import MAX_ITERATIONS, MIN_ITERATIONS
from mission_worker.mission.controllers import (
    GatewayStatusCommand,
    MissionCliController,
    MissionExecuteCommand,
    MissionSmokeCommand,
)

click.rich_click.USE_MARKDOWN = True
MISSION_CONTROLLER = MissionCliController()


@click.group()
@click.version_option(version=__version__, prog_name="mission-worker")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    envvar="MISSION_WORKER_LOG_LEVEL",
    default="INFO",
    show_default=True,
    help="Log level for diagnostics written to stderr.",
)
def mission_worker(log_level: str) -> None:
    """Mission task execution CLI."""

    configure_logging(log_level)


@mission_worker.command("execute")
@click.option(
    "--request",
    "request_path",
    type=click.Path(path_type=Path, dir_okay=False, allow_dash=True),
    default="-",
    show_default=True,
    help="Task request JSON file; `-` reads from stdin.",
)
@click.option(
    "--max-iterations",
    type=click.IntRange(min=MIN_ITERATIONS, max=MAX_ITERATIONS),
    default=None,
    help="Override max_iterations from the request.",
)
@click.option("--model", "model_override", default=None, help="Override model_override.")
@click.option(
    "--skip-gateway-check",
    is_flag=True,
    default=False,
    help="Do not wait for the worker gateway before the first turn.",
)
def execute(
    request_path: Path,
    max_iterations: int | None,
    model_override: str | None,
    skip_gateway_check: bool,
) -> None:
    """Execute one task request and print the JSON response."""

    try:
        report = MISSION_CONTROLLER.execute(
            MissionExecuteCommand(
                request_path=None if str(request_path) == "-" else request_path,
                max_iterations=max_iterations,
                model_override=model_override,
                skip_gateway_check=skip_gateway_check,
            ),
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(report.lines)
    if not report.success:
        raise SystemExit(1)


@mission_worker.command("gateway-status")
@click.option("--health-url", default=None, help="Override the gateway health URL.")
def gateway_status(health_url: str | None) -> None:
    """Probe the worker gateway once."""

    try:
        report = MISSION_CONTROLLER.gateway_status(GatewayStatusCommand(health_url=health_url))
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(report.lines)
    if not report.success:
        raise SystemExit(1)


@mission_worker.command("smoke")
@click.option(
    "--prompt",
    default="Reply with exactly: OK",
    show_default=True,
    help="Task description for the synthetic task.",
)
@click.option(
    "--expect-substring",
    default="OK",
    show_default=True,
    help="Substring required in the final output for a passing check.",
)
@click.option(
    "--worker-command",
    default=None,
    help="Worker CLI command; defaults to MISSION_WORKER_COMMAND.",
)
@click.option(
    "--skip-gateway-check",
    is_flag=True,
    default=False,
    help="Do not wait for the worker gateway.",
)
def smoke(
    prompt: str,
    expect_substring: str,
    worker_command: str | None,
    skip_gateway_check: bool,
) -> None:
    """Run one synthetic single-turn task against the worker CLI."""

    try:
        report = MISSION_CONTROLLER.smoke(
            MissionSmokeCommand(
                prompt=prompt,
                expect_substring=expect_substring,
                worker_command=worker_command,
                skip_gateway_check=skip_gateway_check,
            ),
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(report.lines)
    if not report.success:
        raise click.ClickException("Mission smoke check failed.")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    mission_worker()
