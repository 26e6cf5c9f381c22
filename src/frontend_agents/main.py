"""CLI entrypoint for frontend-agents."""

import rich_click as click

from frontend_agents import __version__
from frontend_agents.config import ConfigurationError, Settings
from frontend_agents.controllers import (
    CliController,
    RunJiraCommand,
    RunPromptsCommand,
    SmokeCommand,
    StatusCommand,
)
from frontend_agents.logs import setup_logging

click.rich_click.USE_MARKDOWN = True
CONTROLLER = CliController()


@click.group()
@click.version_option(version=__version__, prog_name="frontend-agents")
def frontend_agents() -> None:
    """Frontend development automation: prompts and Jira issues to pull requests."""

    try:
        setup_logging(Settings.from_env().logging)
    except (ConfigurationError, ValueError) as error:
        raise click.ClickException(str(error)) from error


@frontend_agents.command("run-prompts")
@click.argument("prompts", nargs=-1, required=True)
def run_prompts(prompts: tuple[str, ...]) -> None:
    """Run the prompt workflow once per PROMPT."""

    result = _guarded(lambda: CONTROLLER.run_prompts(RunPromptsCommand(prompts=prompts)))
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("One or more prompt workflows failed.")


@frontend_agents.command("run-jira")
@click.argument("task_keys", metavar="KEY...", nargs=-1, required=True)
def run_jira(task_keys: tuple[str, ...]) -> None:
    """Run the Jira workflow once per issue KEY."""

    result = _guarded(lambda: CONTROLLER.run_jira(RunJiraCommand(task_keys=task_keys)))
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("One or more Jira workflows failed.")


@frontend_agents.command("status")
@click.option(
    "--check-connections",
    is_flag=True,
    default=False,
    help="Also call each configured integration to verify credentials.",
)
def status(check_connections: bool) -> None:
    """Show registered workers, capacity, and optional integrations."""

    _emit_lines(
        _guarded(lambda: CONTROLLER.status(StatusCommand(check_connections=check_connections))),
    )


@frontend_agents.command("smoke")
@click.option(
    "--agent",
    type=click.Choice(["claude", "codex", "gemini"], case_sensitive=False),
    default=None,
    help="Agent to test; defaults to FRONTEND_AGENTS_LLM_AGENT.",
)
@click.option(
    "--tier",
    type=click.Choice(["main", "specialized"], case_sensitive=False),
    default="specialized",
    show_default=True,
    help="Model tier to resolve for the agent.",
)
@click.option("--model", default=None, help="Optional explicit model id override.")
@click.option(
    "--command-template",
    default=None,
    help="Override the CLI command template; must contain {prompt} or {prompt_file}.",
)
@click.option(
    "--prompt",
    default="Reply with exactly: OK",
    show_default=True,
    help="Synthetic prompt used for the check.",
)
@click.option(
    "--expect-substring",
    default="OK",
    show_default=True,
    help="Substring required in stdout for a successful check.",
)
@click.option(
    "--timeout-seconds",
    type=click.FloatRange(min=1),
    default=60.0,
    show_default=True,
    help="Timeout for the completion call.",
)
def smoke(  # noqa: PLR0913
    agent: str | None,
    tier: str,
    model: str | None,
    command_template: str | None,
    prompt: str,
    expect_substring: str,
    timeout_seconds: float,
) -> None:
    """Run one completion through the configured CLI agent."""

    result = CONTROLLER.smoke(
        SmokeCommand(
            agent=agent.lower() if agent else None,
            tier=tier.lower(),
            model=model,
            command_template=command_template,
            prompt=prompt,
            expect_substring=expect_substring,
            timeout_seconds=timeout_seconds,
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Completion smoke check failed.")


def _guarded(action):
    try:
        return action()
    except ConfigurationError as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    frontend_agents()
