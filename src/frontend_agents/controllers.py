"""Controllers for CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from frontend_agents.config import Settings
from frontend_agents.llm.backend import (
    CliCompletionBackend,
    CompletionBackend,
    CompletionBackendError,
    CompletionRequest,
)
from frontend_agents.llm.routing import RoutingDefaults, resolve_routing
from frontend_agents.llm.sanitization import sanitize_preview
from frontend_agents.orchestrator.models import WorkflowRunResult
from frontend_agents.orchestrator.workflow import CREATE_PULL_REQUEST
from frontend_agents.system import AutomationSystem

_SOURCE_PREVIEW_CHARS = 60
_SMOKE_PREVIEW_CHARS = 200


@dataclass(slots=True)
class RunPromptsCommand:
    """CLI input for a batch of free-text prompts."""

    prompts: tuple[str, ...]


@dataclass(slots=True)
class RunJiraCommand:
    """CLI input for a batch of Jira issue keys."""

    task_keys: tuple[str, ...]


@dataclass(slots=True)
class StatusCommand:
    """CLI input for worker status listing."""

    check_connections: bool = False


@dataclass(slots=True)
class SmokeCommand:
    """CLI input for a direct completion backend check."""

    agent: str | None
    tier: str
    model: str | None
    command_template: str | None
    prompt: str
    expect_substring: str
    timeout_seconds: float


@dataclass(slots=True)
class CommandResult:
    """Lines to render in CLI plus overall outcome."""

    lines: list[str]
    success: bool


class CliController:
    """Builds the automation system from environment and renders its results."""

    def __init__(self, *, completion: CompletionBackend | None = None) -> None:
        self._completion = completion

    def run_prompts(self, command: RunPromptsCommand) -> CommandResult:
        settings = _settings()
        results = asyncio.run(self._run(settings, "prompt", command.prompts))
        return _render_runs(results)

    def run_jira(self, command: RunJiraCommand) -> CommandResult:
        settings = _settings()
        if not settings.jira.configured:
            return CommandResult(
                lines=["Jira is not configured: set JIRA_HOST, JIRA_USERNAME and JIRA_API_TOKEN."],
                success=False,
            )
        results = asyncio.run(self._run(settings, "jira", command.task_keys))
        return _render_runs(results)

    def status(self, command: StatusCommand) -> list[str]:
        settings = _settings()
        return asyncio.run(self._status(settings, check_connections=command.check_connections))

    def smoke(self, command: SmokeCommand) -> CommandResult:
        settings = Settings.from_env()
        try:
            routing = resolve_routing(
                defaults=RoutingDefaults.from_settings(settings.llm),
                tier=command.tier,
                agent_override=command.agent,
                model_override=command.model,
            )
        except ValueError as error:
            return CommandResult(lines=["Completion smoke check:", str(error)], success=False)

        request = CompletionRequest(
            system_prompt="",
            user_prompt=command.prompt,
            agent=routing.agent,
            model=routing.model,
            command_template=command.command_template or routing.command_template,
            timeout_seconds=command.timeout_seconds,
        )
        lines = [
            "Completion smoke check:",
            f"agent={routing.agent} tier={routing.tier} model={routing.model}",
        ]
        backend = self._completion or CliCompletionBackend()
        try:
            result = asyncio.run(backend.complete(request))
        except (CompletionBackendError, ValueError) as error:
            lines.append(f"FAILED: {error}")
            return CommandResult(lines=lines, success=False)

        preview = sanitize_preview(result.text, max_chars=_SMOKE_PREVIEW_CHARS)
        success = command.expect_substring in result.text
        lines.append(f"exit_code={result.exit_code} duration_ms={result.duration_ms}")
        lines.append(f"stdout: {preview}")
        if not success:
            lines.append(f"FAILED: expected substring not found: {command.expect_substring!r}")
        else:
            lines.append("OK")
        return CommandResult(lines=lines, success=success)

    async def _run(
        self,
        settings: Settings,
        kind: str,
        sources: Sequence[str],
    ) -> list[WorkflowRunResult]:
        async with AutomationSystem(settings, completion=self._completion) as system:
            if kind == "jira":
                return await system.process_jira_tasks(sources)
            return await system.process_prompts(sources)

    async def _status(self, settings: Settings, *, check_connections: bool) -> list[str]:
        async with AutomationSystem(settings, completion=self._completion) as system:
            lines = _render_status(system.get_status())
            disabled = settings.disabled_integrations()
            if disabled:
                lines.append(f"Disabled integrations: {', '.join(disabled)}")
            if check_connections:
                lines.append("Connections:")
                for service, ok in (await system.test_connections()).items():
                    lines.append(f"  {service}: {'ok' if ok else 'FAILED'}")
            return lines


def _settings() -> Settings:
    settings = Settings.from_env()
    settings.validate_required()
    return settings


def _render_runs(results: list[WorkflowRunResult]) -> CommandResult:
    lines: list[str] = []
    for result in results:
        source = sanitize_preview(result.source, max_chars=_SOURCE_PREVIEW_CHARS)
        lines.append(f"Run {result.run_id} [{result.kind}] {source!r}: {result.status}")
        for step in result.steps:
            line = f"  - {step.name}: {step.status.value} (retries={step.retry_count})"
            if step.error:
                line += f" error={step.error}"
            lines.append(line)
        if result.error:
            lines.append(f"  Error: {result.error}")
        pull_request = _pull_request_url(result.outputs)
        if pull_request:
            lines.append(f"  Pull request: {pull_request}")

    completed = sum(1 for result in results if result.succeeded)
    failed = len(results) - completed
    lines.append(f"Processed {len(results)} input(s): {completed} completed, {failed} failed")
    return CommandResult(lines=lines, success=failed == 0)


def _pull_request_url(outputs: dict[str, Any]) -> str | None:
    output = outputs.get(CREATE_PULL_REQUEST)
    if isinstance(output, dict):
        return output.get("pull_request_url")
    return None


def _render_status(status: dict[str, Any]) -> list[str]:
    coordinator = status["coordinator"]
    lines = [
        f"{coordinator.name}: in_flight={coordinator.in_flight} "
        f"available={coordinator.available_capacity}",
        f"Active workflows: {status['active_workflows']}",
        "Agents:",
    ]
    for worker_type, worker in status["agents"].items():
        lines.append(
            f"  {worker_type.value}: {worker.name} in_flight={worker.in_flight} "
            f"available={worker.available_capacity} "
            f"capabilities={','.join(capability.name for capability in worker.capabilities)}",
        )
    return lines

