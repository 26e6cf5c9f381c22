"""Process-level wiring of settings, integration clients, and workers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, TypeVar

from frontend_agents.agents import (
    CodeGeneratorWorker,
    FigmaDesignerWorker,
    GitHubManagerWorker,
    JiraAnalyzerWorker,
    PromptAnalyzerWorker,
    QATesterWorker,
)
from frontend_agents.config import Settings
from frontend_agents.integrations import FigmaClient, GitHubClient, JiraClient
from frontend_agents.integrations.http import ServiceClient
from frontend_agents.llm.backend import CliCompletionBackend, CompletionBackend
from frontend_agents.llm.routing import RoutingDefaults, resolve_routing
from frontend_agents.orchestrator.coordinator import CoordinatorWorker
from frontend_agents.orchestrator.models import WorkerConfig, WorkflowRunResult
from frontend_agents.orchestrator.worker import SleepFn

logger = logging.getLogger(__name__)

ClientT = TypeVar("ClientT", bound=ServiceClient)


class AutomationSystem:
    """Coordinator plus the specialized workers configured by ``Settings``."""

    def __init__(
        self,
        settings: Settings,
        *,
        completion: CompletionBackend | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        settings.validate_required()
        self.settings = settings
        self._completion = completion or CliCompletionBackend()
        self._sleep = sleep
        routing = RoutingDefaults.from_settings(settings.llm)
        self.main_routing = resolve_routing(defaults=routing, tier="main")
        self.specialized_routing = resolve_routing(defaults=routing, tier="specialized")
        self.coordinator = CoordinatorWorker(
            WorkerConfig(
                id="main-coordinator",
                name="Main Coordinator",
                model=self.main_routing.model,
                max_concurrent_tasks=settings.workers.max_parallel_agents,
                retry_attempts=1,
            ),
            sleep=sleep,
        )
        self.clients: list[ServiceClient] = []
        self._initialized = False

    def initialize(self) -> None:
        """Build clients and register every worker whose integration is configured."""

        if self._initialized:
            return
        settings = self.settings

        github = self._track(GitHubClient(settings.github))
        figma = self._track(FigmaClient(settings.figma)) if settings.figma.configured else None
        if settings.jira.configured:
            jira = self._track(JiraClient(settings.jira))
            self.coordinator.register_agent(
                JiraAnalyzerWorker(
                    self._config("jira-analyzer", "Jira Analyzer"),
                    jira,
                    **self._llm(),
                ),
            )
        else:
            logger.warning("Jira is not configured; Jira workflows are unavailable")
        if figma is None:
            logger.warning("Figma is not configured; design extraction returns empty results")

        self.coordinator.register_agent(
            PromptAnalyzerWorker(self._config("prompt-analyzer", "Prompt Analyzer"), **self._llm()),
        )
        self.coordinator.register_agent(
            FigmaDesignerWorker(
                self._config("figma-designer", "Figma Designer"),
                figma,
                **self._llm(),
            ),
        )
        self.coordinator.register_agent(
            CodeGeneratorWorker(self._config("code-generator", "Code Generator"), **self._llm()),
        )
        self.coordinator.register_agent(
            QATesterWorker(self._config("qa-tester", "QA Tester"), **self._llm()),
        )
        self.coordinator.register_agent(
            GitHubManagerWorker(
                self._config("github-manager", "GitHub Manager"),
                github,
                base_branch=settings.github.base_branch,
                draft=settings.github.draft_pull_requests,
                **self._llm(),
            ),
        )
        self._initialized = True
        logger.info("Initialized %d workers", len(self.coordinator.workers))

    async def test_connections(self) -> dict[str, bool]:
        """Check every configured integration; failures are reported, not raised."""

        results: dict[str, bool] = {}
        for client in self.clients:
            results[client.service] = await client.test_connection()
        return results

    async def process_prompts(self, prompts: Sequence[str]) -> list[WorkflowRunResult]:
        self.initialize()
        return await self.coordinator.process_prompts(prompts)

    async def process_jira_tasks(self, task_keys: Sequence[str]) -> list[WorkflowRunResult]:
        self.initialize()
        return await self.coordinator.process_jira_tasks(task_keys)

    def get_status(self) -> dict[str, Any]:
        self.initialize()
        return self.coordinator.get_agents_status()

    async def stop(self) -> None:
        await self.coordinator.stop()
        for client in self.clients:
            await client.aclose()
        self.clients.clear()

    async def __aenter__(self) -> AutomationSystem:
        self.initialize()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.stop()

    def _config(self, worker_id: str, name: str) -> WorkerConfig:
        workers = self.settings.workers
        return WorkerConfig(
            id=worker_id,
            name=name,
            model=self.specialized_routing.model,
            max_concurrent_tasks=workers.specialized_max_concurrent,
            retry_attempts=workers.retry_attempts,
            timeout_seconds=workers.task_timeout_seconds,
            retry_base_seconds=workers.retry_base_seconds,
        )

    def _llm(self) -> dict[str, Any]:
        return {
            "completion": self._completion,
            "routing": self.specialized_routing,
            "completion_timeout_seconds": self.settings.llm.completion_timeout_seconds,
            "sleep": self._sleep,
        }

    def _track(self, client: ClientT) -> ClientT:
        self.clients.append(client)
        return client
