"""Workflow scheduler: worker registry, frontier dispatch, and batch drivers."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Sequence
from typing import Any

from frontend_agents.llm.sanitization import sanitize_preview
from frontend_agents.orchestrator.models import (
    Capability,
    StepResult,
    TaskPriority,
    TaskStatus,
    TaskType,
    WorkerConfig,
    WorkerStatus,
    WorkerType,
    WorkflowRun,
    WorkflowRunResult,
    WorkflowStep,
    WorkItem,
)
from frontend_agents.orchestrator.worker import BaseWorker, SleepFn, UnsupportedOperationError
from frontend_agents.orchestrator.workflow import (
    build_jira_workflow,
    build_prompt_workflow,
    map_step_to_task_type,
    step_output_key,
)

logger = logging.getLogger(__name__)

_SOURCE_PREVIEW_CHARS = 100

COORDINATION_CAPABILITY = Capability(
    name="workflow_coordination",
    description="Run full prompt and Jira workflows across the registered workers",
    supported_operations=frozenset({TaskType.ANALYZE_PROMPT, TaskType.ANALYZE_JIRA_TASK}),
)


class WorkflowDeadlockError(RuntimeError):
    """No step is ready but the graph is incomplete."""

    def __init__(self, run_id: str, pending: Sequence[str]) -> None:
        super().__init__(
            "Workflow deadlock: no steps ready to execute "
            f"(run {run_id}, waiting: {', '.join(pending)})",
        )
        self.run_id = run_id
        self.pending = tuple(pending)


class WorkflowStepError(RuntimeError):
    """A step failed and aborted its run."""

    def __init__(self, step: str, message: str) -> None:
        super().__init__(f"Step '{step}' failed: {message}")
        self.step = step


class WorkerNotRegisteredError(RuntimeError):
    def __init__(self, worker_type: WorkerType) -> None:
        super().__init__(f"No agent registered for type: {worker_type.value}")
        self.worker_type = worker_type


class CoordinatorWorker(BaseWorker):
    """Coordinator that owns the worker registry and runs step graphs."""

    def __init__(
        self,
        config: WorkerConfig,
        *,
        step_task_types: dict[str, TaskType] | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        super().__init__(
            config,
            worker_type=WorkerType.MAIN_COORDINATOR,
            capabilities=[COORDINATION_CAPABILITY],
            sleep=sleep,
        )
        self.workers: dict[WorkerType, BaseWorker] = {}
        self.active_runs: dict[str, list[WorkflowStep]] = {}
        self._step_task_types = step_task_types

    def register_agent(self, worker: BaseWorker) -> None:
        replaced = self.workers.get(worker.type)
        self.workers[worker.type] = worker
        if replaced is not None and replaced is not worker:
            logger.info("Replaced %s worker %s with %s", worker.type.value, replaced.id, worker.id)
        else:
            logger.info("Registered %s worker %s", worker.type.value, worker.id)

    async def perform_task(self, item: WorkItem) -> Any:
        if item.type is TaskType.ANALYZE_PROMPT:
            return await self.process_prompts(_as_list(item.input, "prompts", "prompt"))
        if item.type is TaskType.ANALYZE_JIRA_TASK:
            return await self.process_jira_tasks(_as_list(item.input, "task_keys", "task_key"))
        raise UnsupportedOperationError(self.name, item.type)

    async def process_prompts(self, prompts: Sequence[str]) -> list[WorkflowRunResult]:
        """Run the prompt workflow once per prompt, isolating failures."""

        return await self._process_batch("prompt", prompts, build_prompt_workflow)

    async def process_jira_tasks(self, task_keys: Sequence[str]) -> list[WorkflowRunResult]:
        """Run the Jira workflow once per issue key, isolating failures."""

        return await self._process_batch("jira", task_keys, build_jira_workflow)

    async def _process_batch(
        self,
        kind: str,
        sources: Sequence[str],
        build_steps: Callable[[str], list[WorkflowStep]],
    ) -> list[WorkflowRunResult]:
        results: list[WorkflowRunResult] = []
        logger.info("Processing %d %s input(s)", len(sources), kind)
        for source in sources:
            run = WorkflowRun(run_id=uuid.uuid4().hex, kind=kind, source=source)
            try:
                run.steps = build_steps(source)
                await self._execute_run(run)
            except Exception as error:  # noqa: BLE001
                logger.exception(
                    "Failed to process %s %r",
                    kind,
                    sanitize_preview(source, max_chars=_SOURCE_PREVIEW_CHARS),
                )
                results.append(_run_result(run, error=error))
                continue
            results.append(_run_result(run))
        return results

    async def _execute_run(self, run: WorkflowRun) -> None:
        logger.info("Started %s workflow %s (%d steps)", run.kind, run.run_id, len(run.steps))
        await self.execute_workflow_steps(run.run_id, run.steps)
        logger.info("Completed %s workflow %s", run.kind, run.run_id)

    async def execute_workflow_steps(self, run_id: str, steps: list[WorkflowStep]) -> None:
        """Dispatch ready frontiers until every step completes.

        Each frontier is every PENDING step whose dependencies are all
        COMPLETED. The whole frontier is awaited before the next one is
        computed; the first failure in frontier order aborts the run. The run
        is listed in ``active_runs`` only while this call is in progress.
        """

        self.active_runs[run_id] = steps
        try:
            await self._dispatch_frontiers(run_id, steps)
        finally:
            self.active_runs.pop(run_id, None)

    async def _dispatch_frontiers(self, run_id: str, steps: list[WorkflowStep]) -> None:
        completed: set[str] = set()
        while len(completed) < len(steps):
            ready = [
                step
                for step in steps
                if step.status is TaskStatus.PENDING
                and all(dependency in completed for dependency in step.dependencies)
            ]
            if not ready:
                pending = [step.name for step in steps if step.name not in completed]
                raise WorkflowDeadlockError(run_id, pending)

            logger.debug("Run %s dispatching %s", run_id, [step.name for step in ready])
            outcomes = await asyncio.gather(
                *(self._execute_workflow_step(run_id, step) for step in ready),
                return_exceptions=True,
            )

            failed: list[WorkflowStep] = []
            for step, outcome in zip(ready, outcomes, strict=True):
                if isinstance(outcome, BaseException):
                    step.status = TaskStatus.FAILED
                    step.error = str(outcome) or type(outcome).__name__
                    failed.append(step)
                    continue
                step.output = outcome
                step.status = TaskStatus.COMPLETED
                completed.add(step.name)

            if failed:
                first = failed[0]
                logger.error("Run %s step %s failed: %s", run_id, first.name, first.error)
                raise WorkflowStepError(first.name, first.error or "unknown error")

    async def _execute_workflow_step(self, run_id: str, step: WorkflowStep) -> Any:
        worker = self.workers.get(step.worker_type)
        if worker is None:
            raise WorkerNotRegisteredError(step.worker_type)

        item = WorkItem(
            id=f"{run_id}:{step.id}",
            type=self.map_step_to_task_type(step.name),
            description=step.name,
            priority=TaskPriority.MEDIUM,
            dependencies=list(step.dependencies),
            input=self.enrich_step_input(run_id, step),
        )
        step.status = TaskStatus.IN_PROGRESS
        try:
            return await worker.execute(item)
        finally:
            step.retry_count = item.retry_count

    def enrich_step_input(self, run_id: str, step: WorkflowStep) -> dict[str, Any]:
        """Copy of ``step.input`` extended with each dependency's stored output."""

        by_name = {candidate.name: candidate for candidate in self.active_runs.get(run_id, [])}
        enriched = dict(step.input)
        for dependency in step.dependencies:
            dependency_step = by_name.get(dependency)
            if dependency_step is not None and dependency_step.output is not None:
                enriched[step_output_key(dependency)] = dependency_step.output
        return enriched

    def map_step_to_task_type(self, step_name: str) -> TaskType:
        return map_step_to_task_type(step_name, self._step_task_types)

    def get_agents_status(self) -> dict[str, Any]:
        agents: dict[WorkerType, WorkerStatus] = {
            worker_type: worker.get_status() for worker_type, worker in self.workers.items()
        }
        return {
            "coordinator": self.get_status(),
            "agents": agents,
            "active_workflows": len(self.active_runs),
        }

    async def stop(self) -> None:
        for worker in self.workers.values():
            await worker.stop()
        await super().stop()


def _run_result(run: WorkflowRun, *, error: BaseException | None = None) -> WorkflowRunResult:
    return WorkflowRunResult(
        run_id=run.run_id,
        kind=run.kind,
        source=run.source,
        steps=[
            StepResult(
                name=step.name,
                status=step.status,
                retry_count=step.retry_count,
                error=step.error,
            )
            for step in run.steps
        ],
        outputs={} if error else {step.name: step.output for step in run.steps},
        status="failed" if error else "completed",
        error=str(error) if error else None,
    )


def _as_list(payload: dict[str, Any], many_key: str, one_key: str) -> list[str]:
    values = payload.get(many_key)
    if values is None and payload.get(one_key) is not None:
        values = [payload[one_key]]
    if not isinstance(values, list) or not all(isinstance(value, str) for value in values):
        raise ValueError(f"Expected {many_key!r} as a list of strings or {one_key!r} as a string")
    return values
