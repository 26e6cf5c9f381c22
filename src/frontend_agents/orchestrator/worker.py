"""Base execution contract shared by every worker."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from frontend_agents.llm.backend.base import CompletionBackend, CompletionRequest
from frontend_agents.llm.routing import FrozenRouting
from frontend_agents.llm.sanitization import sanitize_preview
from frontend_agents.orchestrator.models import (
    Capability,
    TaskStatus,
    TaskType,
    WorkerConfig,
    WorkerStatus,
    WorkerType,
    WorkItem,
)

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

DEFAULT_COMPLETION_TIMEOUT_SECONDS = 300.0


class WorkerCapacityError(RuntimeError):
    """Worker already runs ``max_concurrent_tasks`` items."""

    def __init__(self, worker_name: str, max_concurrent_tasks: int) -> None:
        super().__init__(
            f"Worker {worker_name} is at maximum capacity ({max_concurrent_tasks})",
        )
        self.worker_name = worker_name


class UnsupportedOperationError(RuntimeError):
    """No capability of the worker supports the requested operation."""

    def __init__(self, worker_name: str, task_type: TaskType | str) -> None:
        value = task_type.value if isinstance(task_type, TaskType) else task_type
        super().__init__(f"Worker {worker_name} cannot handle task type: {value}")
        self.worker_name = worker_name


class WorkItemTimeoutError(RuntimeError):
    """A single attempt exceeded the worker's per-task timeout."""


class CompletionUnavailableError(RuntimeError):
    """Worker was built without a completion backend."""


class BaseWorker(ABC):
    """Capacity-limited, capability-checked executor with a retry loop.

    ``execute`` performs the capacity and capability checks and the transition
    to IN_PROGRESS before its first suspension point, so concurrent dispatches
    to the same worker observe each other's in-flight items. Subclasses only
    implement ``perform_task``.
    """

    def __init__(  # noqa: PLR0913
        self,
        config: WorkerConfig,
        *,
        worker_type: WorkerType,
        capabilities: Iterable[Capability],
        completion: CompletionBackend | None = None,
        routing: FrozenRouting | None = None,
        completion_timeout_seconds: float = DEFAULT_COMPLETION_TIMEOUT_SECONDS,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.config = config
        self.type = worker_type
        self.capabilities = list(capabilities)
        self._completion = completion
        self._routing = routing
        self._completion_timeout_seconds = completion_timeout_seconds
        self._sleep = sleep
        self._current_tasks: dict[str, WorkItem] = {}

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def in_flight(self) -> int:
        """Number of tracked items currently IN_PROGRESS."""

        return sum(
            1 for item in self._current_tasks.values() if item.status is TaskStatus.IN_PROGRESS
        )

    def can_handle(self, task_type: TaskType) -> bool:
        return any(capability.supports(task_type) for capability in self.capabilities)

    def retry_delay_seconds(self, attempt: int) -> float:
        """Linear backoff delay awaited after failed ``attempt`` (1-based)."""

        return self.config.retry_base_seconds * attempt

    async def execute(self, item: WorkItem) -> Any:
        """Run ``item`` through the retry loop and return the produced output."""

        if self.in_flight >= self.config.max_concurrent_tasks:
            raise WorkerCapacityError(self.name, self.config.max_concurrent_tasks)
        if not self.can_handle(item.type):
            raise UnsupportedOperationError(self.name, item.type)

        item.transition_to(TaskStatus.IN_PROGRESS)
        item.assigned_worker = self.id
        self._current_tasks[item.id] = item
        started = time.monotonic()
        max_attempts = self.config.retry_attempts
        logger.info("%s started %s (%s)", self.name, item.id, item.type.value)

        for attempt in range(1, max_attempts + 1):
            item.attempts = attempt
            try:
                result = await self._run_attempt(item)
            except asyncio.CancelledError:
                self._cancel(item)
                raise
            except Exception as error:
                message = str(error) or type(error).__name__
                item.errors.append(message)
                logger.warning(
                    "%s attempt %d/%d failed for %s: %s",
                    self.name,
                    attempt,
                    max_attempts,
                    item.id,
                    sanitize_preview(message, max_chars=300),
                )
                if item.status is not TaskStatus.IN_PROGRESS:
                    raise
                if attempt >= max_attempts:
                    item.transition_to(TaskStatus.FAILED)
                    item.actual_duration_ms = _elapsed_ms(started)
                    logger.error(
                        "%s failed %s after %d attempts",
                        self.name,
                        item.id,
                        max_attempts,
                    )
                    raise
                try:
                    await self._sleep(self.retry_delay_seconds(attempt))
                except asyncio.CancelledError:
                    self._cancel(item)
                    raise
                if item.status is not TaskStatus.IN_PROGRESS:
                    raise
                continue

            if item.status is TaskStatus.IN_PROGRESS:
                item.transition_to(TaskStatus.COMPLETED)
                item.output = result
                item.actual_duration_ms = _elapsed_ms(started)
                logger.info(
                    "%s completed %s in %d ms",
                    self.name,
                    item.id,
                    item.actual_duration_ms,
                )
            return result

        raise AssertionError("unreachable")  # pragma: no cover

    def _cancel(self, item: WorkItem) -> None:
        if item.status is TaskStatus.IN_PROGRESS:
            item.transition_to(TaskStatus.CANCELLED)
            logger.info("%s cancelled %s on attempt %d", self.name, item.id, item.attempts)

    async def _run_attempt(self, item: WorkItem) -> Any:
        timeout = self.config.timeout_seconds
        if timeout is None:
            return await self.perform_task(item)
        try:
            return await asyncio.wait_for(self.perform_task(item), timeout=timeout)
        except TimeoutError as error:
            raise WorkItemTimeoutError(
                f"{item.type.value} timed out after {timeout:g}s",
            ) from error

    @abstractmethod
    async def perform_task(self, item: WorkItem) -> Any:
        """Perform one attempt of ``item``; raise to signal failure."""

    async def generate_response(
        self,
        system_prompt: str,
        user_prompt: str,
        context: dict[str, Any] | None = None,
    ) -> str:
        """Complete ``user_prompt`` with the worker's routed model."""

        if self._completion is None or self._routing is None:
            raise CompletionUnavailableError(f"Worker {self.name} has no completion backend")
        prompt = user_prompt
        if context:
            prompt = f"Context: {json.dumps(context, indent=2, default=str)}\n\n{user_prompt}"
        result = await self._completion.complete(
            CompletionRequest(
                system_prompt=system_prompt,
                user_prompt=prompt,
                agent=self._routing.agent,
                model=self.config.model,
                command_template=self._routing.command_template,
                timeout_seconds=self._completion_timeout_seconds,
            ),
        )
        return result.text

    async def stop(self) -> None:
        """Mark every in-flight item CANCELLED. Running attempts are not interrupted."""

        cancelled = 0
        for item in self._current_tasks.values():
            if item.status is TaskStatus.IN_PROGRESS:
                item.transition_to(TaskStatus.CANCELLED)
                cancelled += 1
        logger.info("%s stopped (%d items cancelled)", self.name, cancelled)

    def get_status(self) -> WorkerStatus:
        return WorkerStatus(
            id=self.id,
            name=self.name,
            type=self.type,
            capabilities=list(self.capabilities),
            current_tasks=list(self._current_tasks.values()),
            available_capacity=self.config.max_concurrent_tasks - self.in_flight,
        )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
