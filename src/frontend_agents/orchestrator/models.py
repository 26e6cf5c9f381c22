"""Domain models for workers, work items, and workflow runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


def utc_now() -> datetime:
    """Current UTC timestamp."""

    return datetime.now(tz=UTC)


class WorkerType(str, Enum):
    """Registry key of a worker kind. One worker per type per coordinator."""

    MAIN_COORDINATOR = "main_coordinator"
    PROMPT_ANALYZER = "prompt_analyzer"
    JIRA_ANALYZER = "jira_analyzer"
    FIGMA_DESIGNER = "figma_designer"
    CODE_GENERATOR = "code_generator"
    GITHUB_MANAGER = "github_manager"
    QA_TESTER = "qa_tester"


class TaskType(str, Enum):
    """Operation tags a worker can be asked to perform."""

    ANALYZE_PROMPT = "analyze_prompt"
    ANALYZE_JIRA_TASK = "analyze_jira_task"
    EXTRACT_FIGMA_DESIGN = "extract_figma_design"
    GENERATE_CODE = "generate_code"
    CREATE_TESTS = "create_tests"
    CREATE_PULL_REQUEST = "create_pull_request"
    REVIEW_CODE = "review_code"
    UPDATE_DOCUMENTATION = "update_documentation"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TaskStatus(str, Enum):
    """Lifecycle states shared by work items and workflow steps."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED})

_ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.IN_PROGRESS: TERMINAL_STATUSES,
}


class InvalidStatusTransitionError(RuntimeError):
    """Raised when a work item is moved backwards or out of a terminal state."""

    def __init__(self, item_id: str, current: TaskStatus, target: TaskStatus) -> None:
        super().__init__(
            f"Work item {item_id} cannot move from {current.value} to {target.value}",
        )
        self.item_id = item_id
        self.current = current
        self.target = target


@dataclass(slots=True, frozen=True)
class Capability:
    """Named set of operations a worker supports."""

    name: str
    description: str
    supported_operations: frozenset[TaskType]
    required_services: tuple[str, ...] = ()

    def supports(self, task_type: TaskType) -> bool:
        return task_type in self.supported_operations


@dataclass(slots=True)
class WorkItem:
    """One request for a worker to perform an operation.

    Only ``status``, ``output``, ``errors`` and the bookkeeping fields change
    after construction. Status follows PENDING -> IN_PROGRESS -> terminal.
    """

    id: str
    type: TaskType
    description: str
    priority: TaskPriority = TaskPriority.MEDIUM
    dependencies: list[str] = field(default_factory=list)
    input: dict[str, Any] = field(default_factory=dict)
    output: Any = None
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    errors: list[str] = field(default_factory=list)
    assigned_worker: str | None = None
    attempts: int = 0
    actual_duration_ms: int | None = None

    @property
    def retry_count(self) -> int:
        """Number of failed attempts recorded so far."""

        return len(self.errors)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition_to(self, status: TaskStatus) -> None:
        allowed = _ALLOWED_TRANSITIONS.get(self.status, frozenset())
        if status not in allowed:
            raise InvalidStatusTransitionError(self.id, self.status, status)
        self.status = status
        self.updated_at = utc_now()


@dataclass(slots=True)
class WorkflowStep:
    """Node in a per-run dependency graph; ``name`` is the dependency key."""

    id: str
    name: str
    worker_type: WorkerType
    dependencies: list[str] = field(default_factory=list)
    input: dict[str, Any] = field(default_factory=dict)
    output: Any = None
    status: TaskStatus = TaskStatus.PENDING
    retry_count: int = 0
    error: str | None = None


@dataclass(slots=True)
class WorkflowRun:
    """One execution of a step graph for a single input."""

    run_id: str
    kind: str
    source: str
    steps: list[WorkflowStep] = field(default_factory=list)


@dataclass(slots=True)
class WorkerConfig:
    """Construction parameters shared by all workers."""

    id: str
    name: str
    model: str
    max_concurrent_tasks: int = 2
    retry_attempts: int = 3
    timeout_seconds: float | None = None
    retry_base_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.max_concurrent_tasks < 1:
            raise ValueError("max_concurrent_tasks must be >= 1.")
        if self.retry_attempts < 1:
            raise ValueError("retry_attempts must be >= 1.")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0 when set.")


@dataclass(slots=True)
class WorkerStatus:
    """Snapshot returned by ``BaseWorker.get_status``."""

    id: str
    name: str
    type: WorkerType
    capabilities: list[Capability]
    current_tasks: list[WorkItem]
    available_capacity: int

    @property
    def in_flight(self) -> int:
        return sum(1 for item in self.current_tasks if item.status is TaskStatus.IN_PROGRESS)


@dataclass(slots=True)
class StepResult:
    """Outcome of a single workflow step."""

    name: str
    status: TaskStatus
    retry_count: int = 0
    error: str | None = None


@dataclass(slots=True)
class WorkflowRunResult:
    """Outcome of one input processed by a batch driver."""

    run_id: str
    kind: str
    source: str
    steps: list[StepResult] = field(default_factory=list)
    outputs: dict[str, Any] = field(default_factory=dict)
    status: str = "running"
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "completed"
