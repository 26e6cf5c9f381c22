from __future__ import annotations

import asyncio
import uuid

import allure
import pytest

from conftest import SleepRecorder
from frontend_agents.orchestrator.coordinator import (
    CoordinatorWorker,
    WorkflowDeadlockError,
    WorkflowStepError,
)
from frontend_agents.orchestrator.models import (
    Capability,
    TaskStatus,
    TaskType,
    WorkerConfig,
    WorkerType,
    WorkflowStep,
    WorkItem,
)
from frontend_agents.orchestrator.worker import BaseWorker
from frontend_agents.orchestrator.workflow import (
    CREATE_PULL_REQUEST,
    CREATE_TESTS,
    STEP_TASK_TYPES,
    VISUAL_QA_TESTING,
    build_prompt_workflow,
)

pytestmark = [
    allure.epic("Workflow Scheduler"),
    allure.feature("Frontier Dispatch"),
]

_WORKER_TASK_TYPES = {
    WorkerType.PROMPT_ANALYZER: (TaskType.ANALYZE_PROMPT,),
    WorkerType.JIRA_ANALYZER: (TaskType.ANALYZE_JIRA_TASK,),
    WorkerType.FIGMA_DESIGNER: (TaskType.EXTRACT_FIGMA_DESIGN,),
    WorkerType.CODE_GENERATOR: (TaskType.GENERATE_CODE, TaskType.CREATE_TESTS),
    WorkerType.QA_TESTER: (TaskType.CREATE_TESTS,),
    WorkerType.GITHUB_MANAGER: (TaskType.CREATE_PULL_REQUEST,),
}


class StubWorker(BaseWorker):
    """Echoes its input and records start/end events into a shared trace."""

    def __init__(  # noqa: PLR0913
        self,
        worker_type: WorkerType,
        trace: list[tuple[str, str]],
        *,
        handler=None,
        retry_attempts: int = 1,
        max_concurrent_tasks: int = 2,
        sleep=None,
    ) -> None:
        super().__init__(
            WorkerConfig(
                id=f"{worker_type.value}-stub",
                name=f"{worker_type.value} stub",
                model="stub",
                max_concurrent_tasks=max_concurrent_tasks,
                retry_attempts=retry_attempts,
            ),
            worker_type=worker_type,
            capabilities=[
                Capability(
                    name=worker_type.value,
                    description="stub",
                    supported_operations=frozenset(_WORKER_TASK_TYPES[worker_type]),
                ),
            ],
            **({"sleep": sleep} if sleep is not None else {}),
        )
        self.trace = trace
        self.handler = handler
        self.calls = 0

    async def perform_task(self, item: WorkItem):
        self.calls += 1
        self.trace.append(("start", item.description))
        await asyncio.sleep(0)
        if self.handler is not None:
            result = self.handler(item, self.calls)
        else:
            result = {"step": item.description, "input": item.input}
        self.trace.append(("end", item.description))
        return result


def _coordinator(step_task_types=None) -> CoordinatorWorker:
    return CoordinatorWorker(
        WorkerConfig(id="main", name="Main Coordinator", model="stub", retry_attempts=1),
        step_task_types=step_task_types,
    )


def _register_all(coordinator: CoordinatorWorker, trace, overrides=None) -> None:
    overrides = overrides or {}
    for worker_type in _WORKER_TASK_TYPES:
        worker = overrides.get(worker_type) or StubWorker(worker_type, trace)
        coordinator.register_agent(worker)


def _step(name: str, worker_type: WorkerType, dependencies=()) -> WorkflowStep:
    return WorkflowStep(
        id=uuid.uuid4().hex,
        name=name,
        worker_type=worker_type,
        dependencies=list(dependencies),
    )


def _index(trace, event: str, name: str) -> int:
    return trace.index((event, name))


def _fail(message: str):
    def _handler(item: WorkItem, calls: int):
        raise RuntimeError(message)

    return _handler


_DIAMOND_TYPES = {
    "Root": TaskType.ANALYZE_PROMPT,
    "Left": TaskType.EXTRACT_FIGMA_DESIGN,
    "Right": TaskType.GENERATE_CODE,
    "Join": TaskType.CREATE_PULL_REQUEST,
}


def _diamond() -> list[WorkflowStep]:
    return [
        _step("Root", WorkerType.PROMPT_ANALYZER),
        _step("Left", WorkerType.FIGMA_DESIGNER, ["Root"]),
        _step("Right", WorkerType.CODE_GENERATOR, ["Root"]),
        _step("Join", WorkerType.GITHUB_MANAGER, ["Left", "Right"]),
    ]


@pytest.mark.asyncio
async def test_prompt_workflow_dispatches_steps_only_after_dependencies() -> None:
    trace: list[tuple[str, str]] = []
    coordinator = _coordinator()
    _register_all(coordinator, trace)

    results = await coordinator.process_prompts(["Build a login form"])

    assert [result.status for result in results] == ["completed"]
    for step in build_prompt_workflow("x"):
        for dependency in step.dependencies:
            assert _index(trace, "end", dependency) < _index(trace, "start", step.name)
    assert all(step.status is TaskStatus.COMPLETED for step in results[0].steps)
    assert coordinator.active_runs == {}


@pytest.mark.asyncio
async def test_ready_steps_dispatch_together_before_dependents() -> None:
    trace: list[tuple[str, str]] = []
    coordinator = _coordinator(_DIAMOND_TYPES)
    _register_all(coordinator, trace)

    await coordinator.execute_workflow_steps("run-1", _diamond())

    both_started = max(_index(trace, "start", "Left"), _index(trace, "start", "Right"))
    first_finished = min(_index(trace, "end", "Left"), _index(trace, "end", "Right"))
    assert both_started < first_finished
    assert _index(trace, "start", "Join") > max(
        _index(trace, "end", "Left"),
        _index(trace, "end", "Right"),
    )


@pytest.mark.asyncio
async def test_failed_frontier_aborts_run_and_settles_siblings() -> None:
    trace: list[tuple[str, str]] = []
    coordinator = _coordinator(_DIAMOND_TYPES)
    _register_all(
        coordinator,
        trace,
        overrides={
            WorkerType.FIGMA_DESIGNER: StubWorker(
                WorkerType.FIGMA_DESIGNER,
                trace,
                handler=_fail("bad design"),
            ),
        },
    )
    steps = _diamond()

    with pytest.raises(WorkflowStepError, match="Step 'Left' failed: bad design"):
        await coordinator.execute_workflow_steps("run-1", steps)

    by_name = {step.name: step for step in steps}
    assert by_name["Left"].status is TaskStatus.FAILED
    assert by_name["Left"].error == "bad design"
    assert by_name["Right"].status is TaskStatus.COMPLETED
    assert by_name["Join"].status is TaskStatus.PENDING
    assert ("start", "Join") not in trace
    assert coordinator.active_runs == {}


@pytest.mark.asyncio
async def test_unknown_dependency_is_reported_as_deadlock() -> None:
    trace: list[tuple[str, str]] = []
    coordinator = _coordinator(_DIAMOND_TYPES)
    _register_all(coordinator, trace)
    steps = [
        _step("Root", WorkerType.PROMPT_ANALYZER),
        _step("Join", WorkerType.GITHUB_MANAGER, ["Root", "Missing"]),
    ]

    with pytest.raises(WorkflowDeadlockError, match="no steps ready to execute") as error:
        await coordinator.execute_workflow_steps("run-1", steps)

    assert error.value.pending == ("Join",)
    assert steps[0].status is TaskStatus.COMPLETED
    assert steps[1].status is TaskStatus.PENDING
    assert coordinator.active_runs == {}


@pytest.mark.asyncio
async def test_chain_merges_dependency_outputs_under_enrichment_keys() -> None:
    trace: list[tuple[str, str]] = []
    coordinator = _coordinator(
        {
            "A": TaskType.ANALYZE_PROMPT,
            "B": TaskType.EXTRACT_FIGMA_DESIGN,
            "C": TaskType.GENERATE_CODE,
        },
    )
    _register_all(coordinator, trace)
    steps = [
        _step("A", WorkerType.PROMPT_ANALYZER),
        _step("B", WorkerType.FIGMA_DESIGNER, ["A"]),
        _step("C", WorkerType.CODE_GENERATOR, ["B"]),
    ]
    steps[0].input = {"prompt": "hello"}

    await coordinator.execute_workflow_steps("run-1", steps)

    output = steps[2].output
    assert output["step"] == "C"
    assert output["input"]["b"]["step"] == "B"
    assert output["input"]["b"]["input"]["a"] == {"step": "A", "input": {"prompt": "hello"}}
    assert [step.status for step in steps] == [TaskStatus.COMPLETED] * 3


@pytest.mark.asyncio
async def test_step_succeeding_on_third_attempt_records_retry_count(sleeps: SleepRecorder) -> None:
    trace: list[tuple[str, str]] = []

    def _flaky(item: WorkItem, calls: int):
        if calls < 3:
            raise RuntimeError(f"flaky {calls}")
        return {"design": "ok"}

    coordinator = _coordinator()
    _register_all(
        coordinator,
        trace,
        overrides={
            WorkerType.FIGMA_DESIGNER: StubWorker(
                WorkerType.FIGMA_DESIGNER,
                trace,
                handler=_flaky,
                retry_attempts=3,
                sleep=sleeps,
            ),
        },
    )

    results = await coordinator.process_prompts(["Build a card"])

    result = results[0]
    assert result.succeeded
    design_step = next(step for step in result.steps if step.name == "Extract Figma Design")
    assert design_step.retry_count == 2
    assert design_step.status is TaskStatus.COMPLETED
    assert sleeps.delays == [1.0, 2.0]
    assert result.outputs["Extract Figma Design"] == {"design": "ok"}


@pytest.mark.asyncio
async def test_exhausted_step_fails_run_and_dependents_never_start(sleeps: SleepRecorder) -> None:
    trace: list[tuple[str, str]] = []
    qa = StubWorker(
        WorkerType.QA_TESTER,
        trace,
        handler=_fail("screenshots differ"),
        retry_attempts=3,
        sleep=sleeps,
    )
    coordinator = _coordinator()
    _register_all(coordinator, trace, overrides={WorkerType.QA_TESTER: qa})

    results = await coordinator.process_prompts(["Build a navbar"])

    result = results[0]
    assert result.status == "failed"
    assert f"Step '{VISUAL_QA_TESTING}' failed" in (result.error or "")
    assert result.outputs == {}
    assert qa.calls == 3
    statuses = {step.name: step.status for step in result.steps}
    assert statuses[VISUAL_QA_TESTING] is TaskStatus.FAILED
    assert statuses[CREATE_TESTS] is TaskStatus.PENDING
    assert statuses[CREATE_PULL_REQUEST] is TaskStatus.PENDING
    assert ("start", CREATE_TESTS) not in trace
    assert ("start", CREATE_PULL_REQUEST) not in trace


@pytest.mark.asyncio
async def test_batch_isolates_failure_of_one_input() -> None:
    trace: list[tuple[str, str]] = []

    def _analyze(item: WorkItem, calls: int):
        if item.input["prompt"] == "second":
            raise RuntimeError("cannot analyze")
        return {"prompt_task": item.input["prompt"]}

    coordinator = _coordinator()
    _register_all(
        coordinator,
        trace,
        overrides={
            WorkerType.PROMPT_ANALYZER: StubWorker(
                WorkerType.PROMPT_ANALYZER,
                trace,
                handler=_analyze,
            ),
        },
    )

    results = await coordinator.process_prompts(["first", "second", "third"])

    assert [result.source for result in results] == ["first", "second", "third"]
    assert [result.status for result in results] == ["completed", "failed", "completed"]
    assert "cannot analyze" in (results[1].error or "")
    assert results[0].outputs["Analyze Prompt"] == {"prompt_task": "first"}
    assert results[2].outputs["Analyze Prompt"] == {"prompt_task": "third"}
    assert CREATE_PULL_REQUEST in results[2].outputs


@pytest.mark.asyncio
async def test_missing_worker_fails_the_run() -> None:
    trace: list[tuple[str, str]] = []
    coordinator = _coordinator()
    for worker_type in _WORKER_TASK_TYPES:
        if worker_type is not WorkerType.GITHUB_MANAGER:
            coordinator.register_agent(StubWorker(worker_type, trace))

    results = await coordinator.process_prompts(["Build a footer"])

    assert results[0].status == "failed"
    assert "No agent registered for type: github_manager" in (results[0].error or "")


@pytest.mark.asyncio
async def test_jira_workflow_without_jira_worker_fails_per_input() -> None:
    trace: list[tuple[str, str]] = []
    coordinator = _coordinator()
    for worker_type in _WORKER_TASK_TYPES:
        if worker_type is not WorkerType.JIRA_ANALYZER:
            coordinator.register_agent(StubWorker(worker_type, trace))

    results = await coordinator.process_jira_tasks(["WEB-1", "WEB-2"])

    assert [result.status for result in results] == ["failed", "failed"]
    assert all("jira_analyzer" in (result.error or "") for result in results)


@pytest.mark.asyncio
async def test_missing_worker_raises_from_step_dispatch() -> None:
    coordinator = _coordinator(_DIAMOND_TYPES)

    with pytest.raises(WorkflowStepError, match="No agent registered for type: prompt_analyzer"):
        await coordinator.execute_workflow_steps(
            "run-1",
            [_step("Root", WorkerType.PROMPT_ANALYZER)],
        )


@pytest.mark.asyncio
async def test_unknown_step_name_fails_the_step() -> None:
    trace: list[tuple[str, str]] = []
    coordinator = _coordinator()
    _register_all(coordinator, trace)

    with pytest.raises(WorkflowStepError, match="Unknown workflow step"):
        await coordinator.execute_workflow_steps(
            "run-1",
            [_step("Deploy Preview", WorkerType.PROMPT_ANALYZER)],
        )


def test_enrich_step_input_copies_dependency_outputs() -> None:
    coordinator = _coordinator()
    steps = build_prompt_workflow("hello")
    steps[0].output = {"analysis": "done"}
    steps[1].output = {"designs": []}
    coordinator.active_runs["run-1"] = steps

    enriched = coordinator.enrich_step_input("run-1", steps[2])

    assert enriched == {
        "analyze_prompt": {"analysis": "done"},
        "extract_figma_design": {"designs": []},
    }
    assert steps[2].input == {}


def test_map_step_to_task_type_uses_fixed_lookup() -> None:
    coordinator = _coordinator()

    assert coordinator.map_step_to_task_type(VISUAL_QA_TESTING) is TaskType.CREATE_TESTS
    mapped = {name: coordinator.map_step_to_task_type(name) for name in STEP_TASK_TYPES}
    assert mapped == STEP_TASK_TYPES


def test_register_agent_replaces_worker_of_same_type() -> None:
    trace: list[tuple[str, str]] = []
    coordinator = _coordinator()
    first = StubWorker(WorkerType.QA_TESTER, trace)
    second = StubWorker(WorkerType.QA_TESTER, trace)

    coordinator.register_agent(first)
    coordinator.register_agent(second)

    assert coordinator.workers == {WorkerType.QA_TESTER: second}


@pytest.mark.asyncio
async def test_get_agents_status_counts_active_workflows() -> None:
    trace: list[tuple[str, str]] = []
    coordinator = _coordinator()
    observed: list[int] = []

    def _analyze(item: WorkItem, calls: int):
        observed.append(coordinator.get_agents_status()["active_workflows"])
        return {"ok": True}

    _register_all(
        coordinator,
        trace,
        overrides={
            WorkerType.PROMPT_ANALYZER: StubWorker(
                WorkerType.PROMPT_ANALYZER,
                trace,
                handler=_analyze,
            ),
        },
    )

    await coordinator.process_prompts(["one"])
    status = coordinator.get_agents_status()

    assert observed == [1]
    assert status["active_workflows"] == 0
    assert status["coordinator"].name == "Main Coordinator"
    assert set(status["agents"]) == set(_WORKER_TASK_TYPES)
    assert status["agents"][WorkerType.GITHUB_MANAGER].available_capacity == 2


@pytest.mark.asyncio
async def test_coordinator_runs_prompt_batch_as_work_item() -> None:
    trace: list[tuple[str, str]] = []
    coordinator = _coordinator()
    _register_all(coordinator, trace)
    item = WorkItem(
        id="batch-1",
        type=TaskType.ANALYZE_PROMPT,
        description="batch",
        input={"prompts": ["one", "two"]},
    )

    results = await coordinator.execute(item)

    assert [result.status for result in results] == ["completed", "completed"]
    assert item.status is TaskStatus.COMPLETED


@pytest.mark.asyncio
async def test_stop_cancels_workers_and_coordinator() -> None:
    trace: list[tuple[str, str]] = []
    coordinator = _coordinator()
    gate = asyncio.Event()

    class _Blocking(StubWorker):
        async def perform_task(self, item: WorkItem):
            await gate.wait()
            return {}

    blocking = _Blocking(WorkerType.PROMPT_ANALYZER, trace)
    _register_all(coordinator, trace, overrides={WorkerType.PROMPT_ANALYZER: blocking})

    running = asyncio.create_task(coordinator.process_prompts(["one"]))
    for _ in range(5):
        await asyncio.sleep(0)
    assert blocking.in_flight == 1

    await coordinator.stop()
    assert blocking.in_flight == 0
    gate.set()
    results = await running

    assert len(results) == 1
    assert results[0].succeeded
