"""Fixed workflow graphs and the step name lookups used by the coordinator."""

from __future__ import annotations

import re
import uuid

from frontend_agents.orchestrator.models import TaskType, WorkerType, WorkflowStep

ANALYZE_PROMPT = "Analyze Prompt"
ANALYZE_JIRA_TASK = "Analyze Jira Task"
EXTRACT_FIGMA_DESIGN = "Extract Figma Design"
GENERATE_CODE = "Generate Code"
VISUAL_QA_TESTING = "Visual QA Testing"
CREATE_TESTS = "Create Tests"
CREATE_PULL_REQUEST = "Create Pull Request"

STEP_TASK_TYPES: dict[str, TaskType] = {
    ANALYZE_PROMPT: TaskType.ANALYZE_PROMPT,
    ANALYZE_JIRA_TASK: TaskType.ANALYZE_JIRA_TASK,
    EXTRACT_FIGMA_DESIGN: TaskType.EXTRACT_FIGMA_DESIGN,
    GENERATE_CODE: TaskType.GENERATE_CODE,
    VISUAL_QA_TESTING: TaskType.CREATE_TESTS,
    CREATE_TESTS: TaskType.CREATE_TESTS,
    CREATE_PULL_REQUEST: TaskType.CREATE_PULL_REQUEST,
}

_WHITESPACE = re.compile(r"\s+")


class UnknownWorkflowStepError(RuntimeError):
    """Step name has no entry in the step -> task type lookup."""

    def __init__(self, step_name: str) -> None:
        super().__init__(f"Unknown workflow step: {step_name!r}")
        self.step_name = step_name


def map_step_to_task_type(
    step_name: str,
    lookup: dict[str, TaskType] | None = None,
) -> TaskType:
    table = STEP_TASK_TYPES if lookup is None else lookup
    try:
        return table[step_name]
    except KeyError as error:
        raise UnknownWorkflowStepError(step_name) from error


def step_output_key(step_name: str) -> str:
    """Key under which a dependency's output is merged into a dependent's input.

    >>> step_output_key("Extract Figma Design")
    'extract_figma_design'
    """

    return _WHITESPACE.sub("_", step_name).lower()


def build_prompt_workflow(prompt: str) -> list[WorkflowStep]:
    return _build_workflow(
        first_step=ANALYZE_PROMPT,
        first_worker=WorkerType.PROMPT_ANALYZER,
        first_input={"prompt": prompt},
    )


def build_jira_workflow(task_key: str) -> list[WorkflowStep]:
    return _build_workflow(
        first_step=ANALYZE_JIRA_TASK,
        first_worker=WorkerType.JIRA_ANALYZER,
        first_input={"task_key": task_key},
    )


def _build_workflow(
    *,
    first_step: str,
    first_worker: WorkerType,
    first_input: dict[str, str],
) -> list[WorkflowStep]:
    return [
        _step(first_step, first_worker, [], first_input),
        _step(EXTRACT_FIGMA_DESIGN, WorkerType.FIGMA_DESIGNER, [first_step]),
        _step(GENERATE_CODE, WorkerType.CODE_GENERATOR, [first_step, EXTRACT_FIGMA_DESIGN]),
        _step(VISUAL_QA_TESTING, WorkerType.QA_TESTER, [GENERATE_CODE, EXTRACT_FIGMA_DESIGN]),
        _step(CREATE_TESTS, WorkerType.CODE_GENERATOR, [VISUAL_QA_TESTING]),
        _step(
            CREATE_PULL_REQUEST,
            WorkerType.GITHUB_MANAGER,
            [GENERATE_CODE, CREATE_TESTS, VISUAL_QA_TESTING],
        ),
    ]


def _step(
    name: str,
    worker_type: WorkerType,
    dependencies: list[str],
    step_input: dict[str, str] | None = None,
) -> WorkflowStep:
    return WorkflowStep(
        id=uuid.uuid4().hex,
        name=name,
        worker_type=worker_type,
        dependencies=list(dependencies),
        input=dict(step_input or {}),
    )
