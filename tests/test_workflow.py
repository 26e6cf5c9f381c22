from __future__ import annotations

import allure
import pytest

from frontend_agents.orchestrator.models import TaskStatus, TaskType, WorkerType
from frontend_agents.orchestrator.workflow import (
    UnknownWorkflowStepError,
    build_jira_workflow,
    build_prompt_workflow,
    map_step_to_task_type,
    step_output_key,
)

pytestmark = [
    allure.epic("Workflow Scheduler"),
    allure.feature("Step Graphs"),
]


def test_prompt_workflow_graph_shape() -> None:
    steps = build_prompt_workflow("Build a pricing page")

    assert [(step.name, step.worker_type, step.dependencies) for step in steps] == [
        ("Analyze Prompt", WorkerType.PROMPT_ANALYZER, []),
        ("Extract Figma Design", WorkerType.FIGMA_DESIGNER, ["Analyze Prompt"]),
        ("Generate Code", WorkerType.CODE_GENERATOR, ["Analyze Prompt", "Extract Figma Design"]),
        ("Visual QA Testing", WorkerType.QA_TESTER, ["Generate Code", "Extract Figma Design"]),
        ("Create Tests", WorkerType.CODE_GENERATOR, ["Visual QA Testing"]),
        (
            "Create Pull Request",
            WorkerType.GITHUB_MANAGER,
            ["Generate Code", "Create Tests", "Visual QA Testing"],
        ),
    ]
    assert steps[0].input == {"prompt": "Build a pricing page"}
    assert all(step.input == {} for step in steps[1:])
    assert all(step.status is TaskStatus.PENDING for step in steps)


def test_jira_workflow_differs_only_in_first_step() -> None:
    prompt_steps = build_prompt_workflow("x")
    jira_steps = build_jira_workflow("WEB-42")

    assert jira_steps[0].name == "Analyze Jira Task"
    assert jira_steps[0].worker_type is WorkerType.JIRA_ANALYZER
    assert jira_steps[0].input == {"task_key": "WEB-42"}
    assert jira_steps[1].dependencies == ["Analyze Jira Task"]
    assert [step.name for step in jira_steps[2:]] == [step.name for step in prompt_steps[2:]]


def test_step_ids_are_unique_per_build() -> None:
    ids = [step.id for step in build_prompt_workflow("a") + build_prompt_workflow("a")]

    assert len(set(ids)) == len(ids)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Analyze Prompt", TaskType.ANALYZE_PROMPT),
        ("Analyze Jira Task", TaskType.ANALYZE_JIRA_TASK),
        ("Extract Figma Design", TaskType.EXTRACT_FIGMA_DESIGN),
        ("Generate Code", TaskType.GENERATE_CODE),
        ("Visual QA Testing", TaskType.CREATE_TESTS),
        ("Create Tests", TaskType.CREATE_TESTS),
        ("Create Pull Request", TaskType.CREATE_PULL_REQUEST),
    ],
)
def test_map_step_to_task_type(name: str, expected: TaskType) -> None:
    assert map_step_to_task_type(name) is expected


def test_map_step_to_task_type_rejects_unknown_name() -> None:
    with pytest.raises(UnknownWorkflowStepError, match="Review Copy"):
        map_step_to_task_type("Review Copy")


def test_step_output_key_collapses_whitespace() -> None:
    assert step_output_key("Visual QA Testing") == "visual_qa_testing"
    assert step_output_key("Create  Pull\tRequest") == "create_pull_request"
