"""Requirement analysis of Jira issues."""

from __future__ import annotations

import logging
import re
from typing import Any

from frontend_agents.agents.common import ModelOutputError, capability, parse_json_object
from frontend_agents.agents.prompt_analyzer import (
    RequirementAnalysis,
    extract_components,
    extract_features,
    fallback_analysis,
    normalize_analysis,
)
from frontend_agents.integrations.jira import JiraClient, JiraTask
from frontend_agents.llm.sanitization import sanitize_preview
from frontend_agents.orchestrator.models import TaskType, WorkerConfig, WorkerType, WorkItem
from frontend_agents.orchestrator.worker import BaseWorker, UnsupportedOperationError

logger = logging.getLogger(__name__)

COMPLEX_ISSUE_TYPES = frozenset({"Epic", "Story", "New Feature"})
URGENT_PRIORITIES = frozenset({"High", "Highest", "Critical"})

TEXT_SECTIONS = {
    "technicalRequirements": "Technical Requirements",
    "uiRequirements": "UI/UX Requirements",
    "functionalRequirements": "Business Logic",
    "dataRequirements": "Data Requirements",
    "testingRequirements": "Testing Requirements",
    "dependencies": "Dependencies",
    "deliverables": "Deliverables",
    "suggestedFramework": "Framework Recommendations",
    "suggestedStyling": "Styling Approach",
    "complexity": "Complexity Assessment",
}

SYSTEM_PROMPT = (
    "You are an expert frontend development analyst converting Jira tickets into "
    "actionable development plans. Consider responsive design, accessibility, "
    "performance, and maintainability. Respond in valid JSON only."
)

ANALYSIS_PROMPT = """Analyze this Jira task.

Key: {key}
Summary: {summary}
Issue type: {issue_type}
Priority: {priority}
Labels: {labels}
Components: {components}

Description:
{description}

Acceptance criteria:
{criteria}

Figma links:
{figma_links}

Return a JSON object with "mainGoal", "technicalRequirements", "uiRequirements",
"functionalRequirements", "dataRequirements", "testingRequirements", "dependencies",
"deliverables", "suggestedFramework", "suggestedStyling", and "complexity"
("Simple", "Medium", or "Complex").
"""


def estimate_complexity(task: JiraTask) -> str:
    score = 0
    if task.issue_type in COMPLEX_ISSUE_TYPES:
        score += 2
    if task.priority in URGENT_PRIORITIES:
        score += 1
    if len(task.description) > 500:  # noqa: PLR2004
        score += 1
    if len(task.acceptance_criteria) > 3:  # noqa: PLR2004
        score += 1
    if len(task.figma_links) > 2:  # noqa: PLR2004
        score += 1
    if len(task.components) > 2:  # noqa: PLR2004
        score += 1

    if score <= 2:  # noqa: PLR2004
        return "Simple"
    if score <= 4:  # noqa: PLR2004
        return "Medium"
    return "Complex"


def recommend_approach(task: JiraTask) -> list[str]:
    recommendations: list[str] = []
    if task.issue_type == "Bug":
        recommendations += [
            "Focus on debugging and testing existing functionality",
            "Implement comprehensive test coverage for the fix",
        ]
    elif task.issue_type in {"Story", "New Feature"}:
        recommendations += [
            "Start with component design and mockups",
            "Implement modular, reusable components",
            "Consider responsive design from the beginning",
        ]
    if task.figma_links:
        recommendations += [
            "Extract design tokens from Figma designs",
            "Implement pixel-perfect UI matching the designs",
        ]
    if "Frontend" in task.components:
        recommendations += [
            "Use modern frontend framework (React/Vue/Angular)",
            "Implement state management if needed",
        ]
    if task.priority in URGENT_PRIORITIES:
        recommendations += [
            "Prioritize core functionality over advanced features",
            "Implement thorough error handling",
        ]
    return recommendations or [
        "Follow established coding standards and patterns",
        "Write comprehensive tests",
        "Document all public APIs and components",
    ]


def extract_sections(text: str) -> dict[str, Any]:
    """Pull ``Heading: body`` sections out of a free-text model answer."""

    sections: dict[str, Any] = {}
    for key, heading in TEXT_SECTIONS.items():
        match = re.search(
            rf"{re.escape(heading)}:?\s*([\s\S]*?)(?=\n\n|\n[A-Z]|$)",
            text,
            re.IGNORECASE,
        )
        if not match or not match.group(1).strip():
            continue
        body = match.group(1).strip()
        if key in {"suggestedFramework", "suggestedStyling", "complexity"}:
            sections[key] = body.split()[0].strip("*.,") if body else body
        else:
            sections[key] = [line.strip("-* ").strip() for line in body.splitlines() if line]
    return sections


class JiraAnalyzerWorker(BaseWorker):
    """Fetch a Jira issue and turn it into structured requirements."""

    def __init__(self, config: WorkerConfig, jira: JiraClient, **kwargs: Any) -> None:
        super().__init__(
            config,
            worker_type=WorkerType.JIRA_ANALYZER,
            capabilities=[
                capability(
                    "jira_analysis",
                    "Fetch Jira issues and extract requirements and design links",
                    TaskType.ANALYZE_JIRA_TASK,
                    services=("jira", "llm"),
                ),
            ],
            **kwargs,
        )
        self.jira = jira

    async def perform_task(self, item: WorkItem) -> dict[str, Any]:
        if item.type is not TaskType.ANALYZE_JIRA_TASK:
            raise UnsupportedOperationError(self.name, item.type)
        task_key = item.input.get("task_key")
        if not isinstance(task_key, str) or not task_key.strip():
            raise ValueError("task_key is required and must be a non-empty string")

        task = await self.jira.get_task(task_key.strip())
        analysis, raw_sections = await self._analyze(task)
        complexity = estimate_complexity(task)
        components = list(task.components) or extract_components(analysis)
        logger.info("Jira task %s analyzed: complexity=%s", task.key, complexity)
        return {
            "jira_task": task.to_dict(),
            "analysis": {**raw_sections, **analysis.to_dict()},
            "figma_links": list(task.figma_links),
            "acceptance_criteria": list(task.acceptance_criteria),
            "estimated_complexity": complexity,
            "recommended_approach": recommend_approach(task),
            "components": components,
            "features": extract_features(analysis),
        }

    async def _analyze(self, task: JiraTask) -> tuple[RequirementAnalysis, dict[str, Any]]:
        try:
            response = await self.generate_response(
                SYSTEM_PROMPT,
                ANALYSIS_PROMPT.format(
                    key=task.key,
                    summary=task.summary,
                    issue_type=task.issue_type,
                    priority=task.priority,
                    labels=", ".join(task.labels) or "none",
                    components=", ".join(task.components) or "none",
                    description=task.description or "No description",
                    criteria="\n".join(task.acceptance_criteria) or "None specified",
                    figma_links="\n".join(task.figma_links) or "None provided",
                ),
                context={"key": task.key, "issue_type": task.issue_type},
            )
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "Model analysis unavailable for %s, using keyword analysis: %s",
                task.key,
                sanitize_preview(str(error), max_chars=200),
            )
            return fallback_analysis(f"{task.summary}\n{task.description}"), {}

        try:
            payload = parse_json_object(response)
        except ModelOutputError:
            payload = extract_sections(response)
            if not payload:
                return fallback_analysis(f"{task.summary}\n{task.description}"), {
                    "raw_analysis": sanitize_preview(response),
                }
        payload.setdefault("mainGoal", task.summary)
        extras = {
            key: value
            for key, value in payload.items()
            if key
            in {"dataRequirements", "testingRequirements", "dependencies", "deliverables"}
        }
        return normalize_analysis(payload), extras
