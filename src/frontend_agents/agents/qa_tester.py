"""Quality comparison of generated components against extracted designs."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from frontend_agents.agents.common import (
    ModelOutputError,
    capability,
    dependency_output,
    kebab_case,
    parse_json_array,
    pascal_case,
)
from frontend_agents.llm.sanitization import sanitize_preview
from frontend_agents.orchestrator.models import TaskType, WorkerConfig, WorkerType, WorkItem
from frontend_agents.orchestrator.worker import BaseWorker, UnsupportedOperationError

logger = logging.getLogger(__name__)

PASS_SIMILARITY = 95.0
SIMILARITY_WEIGHT = 0.6
PASS_RATE_WEIGHT = 0.4

SEVERITIES = ("critical", "major", "minor")
CATEGORIES = ("layout", "color", "typography", "spacing", "accessibility")

SYSTEM_PROMPT = (
    "You compare frontend component code with design specifications and report "
    "visual differences as a JSON array."
)


@dataclass(slots=True)
class QAIssue:
    type: str
    severity: str
    description: str
    expected: str = ""
    actual: str = ""
    suggestion: str = ""


@dataclass(slots=True)
class VisualTestResult:
    component_name: str
    passed: bool
    similarity: float
    file_path: str | None = None
    issues: list[QAIssue] = field(default_factory=list)


def normalize_issue(raw: Any) -> QAIssue | None:
    if not isinstance(raw, dict):
        return None
    severity = str(raw.get("severity", "minor")).lower()
    category = str(raw.get("type") or raw.get("category") or "layout").lower()
    return QAIssue(
        type=category if category in CATEGORIES else "layout",
        severity=severity if severity in SEVERITIES else "minor",
        description=str(raw.get("description") or "Visual difference"),
        expected=str(raw.get("expected") or ""),
        actual=str(raw.get("actual") or ""),
        suggestion=str(raw.get("suggestion") or ""),
    )


def find_component_file(design_name: str, files: list[dict[str, Any]]) -> dict[str, Any] | None:
    """First generated file whose path mentions the design name in any common casing."""

    needles = {design_name.lower(), pascal_case(design_name).lower(), kebab_case(design_name)}
    for generated in files:
        path = str(generated.get("path", "")).lower()
        if any(needle and needle in path for needle in needles):
            return generated
    return None


def calculate_similarity(specifications: list[dict[str, Any]], content: str) -> float:
    """Percentage of specification values that appear in the component source."""

    if not specifications:
        return 100.0
    code = content.lower()
    matches = sum(1 for spec in specifications if str(spec.get("value", "")).lower() in code)
    return matches / len(specifications) * 100


def calculate_score(results: list[VisualTestResult]) -> int:
    if not results:
        return 100
    average = sum(result.similarity for result in results) / len(results)
    pass_rate = sum(1 for result in results if result.passed) / len(results) * 100
    return round(average * SIMILARITY_WEIGHT + pass_rate * PASS_RATE_WEIGHT)


def build_recommendations(results: list[VisualTestResult]) -> list[str]:
    recommendations: list[str] = []
    failed = [result for result in results if not result.passed]
    if failed:
        recommendations.append(f"{len(failed)} components failed visual testing")
    issues = [issue for result in results for issue in result.issues]
    if any(issue.type == "color" for issue in issues):
        recommendations.append("Color mismatches detected - review design tokens")
    if any(issue.type == "spacing" for issue in issues):
        recommendations.append("Spacing inconsistencies found - check padding/margins")
    return recommendations or ["All visual tests passed!"]


class QATesterWorker(BaseWorker):
    """Score generated components against design specifications."""

    def __init__(self, config: WorkerConfig, **kwargs: Any) -> None:
        super().__init__(
            config,
            worker_type=WorkerType.QA_TESTER,
            capabilities=[
                capability(
                    "visual_quality_assurance",
                    "Compare generated components with Figma designs",
                    TaskType.CREATE_TESTS,
                    services=("llm",),
                ),
            ],
            **kwargs,
        )

    async def perform_task(self, item: WorkItem) -> dict[str, Any]:
        if item.type is not TaskType.CREATE_TESTS:
            raise UnsupportedOperationError(self.name, item.type)

        designs = list(dependency_output(item.input, "extract_figma_design").get("designs") or [])
        files = list(dependency_output(item.input, "generate_code").get("files") or [])

        results: list[VisualTestResult] = []
        for design in designs:
            results.append(await self._compare(design, files))

        score = calculate_score(results)
        logger.info("Visual QA scored %d over %d design(s)", score, len(results))
        return {
            "overall_score": score,
            "visual_tests": [asdict(result) for result in results],
            "recommendations": build_recommendations(results),
        }

    async def _compare(
        self,
        design: dict[str, Any],
        files: list[dict[str, Any]],
    ) -> VisualTestResult:
        name = str(design.get("name") or "Component")
        generated = find_component_file(name, files)
        if generated is None:
            return VisualTestResult(
                component_name=name,
                passed=False,
                similarity=0.0,
                issues=[
                    QAIssue(
                        type="layout",
                        severity="critical",
                        description="Component file not found",
                        expected="Component implementation",
                        actual="No file generated",
                        suggestion="Generate component file",
                    ),
                ],
            )

        specifications = list(design.get("specifications") or [])
        content = str(generated.get("content", ""))
        issues = await self._find_issues(name, specifications, content)
        similarity = calculate_similarity(specifications, content)
        return VisualTestResult(
            component_name=name,
            passed=similarity > PASS_SIMILARITY
            and not any(issue.severity == "critical" for issue in issues),
            similarity=similarity,
            file_path=str(generated.get("path")),
            issues=issues,
        )

    async def _find_issues(
        self,
        name: str,
        specifications: list[dict[str, Any]],
        content: str,
    ) -> list[QAIssue]:
        specs = ", ".join(f"{spec.get('property')}: {spec.get('value')}" for spec in specifications)
        prompt = (
            f"Compare this component with its design.\n\nDesign: {name}\nSpecs: {specs}\n\n"
            f"Code:\n{content}\n\n"
            'Return a JSON array of issues with "type" (layout, color, typography, spacing, '
            'accessibility), "severity" (critical, major, minor), "description", "expected", '
            '"actual", and "suggestion".'
        )
        try:
            raw_issues = parse_json_array(await self.generate_response(SYSTEM_PROMPT, prompt))
        except ModelOutputError as error:
            logger.debug("Unparseable QA issues for %s: %s", name, error)
            return []
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "QA issue analysis unavailable for %s: %s",
                name,
                sanitize_preview(str(error), max_chars=200),
            )
            return []
        return [issue for issue in map(normalize_issue, raw_issues) if issue is not None]
