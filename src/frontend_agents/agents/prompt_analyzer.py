"""Requirement analysis of free-text prompts."""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any

from frontend_agents.agents.common import (
    COMPLEXITY_LEVELS,
    capability,
    parse_json_object,
    str_list,
)
from frontend_agents.llm.sanitization import sanitize_preview
from frontend_agents.orchestrator.models import (
    TaskPriority,
    TaskType,
    WorkerConfig,
    WorkerType,
    WorkItem,
    utc_now,
)
from frontend_agents.orchestrator.worker import BaseWorker, UnsupportedOperationError

logger = logging.getLogger(__name__)

FIGMA_LINK_PATTERN = re.compile(
    r"https?://(?:www\.)?figma\.com/(?:file|design|proto)/[A-Za-z0-9]+/[^\s)\]>]*",
)

COMPLEXITY_PRIORITY = {
    "Simple": TaskPriority.LOW,
    "Medium": TaskPriority.MEDIUM,
    "Complex": TaskPriority.HIGH,
}

ESTIMATED_TIME = {"Simple": "1-2 hours", "Medium": "2-4 hours", "Complex": "4-8 hours"}

COMPONENT_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern), name)
    for pattern, name in (
        (r"button", "Button"),
        (r"form", "Form"),
        (r"input", "Input"),
        (r"modal", "Modal"),
        (r"table", "Table"),
        (r"list", "List"),
        (r"card", "Card"),
        (r"header", "Header"),
        (r"footer", "Footer"),
        (r"sidebar", "Sidebar"),
        (r"navigation|\bnav\b", "Navigation"),
        (r"dropdown", "Dropdown"),
        (r"checkbox", "Checkbox"),
        (r"radio", "RadioButton"),
        (r"slider", "Slider"),
        (r"\btabs?\b", "Tabs"),
        (r"accordion", "Accordion"),
        (r"chart|graph", "Chart"),
        (r"calendar", "Calendar"),
        (r"tooltip", "Tooltip"),
    )
)

FEATURE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern), name)
    for pattern, name in (
        (r"responsive", "Responsive Design"),
        (r"validation", "Form Validation"),
        (r"\bapi\b|fetch|ajax", "API Integration"),
        (r"routing", "Client-side Routing"),
        (r"state management", "State Management"),
        (r"authentication|\bauth\b", "Authentication"),
        (r"accessibility|a11y", "Accessibility"),
        (r"animation", "Animations"),
        (r"drag.*drop", "Drag & Drop"),
        (r"search", "Search Functionality"),
        (r"filter", "Filtering"),
        (r"sort", "Sorting"),
        (r"pagination", "Pagination"),
        (r"real.?time", "Real-time Updates"),
        (r"offline", "Offline Support"),
        (r"theme|dark mode", "Theme Support"),
    )
)

SYSTEM_PROMPT = (
    "You are an expert technical analyst specializing in frontend development "
    "requirements analysis. Extract specific, actionable requirements from user prompts."
)

ANALYSIS_PROMPT = """Analyze this frontend development request and respond with JSON only:

{prompt}

Return an object with these keys:
- "mainGoal": one sentence
- "technicalRequirements": list of strings
- "uiRequirements": list of strings
- "functionalRequirements": list of strings
- "complexity": "Simple", "Medium", or "Complex"
- "estimatedTime": for example "2-4 hours"
- "suggestedFramework": for example "React"
- "suggestedStyling": for example "Tailwind"
"""


@dataclass(slots=True)
class RequirementAnalysis:
    """Structured requirements derived from a prompt or issue."""

    main_goal: str
    technical_requirements: list[str] = field(default_factory=list)
    ui_requirements: list[str] = field(default_factory=list)
    functional_requirements: list[str] = field(default_factory=list)
    complexity: str = "Medium"
    estimated_time: str = "2-4 hours"
    suggested_framework: str = "React"
    suggested_styling: str = "CSS"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def extract_figma_links(text: str) -> list[str]:
    links: list[str] = []
    for match in FIGMA_LINK_PATTERN.findall(text):
        link = match.strip()
        if link not in links:
            links.append(link)
    return links


def normalize_analysis(payload: dict[str, Any]) -> RequirementAnalysis:
    complexity = payload.get("complexity")
    return RequirementAnalysis(
        main_goal=str(payload.get("mainGoal") or "Frontend development task"),
        technical_requirements=str_list(payload.get("technicalRequirements")),
        ui_requirements=str_list(payload.get("uiRequirements")),
        functional_requirements=str_list(payload.get("functionalRequirements")),
        complexity=complexity if complexity in COMPLEXITY_LEVELS else "Medium",
        estimated_time=str(payload.get("estimatedTime") or "2-4 hours"),
        suggested_framework=str(payload.get("suggestedFramework") or "React"),
        suggested_styling=str(payload.get("suggestedStyling") or "CSS"),
    )


def fallback_analysis(prompt: str) -> RequirementAnalysis:
    """Keyword-driven analysis used when the model is unavailable or unparseable."""

    text = prompt.lower()
    has_form = "form" in text or "input" in text
    has_modal = "modal" in text or "popup" in text
    has_table = "table" in text or "list" in text
    has_chart = "chart" in text or "graph" in text
    has_api = "api" in text or "fetch" in text or "backend" in text

    if (has_form and has_modal) or has_chart or has_api:
        complexity = "Complex"
    elif has_form or has_modal or has_table:
        complexity = "Medium"
    else:
        complexity = "Simple"

    if "vue" in text:
        framework = "Vue"
    elif "angular" in text:
        framework = "Angular"
    else:
        framework = "React"

    if "tailwind" in text:
        styling = "Tailwind"
    elif "material" in text:
        styling = "Material-UI"
    elif "styled" in text:
        styling = "Styled-Components"
    else:
        styling = "CSS"

    technical = ["Modern browser support", "Responsive design"]
    if has_api:
        technical.append("API integration")
    if has_form:
        technical.append("Form validation")
    ui = ["Clean and intuitive interface", "Consistent styling"]
    if has_modal:
        ui.append("Modal interactions")
    if has_table:
        ui.append("Data display")
    functional = ["Core functionality implementation"]
    if has_form:
        functional.append("Form submission handling")
    if has_modal:
        functional.append("Modal open/close logic")

    return RequirementAnalysis(
        main_goal="Frontend component development based on prompt",
        technical_requirements=technical,
        ui_requirements=ui,
        functional_requirements=functional,
        complexity=complexity,
        estimated_time=ESTIMATED_TIME[complexity],
        suggested_framework=framework,
        suggested_styling=styling,
    )


def extract_components(analysis: RequirementAnalysis) -> list[str]:
    text = " ".join(
        [analysis.main_goal, *analysis.ui_requirements, *analysis.functional_requirements],
    ).lower()
    components = [name for pattern, name in COMPONENT_PATTERNS if pattern.search(text)]
    return components or ["App"]


def extract_features(analysis: RequirementAnalysis) -> list[str]:
    text = " ".join(
        [
            *analysis.technical_requirements,
            *analysis.ui_requirements,
            *analysis.functional_requirements,
        ],
    ).lower()
    return [name for pattern, name in FEATURE_PATTERNS if pattern.search(text)]


class PromptAnalyzerWorker(BaseWorker):
    """Turn a free-text prompt into requirements, components, and design links."""

    def __init__(self, config: WorkerConfig, **kwargs: Any) -> None:
        super().__init__(
            config,
            worker_type=WorkerType.PROMPT_ANALYZER,
            capabilities=[
                capability(
                    "prompt_analysis",
                    "Extract requirements and Figma links from text prompts",
                    TaskType.ANALYZE_PROMPT,
                    services=("llm",),
                ),
            ],
            **kwargs,
        )

    async def perform_task(self, item: WorkItem) -> dict[str, Any]:
        if item.type is not TaskType.ANALYZE_PROMPT:
            raise UnsupportedOperationError(self.name, item.type)
        prompt = item.input.get("prompt")
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValueError("Prompt is required and must be a non-empty string")

        figma_links = extract_figma_links(prompt)
        analysis = await self._analyze(prompt)
        prompt_task = {
            "id": uuid.uuid4().hex,
            "prompt": prompt,
            "figma_links": figma_links,
            "requirements": [
                *analysis.technical_requirements,
                *analysis.ui_requirements,
                *analysis.functional_requirements,
            ],
            "priority": COMPLEXITY_PRIORITY[analysis.complexity].value,
            "created_at": utc_now().isoformat(),
        }
        components = extract_components(analysis)
        features = extract_features(analysis)
        logger.info(
            "Prompt analyzed: complexity=%s components=%d figma_links=%d",
            analysis.complexity,
            len(components),
            len(figma_links),
        )
        return {
            "prompt_task": prompt_task,
            "analysis": analysis.to_dict(),
            "figma_links": figma_links,
            "components": components,
            "features": features,
        }

    async def _analyze(self, prompt: str) -> RequirementAnalysis:
        try:
            response = await self.generate_response(
                SYSTEM_PROMPT,
                ANALYSIS_PROMPT.format(prompt=prompt),
            )
            return normalize_analysis(parse_json_object(response))
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "Model analysis unavailable, using keyword analysis: %s",
                sanitize_preview(str(error), max_chars=200),
            )
            return fallback_analysis(prompt)
