"""Design extraction: Figma links to designs, tokens, and a style guide."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from frontend_agents.agents.common import capability, dependency_output, kebab_case, str_list
from frontend_agents.integrations.figma import DesignSpecification, FigmaClient, FigmaDesign
from frontend_agents.llm.sanitization import sanitize_preview
from frontend_agents.orchestrator.models import TaskType, WorkerConfig, WorkerType, WorkItem
from frontend_agents.orchestrator.worker import BaseWorker, UnsupportedOperationError

logger = logging.getLogger(__name__)

BREAKPOINTS = {"mobile": "320px", "tablet": "768px", "desktop": "1024px", "wide": "1440px"}

TYPOGRAPHY_PROPERTIES = frozenset(
    {"font-size", "font-weight", "font-family", "line-height", "letter-spacing"},
)
SPACING_PROPERTIES = frozenset({"padding", "margin", "gap", "width", "height"})

VARIANT_KEYWORDS = (
    "primary",
    "secondary",
    "tertiary",
    "small",
    "medium",
    "large",
    "outlined",
    "filled",
    "text",
    "light",
    "dark",
    "success",
    "warning",
    "error",
    "info",
)
STATE_KEYWORDS = ("default", "active", "hover", "focus", "disabled", "loading", "pressed")

COMPONENT_TYPE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("button", ("button", "btn")),
    ("input", ("input", "field", "form")),
    ("card", ("card", "tile")),
    ("modal", ("modal", "dialog", "popup")),
    ("navigation", ("nav", "menu", "header", "footer")),
    ("layout", ("layout", "container", "wrapper")),
)

FALLBACK_GUIDANCE = [
    "Implement components using modern CSS Grid and Flexbox",
    "Ensure all components are responsive and accessible",
    "Use semantic HTML elements for better accessibility",
    "Implement proper focus management and keyboard navigation",
    "Add loading states and error handling for interactive components",
    "Write unit tests for component logic and integration tests for user interactions",
]

NO_DESIGN_GUIDANCE = [
    "No Figma designs provided - implement using standard design patterns",
    "Follow accessibility best practices",
    "Ensure responsive design across all screen sizes",
    "Use semantic HTML and proper ARIA labels",
]

SYSTEM_PROMPT = (
    "You are an expert frontend developer providing implementation guidance based on "
    "design specifications. Focus on practical, actionable advice."
)


@dataclass(slots=True)
class DesignToken:
    name: str
    category: str
    value: str
    css_property: str
    group: str
    description: str = ""


def spec_to_token(spec: DesignSpecification, component_name: str) -> DesignToken | None:
    """Classify one specification as a color, typography, spacing, or border token."""

    prop = spec.property
    group = kebab_case(component_name)
    name = f"{group}-{prop}"
    description = spec.description or f"{prop} of {component_name}"

    if ("color" in prop or "background" in prop or "border" in prop) and spec.value.startswith(
        "#",
    ):
        return DesignToken(name, "color", spec.value, prop, group, description)
    if prop in TYPOGRAPHY_PROPERTIES:
        return DesignToken(name, "typography", spec.css_value, prop, group, description)
    if (prop in SPACING_PROPERTIES or "padding" in prop or "margin" in prop) and spec.unit == "px":
        try:
            float(spec.value)
        except ValueError:
            return None
        return DesignToken(name, "spacing", spec.css_value, prop, group, description)
    if "border" in prop and not prop.startswith("border-color"):
        return DesignToken(name, "border", spec.css_value, prop, group, description)
    return None


def extract_design_tokens(designs: list[FigmaDesign]) -> list[DesignToken]:
    tokens: dict[str, DesignToken] = {}
    for design in designs:
        for spec in design.specifications:
            token = spec_to_token(spec, design.name)
            if token is not None and token.name not in tokens:
                tokens[token.name] = token
    return sorted(tokens.values(), key=lambda token: (token.category, token.name))


def component_type(design: FigmaDesign) -> str:
    name = design.name.lower()
    for kind, keywords in COMPONENT_TYPE_KEYWORDS:
        if any(keyword in name for keyword in keywords):
            return kind
    return "other"


def component_specifications(designs: list[FigmaDesign]) -> list[dict[str, Any]]:
    specs: list[dict[str, Any]] = []
    for design in designs:
        name = design.name.lower()
        specs.append(
            {
                "name": design.name,
                "type": component_type(design),
                "specifications": [asdict(spec) for spec in design.specifications],
                "variants": [keyword for keyword in VARIANT_KEYWORDS if keyword in name],
                "states": [keyword for keyword in STATE_KEYWORDS if keyword in name] or ["default"],
            },
        )
    return specs


def build_style_guide(tokens: list[DesignToken]) -> dict[str, Any]:
    typography: dict[str, dict[str, str]] = {}
    for token in tokens:
        if token.category == "typography":
            typography.setdefault(token.group, {})[token.css_property] = token.value
    return {
        "colors": {token.name: token.value for token in tokens if token.category == "color"},
        "typography": typography,
        "spacing": {token.name: token.value for token in tokens if token.category == "spacing"},
        "breakpoints": dict(BREAKPOINTS),
    }


def empty_design_result() -> dict[str, Any]:
    return {
        "designs": [],
        "design_tokens": [],
        "component_specs": [],
        "style_guide": build_style_guide([]),
        "implementation_guidance": list(NO_DESIGN_GUIDANCE),
    }


class FigmaDesignerWorker(BaseWorker):
    """Extract designs from the Figma links found by the analysis step."""

    def __init__(
        self,
        config: WorkerConfig,
        figma: FigmaClient | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            config,
            worker_type=WorkerType.FIGMA_DESIGNER,
            capabilities=[
                capability(
                    "figma_design_analysis",
                    "Extract design specifications and tokens from Figma designs",
                    TaskType.EXTRACT_FIGMA_DESIGN,
                    services=("figma",),
                ),
            ],
            **kwargs,
        )
        self.figma = figma

    async def perform_task(self, item: WorkItem) -> dict[str, Any]:
        if item.type is not TaskType.EXTRACT_FIGMA_DESIGN:
            raise UnsupportedOperationError(self.name, item.type)

        links = design_links(item.input)
        if not links:
            logger.warning("No Figma links provided for design extraction")
            return empty_design_result()
        if self.figma is None:
            logger.warning("Figma is not configured, skipping %d link(s)", len(links))
            return empty_design_result()

        designs: list[FigmaDesign] = []
        for link in links:
            try:
                designs.append(await self.figma.get_design_from_url(link))
            except Exception as error:  # noqa: BLE001
                logger.warning("Failed to extract design from %s: %s", link, error)
        if not designs:
            logger.warning("No design could be extracted from %d Figma link(s)", len(links))
            return empty_design_result()

        tokens = extract_design_tokens(designs)
        components = component_specifications(designs)
        logger.info(
            "Design extraction found %d designs, %d tokens",
            len(designs),
            len(tokens),
        )
        return {
            "designs": [design.to_dict() for design in designs],
            "design_tokens": [asdict(token) for token in tokens],
            "component_specs": components,
            "style_guide": build_style_guide(tokens),
            "implementation_guidance": await self._guidance(designs, components),
        }

    async def _guidance(
        self,
        designs: list[FigmaDesign],
        components: list[dict[str, Any]],
    ) -> list[str]:
        prompt = "\n".join(
            [
                "Provide implementation guidance for these designs as a bulleted list.",
                "Cover HTML structure, styling, behavior, responsiveness, accessibility, "
                "and testing.",
                "",
                "Designs:",
                *(f"- {design.name} ({design.type})" for design in designs),
                "",
                "Components:",
                *(
                    f"- {component['name']} ({component['type']}): "
                    f"{len(component['specifications'])} specifications"
                    for component in components
                ),
            ],
        )
        try:
            response = await self.generate_response(SYSTEM_PROMPT, prompt)
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "Implementation guidance unavailable: %s",
                sanitize_preview(str(error), max_chars=200),
            )
            return list(FALLBACK_GUIDANCE)
        lines = [line.strip() for line in response.splitlines() if line.strip()]
        return lines or list(FALLBACK_GUIDANCE)


def design_links(payload: dict[str, Any]) -> list[str]:
    """Links from the step input, else from whichever analysis step ran."""

    for links in (
        str_list(payload.get("figma_links")),
        str_list(dependency_output(payload, "analyze_jira_task").get("figma_links")),
        str_list(dependency_output(payload, "analyze_prompt").get("figma_links")),
    ):
        if links:
            return links
    return []
