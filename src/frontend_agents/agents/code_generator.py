"""Code and test generation from analyzed requirements and design output."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from frontend_agents.agents.common import (
    ModelOutputError,
    capability,
    dependency_output,
    parse_json_object,
    pascal_case,
    str_list,
)
from frontend_agents.llm.sanitization import sanitize_preview
from frontend_agents.orchestrator.models import TaskType, WorkerConfig, WorkerType, WorkItem
from frontend_agents.orchestrator.worker import BaseWorker, UnsupportedOperationError

logger = logging.getLogger(__name__)

COMPONENT_ROOT = "src/components"

DEFAULT_DEPENDENCIES = ["react", "react-dom"]
DEFAULT_DEV_DEPENDENCIES = ["@testing-library/react", "vitest"]
DEFAULT_BUILD_COMMANDS = ["npm install", "npm run build", "npm test"]

CODE_SYSTEM_PROMPT = (
    "You are a senior frontend engineer. Generate production-ready, accessible, "
    "responsive components that match the given design tokens exactly. Respond with JSON only."
)
TEST_SYSTEM_PROMPT = (
    "You are a senior frontend engineer writing component tests with Testing Library. "
    "Respond with JSON only."
)


class FileType(str, Enum):
    COMPONENT = "component"
    STYLE = "style"
    TEST = "test"
    CONFIG = "config"
    DOCUMENTATION = "documentation"


@dataclass(slots=True)
class GeneratedFile:
    path: str
    content: str
    type: FileType
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["type"] = self.type.value
        return payload


def analysis_output(payload: dict[str, Any]) -> dict[str, Any]:
    """Output of whichever analysis step ran for this workflow."""

    return dependency_output(payload, "analyze_prompt") or dependency_output(
        payload,
        "analyze_jira_task",
    )


def parse_generated_files(raw: Any, default_type: FileType) -> list[GeneratedFile]:
    files: list[GeneratedFile] = []
    if not isinstance(raw, list):
        return files
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        path = str(entry.get("path") or "").strip().lstrip("/")
        content = entry.get("content")
        if not path or not isinstance(content, str) or ".." in path.split("/"):
            continue
        try:
            file_type = FileType(str(entry.get("type", default_type.value)).lower())
        except ValueError:
            file_type = default_type
        files.append(
            GeneratedFile(path, content, file_type, str(entry.get("description") or "")),
        )
    return files


def component_names(analysis_payload: dict[str, Any], designs: list[dict[str, Any]]) -> list[str]:
    """Design names first, then analyzed components, de-duplicated in PascalCase."""

    candidates = [str(design.get("name", "")) for design in designs]
    candidates += str_list(analysis_payload.get("components"))
    names: list[str] = []
    for raw in candidates:
        name = pascal_case(raw)
        if raw.strip() and name not in names:
            names.append(name)
    return names or ["App"]


def render_component(name: str, declarations: list[tuple[str, str]], goal: str) -> str:
    class_name = name[:1].lower() + name[1:]
    css_lines = "\n".join(f"  {prop}: {value};" for prop, value in declarations)
    return (
        f"// {goal}\n"
        'import React from "react";\n\n'
        f"const styles = `\n.{class_name} {{\n{css_lines}\n}}\n`;\n\n"
        f"export interface {name}Props {{\n"
        "  children?: React.ReactNode;\n"
        "}\n\n"
        f"export function {name}({{ children }}: {name}Props) {{\n"
        "  return (\n"
        "    <>\n"
        "      <style>{styles}</style>\n"
        f'      <div className="{class_name}" data-testid="{class_name}">\n'
        "        {children}\n"
        "      </div>\n"
        "    </>\n"
        "  );\n"
        "}\n\n"
        f"export default {name};\n"
    )


def render_component_test(name: str, source_path: str) -> str:
    class_name = name[:1].lower() + name[1:]
    import_path = "./" + source_path.rsplit("/", 1)[-1].rsplit(".", 1)[0]
    return (
        'import { render, screen } from "@testing-library/react";\n'
        'import { describe, expect, it } from "vitest";\n'
        f'import {{ {name} }} from "{import_path}";\n\n'
        f'describe("{name}", () => {{\n'
        '  it("renders its children", () => {\n'
        f"    render(<{name}>content</{name}>);\n"
        f'    expect(screen.getByTestId("{class_name}")).toHaveTextContent("content");\n'
        "  });\n"
        "});\n"
    )


def fallback_code(
    analysis_payload: dict[str, Any],
    design_payload: dict[str, Any],
) -> dict[str, Any]:
    """Deterministic component scaffolding that embeds each design's specifications."""

    analysis = analysis_payload.get("analysis") or {}
    goal = str(analysis.get("main_goal") or "Generated component")
    designs = list(design_payload.get("designs") or [])
    by_component = {pascal_case(str(design.get("name", ""))): design for design in designs}

    files: list[GeneratedFile] = []
    for name in component_names(analysis_payload, designs):
        design = by_component.get(name) or {}
        declarations = [
            (str(spec["property"]), f"{spec['value']}{spec.get('unit') or ''}")
            for spec in design.get("specifications") or []
            if spec.get("property") and spec.get("value") is not None
        ] or [("display", "block")]
        files.append(
            GeneratedFile(
                path=f"{COMPONENT_ROOT}/{name}/{name}.tsx",
                content=render_component(name, declarations, goal),
                type=FileType.COMPONENT,
                description=f"{name} component",
            ),
        )

    documentation = "\n".join(
        [
            f"# {goal}",
            "",
            f"Framework: {analysis.get('suggested_framework') or 'React'}",
            f"Styling: {analysis.get('suggested_styling') or 'CSS'}",
            "",
            "## Components",
            *(f"- `{generated.path}`" for generated in files),
        ],
    )
    return {
        "files": [generated.to_dict() for generated in files],
        "tests": [],
        "documentation": documentation,
        "dependencies": list(DEFAULT_DEPENDENCIES),
        "dev_dependencies": list(DEFAULT_DEV_DEPENDENCIES),
        "build_commands": list(DEFAULT_BUILD_COMMANDS),
    }


def fallback_tests(visual_tests: list[dict[str, Any]]) -> list[GeneratedFile]:
    tests: list[GeneratedFile] = []
    for result in visual_tests:
        source_path = result.get("file_path")
        if not source_path:
            continue
        name = pascal_case(str(result.get("component_name", "")))
        tests.append(
            GeneratedFile(
                path=str(source_path).rsplit(".", 1)[0] + ".test.tsx",
                content=render_component_test(name, str(source_path)),
                type=FileType.TEST,
                description=f"Render test for {name}",
            ),
        )
    return tests


class CodeGeneratorWorker(BaseWorker):
    """Generate component source (GENERATE_CODE) and component tests (CREATE_TESTS)."""

    def __init__(self, config: WorkerConfig, **kwargs: Any) -> None:
        super().__init__(
            config,
            worker_type=WorkerType.CODE_GENERATOR,
            capabilities=[
                capability(
                    "code_generation",
                    "Generate frontend components and their tests",
                    TaskType.GENERATE_CODE,
                    TaskType.CREATE_TESTS,
                    services=("llm",),
                ),
            ],
            **kwargs,
        )

    async def perform_task(self, item: WorkItem) -> dict[str, Any]:
        if item.type is TaskType.GENERATE_CODE:
            return await self._generate_code(item.input)
        if item.type is TaskType.CREATE_TESTS:
            return await self._create_tests(item.input)
        raise UnsupportedOperationError(self.name, item.type)

    async def _generate_code(self, payload: dict[str, Any]) -> dict[str, Any]:
        analysis_payload = analysis_output(payload)
        design_payload = dependency_output(payload, "extract_figma_design")
        prompt = (
            "Generate the frontend implementation for these requirements and design tokens.\n\n"
            f"Requirements:\n{json.dumps(analysis_payload.get('analysis') or {}, indent=2)}\n\n"
            f"Components: {', '.join(str_list(analysis_payload.get('components')))}\n\n"
            f"Design tokens:\n{json.dumps(design_payload.get('design_tokens') or [], indent=2)}\n\n"
            'Return {"files": [{"path", "content", "type", "description"}], '
            '"dependencies": [], "build_commands": [], "documentation": ""}. '
            f"Place components under {COMPONENT_ROOT}/<Name>/<Name>.tsx."
        )
        try:
            response = parse_json_object(await self.generate_response(CODE_SYSTEM_PROMPT, prompt))
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "Model code generation unavailable, using scaffolding: %s",
                sanitize_preview(str(error), max_chars=200),
            )
            return fallback_code(analysis_payload, design_payload)

        files = parse_generated_files(response.get("files"), FileType.COMPONENT)
        if not files:
            logger.warning("Model returned no usable files, using scaffolding")
            return fallback_code(analysis_payload, design_payload)
        logger.info("Generated %d file(s)", len(files))
        return {
            "files": [generated.to_dict() for generated in files],
            "tests": [],
            "documentation": str(response.get("documentation") or ""),
            "dependencies": str_list(response.get("dependencies")) or list(DEFAULT_DEPENDENCIES),
            "dev_dependencies": str_list(response.get("dev_dependencies")),
            "build_commands": str_list(response.get("build_commands"))
            or list(DEFAULT_BUILD_COMMANDS),
        }

    async def _create_tests(self, payload: dict[str, Any]) -> dict[str, Any]:
        qa_report = dependency_output(payload, "visual_qa_testing")
        visual_tests = list(qa_report.get("visual_tests") or [])
        prompt = (
            "Write component tests for these components and QA findings.\n\n"
            f"{json.dumps(visual_tests, indent=2, default=str)}\n\n"
            'Return {"files": [{"path", "content", "type": "test", "description"}]}. '
            "Place each test next to its component as <Name>.test.tsx."
        )
        try:
            response = parse_json_object(await self.generate_response(TEST_SYSTEM_PROMPT, prompt))
            tests = parse_generated_files(response.get("files"), FileType.TEST)
        except ModelOutputError as error:
            logger.warning("Unparseable test output, using templates: %s", error)
            tests = []
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "Model test generation unavailable, using templates: %s",
                sanitize_preview(str(error), max_chars=200),
            )
            tests = []
        if not tests:
            tests = fallback_tests(visual_tests)
        logger.info("Created %d test file(s)", len(tests))
        return {
            "tests": [generated.to_dict() for generated in tests],
            "qa_score": qa_report.get("overall_score"),
        }
