"""Helpers shared by the specialized workers."""

from __future__ import annotations

import json
import re
from typing import Any

from frontend_agents.orchestrator.models import Capability, TaskType

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")

COMPLEXITY_LEVELS = ("Simple", "Medium", "Complex")


class ModelOutputError(ValueError):
    """Completion text did not contain the expected JSON payload."""


def capability(
    name: str,
    description: str,
    *operations: TaskType,
    services: tuple[str, ...] = (),
) -> Capability:
    return Capability(
        name=name,
        description=description,
        supported_operations=frozenset(operations),
        required_services=services,
    )


def parse_json_object(text: str) -> dict[str, Any]:
    """Return the outermost JSON object embedded in ``text``."""

    match = _JSON_OBJECT.search(text)
    if match is None:
        raise ModelOutputError("No JSON object found in model output")
    try:
        value = json.loads(match.group(0))
    except json.JSONDecodeError as error:
        raise ModelOutputError(f"Invalid JSON object in model output: {error}") from error
    if not isinstance(value, dict):
        raise ModelOutputError("Model output JSON is not an object")
    return value


def parse_json_array(text: str) -> list[Any]:
    match = _JSON_ARRAY.search(text)
    if match is None:
        raise ModelOutputError("No JSON array found in model output")
    try:
        value = json.loads(match.group(0))
    except json.JSONDecodeError as error:
        raise ModelOutputError(f"Invalid JSON array in model output: {error}") from error
    if not isinstance(value, list):
        raise ModelOutputError("Model output JSON is not an array")
    return value


def str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def dependency_output(payload: dict[str, Any], key: str) -> dict[str, Any]:
    """Merged output of an upstream step, or an empty dict when absent."""

    value = payload.get(key)
    return value if isinstance(value, dict) else {}


def pascal_case(text: str) -> str:
    words = re.findall(r"[A-Za-z0-9]+", text)
    return "".join(word[:1].upper() + word[1:] for word in words) or "Component"


def kebab_case(text: str) -> str:
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", text)
    words = re.findall(r"[A-Za-z0-9]+", spaced)
    return "-".join(word.lower() for word in words) or "component"
