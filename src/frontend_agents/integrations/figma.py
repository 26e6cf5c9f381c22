"""Figma REST client and node property extraction."""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

import httpx

from frontend_agents.config import FigmaSettings
from frontend_agents.integrations.http import IntegrationError, ServiceClient

logger = logging.getLogger(__name__)

FIGMA_API_URL = "https://api.figma.com/v1"

_FILE_PATH = re.compile(r"^/(?:file|design|proto)/([A-Za-z0-9]+)(?:/|$)")


class InvalidFigmaUrlError(ValueError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Invalid Figma URL: {url}")
        self.url = url


@dataclass(slots=True)
class DesignSpecification:
    """One CSS-like property read from a design node."""

    property: str
    value: str
    unit: str | None = None
    description: str = ""

    @property
    def css_value(self) -> str:
        return f"{self.value}{self.unit or ''}"


@dataclass(slots=True)
class FigmaDesign:
    file_key: str
    node_id: str
    name: str
    type: str
    url: str
    image_url: str | None = None
    specifications: list[DesignSpecification] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def parse_figma_url(url: str) -> tuple[str, str | None]:
    """Return ``(file_key, node_id)`` for a file, design, or prototype URL.

    Node ids use ``-`` in URLs and ``:`` in the API.

    >>> parse_figma_url("https://www.figma.com/design/AbC123/Home?node-id=12-34")
    ('AbC123', '12:34')
    """

    parsed = urlparse(url)
    if parsed.scheme != "https" or parsed.netloc not in {"www.figma.com", "figma.com"}:
        raise InvalidFigmaUrlError(url)
    match = _FILE_PATH.match(parsed.path)
    if match is None:
        raise InvalidFigmaUrlError(url)
    node_ids = parse_qs(parsed.query).get("node-id")
    node_id = unquote(node_ids[0]).replace("-", ":") if node_ids else None
    return match.group(1), node_id


def rgba_to_hex(color: dict[str, float], opacity: float | None = None) -> str:
    """Convert a Figma 0..1 RGBA color to ``#rrggbb`` or ``#rrggbbaa``."""

    channels = [round(float(color.get(name, 0.0)) * 255) for name in ("r", "g", "b")]
    alpha = round((1.0 if opacity is None else opacity) * float(color.get("a", 1.0)) * 255)
    value = "#" + "".join(f"{channel:02x}" for channel in channels)
    if alpha < 255:
        value += f"{alpha:02x}"
    return value


def extract_specifications(node: dict[str, Any]) -> list[DesignSpecification]:  # noqa: C901
    """Read layout, color, border, text, and auto-layout properties from a node."""

    specs: list[DesignSpecification] = []
    bounds = node.get("absoluteBoundingBox")
    if bounds:
        specs.append(DesignSpecification("width", _number(bounds["width"]), "px", "Element width"))
        specs.append(
            DesignSpecification("height", _number(bounds["height"]), "px", "Element height"),
        )

    for index, fill in enumerate(node.get("fills") or []):
        if fill.get("type") == "SOLID" and fill.get("color"):
            specs.append(
                DesignSpecification(
                    f"background-color{_suffix(index)}",
                    rgba_to_hex(fill["color"], fill.get("opacity")),
                    None,
                    f"Fill color {index + 1}",
                ),
            )

    strokes = node.get("strokes") or []
    for index, stroke in enumerate(strokes):
        if stroke.get("type") == "SOLID" and stroke.get("color"):
            specs.append(
                DesignSpecification(
                    f"border-color{_suffix(index)}",
                    rgba_to_hex(stroke["color"], stroke.get("opacity")),
                    None,
                    f"Stroke color {index + 1}",
                ),
            )
    if strokes and node.get("strokeWeight"):
        specs.append(
            DesignSpecification(
                "border-width",
                _number(node["strokeWeight"]),
                "px",
                "Border width",
            ),
        )

    if node.get("cornerRadius") is not None:
        specs.append(
            DesignSpecification(
                "border-radius",
                _number(node["cornerRadius"]),
                "px",
                "Corner radius",
            ),
        )

    style = node.get("style") or {}
    if node.get("type") == "TEXT" and style:
        for key, prop, unit, description in (
            ("fontSize", "font-size", "px", "Font size"),
            ("fontFamily", "font-family", None, "Font family"),
            ("fontWeight", "font-weight", None, "Font weight"),
            ("lineHeightPx", "line-height", "px", "Line height"),
            ("letterSpacing", "letter-spacing", "px", "Letter spacing"),
        ):
            if style.get(key):
                specs.append(DesignSpecification(prop, _number(style[key]), unit, description))
        if style.get("textAlignHorizontal"):
            specs.append(
                DesignSpecification(
                    "text-align",
                    str(style["textAlignHorizontal"]).lower(),
                    None,
                    "Text alignment",
                ),
            )

    for side in ("Left", "Right", "Top", "Bottom"):
        value = node.get(f"padding{side}")
        if value is not None:
            specs.append(
                DesignSpecification(
                    f"padding-{side.lower()}",
                    _number(value),
                    "px",
                    f"{side} padding",
                ),
            )
    if node.get("itemSpacing") is not None:
        specs.append(
            DesignSpecification("gap", _number(node["itemSpacing"]), "px", "Gap between items"),
        )
    return specs


class FigmaClient(ServiceClient):
    """Resolve Figma links into designs with extracted specifications."""

    service = "figma"
    health_path = "/me"

    def __init__(
        self,
        settings: FigmaSettings,
        *,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            base_url=FIGMA_API_URL,
            headers={"X-Figma-Token": settings.access_token},
            timeout_seconds=timeout_seconds,
            transport=transport,
        )

    async def get_design_from_url(self, url: str) -> FigmaDesign:
        file_key, node_id = parse_figma_url(url)
        if node_id is None:
            file_payload = await self._request("GET", f"/files/{file_key}", params={"depth": 1})
            return FigmaDesign(
                file_key=file_key,
                node_id="root",
                name=str((file_payload or {}).get("name") or "Root"),
                type="FILE",
                url=url,
            )

        payload = await self._request("GET", f"/files/{file_key}/nodes", params={"ids": node_id})
        entry = ((payload or {}).get("nodes") or {}).get(node_id)
        document = (entry or {}).get("document")
        if not document:
            raise IntegrationError(self.service, f"node {node_id} not found in file {file_key}")

        return FigmaDesign(
            file_key=file_key,
            node_id=node_id,
            name=str(document.get("name") or "Root"),
            type=str(document.get("type") or "FRAME"),
            url=url,
            image_url=await self._render_image(file_key, node_id),
            specifications=extract_specifications(document),
        )

    async def _render_image(self, file_key: str, node_id: str) -> str | None:
        try:
            payload = await self._request(
                "GET",
                f"/images/{file_key}",
                params={"ids": node_id, "format": "png", "scale": 2},
            )
        except IntegrationError as error:
            logger.warning("Failed to render Figma node %s: %s", node_id, error)
            return None
        return ((payload or {}).get("images") or {}).get(node_id)

    async def get_file_components(self, file_key: str) -> list[dict[str, Any]]:
        payload = await self._request("GET", f"/files/{file_key}/components")
        return _listing(((payload or {}).get("meta") or {}).get("components"))

    async def get_file_styles(self, file_key: str) -> list[dict[str, Any]]:
        payload = await self._request("GET", f"/files/{file_key}/styles")
        return _listing(((payload or {}).get("meta") or {}).get("styles"))

    async def get_team_projects(self, team_id: str) -> list[dict[str, Any]]:
        payload = await self._request("GET", f"/teams/{team_id}/projects")
        return list((payload or {}).get("projects") or [])

    async def get_project_files(self, project_id: str) -> list[dict[str, Any]]:
        payload = await self._request("GET", f"/projects/{project_id}/files")
        return list((payload or {}).get("files") or [])


def _suffix(index: int) -> str:
    return f"-{index}" if index > 0 else ""


def _number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _listing(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, dict):
        return list(value.values())
    return list(value or [])
