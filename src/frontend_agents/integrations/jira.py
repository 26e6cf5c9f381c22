"""Jira Cloud REST client."""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any

import httpx

from frontend_agents.config import JiraSettings
from frontend_agents.integrations.http import ServiceClient

logger = logging.getLogger(__name__)

FIGMA_LINK_PATTERN = re.compile(r"https://(?:www\.)?figma\.com/[^\s)\]>]+")

_ACCEPTANCE_CRITERIA_PATTERNS = (
    re.compile(r"acceptance criteria:?\s*\n(.*?)(?:\n\n|\n(?=[A-Z])|$)", re.IGNORECASE | re.DOTALL),
    re.compile(r"given.*when.*then.*", re.IGNORECASE),
    re.compile(r"user can.*", re.IGNORECASE),
    re.compile(r"system should.*", re.IGNORECASE),
)

_SEARCH_FIELDS = (
    "summary",
    "description",
    "status",
    "assignee",
    "priority",
    "labels",
    "components",
    "issuetype",
    "comment",
)


@dataclass(slots=True)
class JiraTask:
    """Issue fields used by the analysis workers."""

    id: str
    key: str
    summary: str
    description: str
    status: str
    issue_type: str
    priority: str = "Medium"
    assignee: str | None = None
    labels: list[str] = field(default_factory=list)
    components: list[str] = field(default_factory=list)
    figma_links: list[str] = field(default_factory=list)
    acceptance_criteria: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class JiraClient(ServiceClient):
    """Read issues and post updates through the Jira Cloud v3 REST API."""

    service = "jira"
    health_path = "/myself"

    def __init__(
        self,
        settings: JiraSettings,
        *,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            base_url=f"https://{settings.host}/rest/api/3",
            auth=(settings.username, settings.api_token),
            headers={"Content-Type": "application/json"},
            timeout_seconds=timeout_seconds,
            transport=transport,
        )

    async def get_task(self, task_key: str) -> JiraTask:
        issue = await self._request(
            "GET",
            f"/issue/{task_key}",
            params={"expand": "renderedFields", "fields": ",".join(_SEARCH_FIELDS)},
        )
        return parse_issue(issue)

    async def search(self, jql: str, *, max_results: int = 50) -> list[JiraTask]:
        payload = await self._request(
            "POST",
            "/search",
            json={"jql": jql, "maxResults": max_results, "fields": list(_SEARCH_FIELDS)},
        )
        return [parse_issue(issue) for issue in (payload or {}).get("issues", [])]

    async def get_my_tasks(self) -> list[JiraTask]:
        return await self.search(
            "assignee = currentUser() AND status != Done ORDER BY priority DESC, created DESC",
        )

    async def get_sprint_tasks(self, sprint_id: str) -> list[JiraTask]:
        return await self.search(f"sprint = {sprint_id} ORDER BY priority DESC, created DESC")

    async def get_transitions(self, task_key: str) -> list[dict[str, Any]]:
        payload = await self._request("GET", f"/issue/{task_key}/transitions")
        return list((payload or {}).get("transitions", []))

    async def update_task_status(self, task_key: str, transition_id: str) -> None:
        await self._request(
            "POST",
            f"/issue/{task_key}/transitions",
            json={"transition": {"id": transition_id}},
        )

    async def add_comment(self, task_key: str, text: str) -> None:
        await self._request(
            "POST",
            f"/issue/{task_key}/comment",
            json={
                "body": {
                    "type": "doc",
                    "version": 1,
                    "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}],
                },
            },
        )


def parse_issue(issue: dict[str, Any]) -> JiraTask:
    """Map a raw issue payload to ``JiraTask``."""

    fields = issue.get("fields") or {}
    description = adf_to_text(fields.get("description"))
    comments = [
        adf_to_text(comment.get("body"))
        for comment in ((fields.get("comment") or {}).get("comments") or [])
    ]
    return JiraTask(
        id=str(issue.get("id", "")),
        key=str(issue.get("key", "")),
        summary=str(fields.get("summary") or ""),
        description=description,
        status=str((fields.get("status") or {}).get("name", "")),
        issue_type=str((fields.get("issuetype") or {}).get("name", "")),
        priority=str((fields.get("priority") or {}).get("name") or "Medium"),
        assignee=(fields.get("assignee") or {}).get("displayName"),
        labels=list(fields.get("labels") or []),
        components=[component["name"] for component in fields.get("components") or []],
        figma_links=extract_figma_links([description, *comments]),
        acceptance_criteria=extract_acceptance_criteria(description),
    )


def adf_to_text(node: Any) -> str:
    """Flatten an Atlassian Document Format node (or plain string) to text."""

    if node is None:
        return ""
    if isinstance(node, str):
        return node
    if not isinstance(node, dict):
        return ""
    if node.get("type") == "text":
        return str(node.get("text", ""))
    if node.get("type") == "hardBreak":
        return "\n"
    children = [adf_to_text(child) for child in node.get("content") or []]
    separator = "\n" if node.get("type") in {"doc", "bulletList", "orderedList"} else ""
    text = separator.join(children)
    if node.get("type") in {"paragraph", "heading", "listItem"}:
        return text + "\n"
    return text


def extract_figma_links(texts: list[str]) -> list[str]:
    links: list[str] = []
    for text in texts:
        for match in FIGMA_LINK_PATTERN.findall(text):
            if match not in links:
                links.append(match)
    return links


def extract_acceptance_criteria(description: str) -> list[str]:
    criteria: list[str] = []
    for pattern in _ACCEPTANCE_CRITERIA_PATTERNS:
        for match in pattern.finditer(description):
            value = match.group(0).strip()
            if value and value not in criteria:
                criteria.append(value)
    return criteria
