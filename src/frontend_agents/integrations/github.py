"""GitHub REST client for branch, commit, and pull request publishing."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from frontend_agents.config import GitHubSettings
from frontend_agents.integrations.http import IntegrationError, ServiceClient

logger = logging.getLogger(__name__)

_HTTP_NOT_FOUND = 404
_HTTP_UNPROCESSABLE = 422


@dataclass(slots=True)
class PullRequestDraft:
    title: str
    body: str
    head: str
    base: str
    draft: bool = True
    reviewers: list[str] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)


@dataclass(slots=True)
class PullRequestRef:
    number: int
    url: str


class GitHubClient(ServiceClient):
    """Publish generated files as a branch and pull request on one repository."""

    service = "github"

    def __init__(
        self,
        settings: GitHubSettings,
        *,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            base_url=settings.api_url,
            headers={
                "Authorization": f"Bearer {settings.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout_seconds=timeout_seconds,
            transport=transport,
        )
        self._owner = settings.owner
        self._repo_path = f"/repos/{settings.owner}/{settings.repo}"
        self.health_path = self._repo_path

    async def get_default_branch(self) -> str:
        payload = await self._request("GET", self._repo_path)
        return str((payload or {}).get("default_branch") or "main")

    async def get_branch_sha(self, branch: str) -> str:
        payload = await self._request("GET", f"{self._repo_path}/git/ref/heads/{branch}")
        return str(payload["object"]["sha"])

    async def create_branch(self, branch: str, from_sha: str) -> None:
        """Create ``branch`` at ``from_sha``; an existing branch is left as is."""

        try:
            await self._request(
                "POST",
                f"{self._repo_path}/git/refs",
                json={"ref": f"refs/heads/{branch}", "sha": from_sha},
            )
        except IntegrationError as error:
            if error.status_code == _HTTP_UNPROCESSABLE and "already exists" in str(error):
                logger.info("Branch %s already exists, reusing it", branch)
                return
            raise

    async def put_file(self, *, branch: str, path: str, content: str, message: str) -> None:
        """Create or update ``path`` on ``branch`` with a single commit."""

        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        existing_sha = await self._file_sha(branch=branch, path=path)
        if existing_sha:
            body["sha"] = existing_sha
        await self._request("PUT", f"{self._repo_path}/contents/{path}", json=body)

    async def _file_sha(self, *, branch: str, path: str) -> str | None:
        try:
            payload = await self._request(
                "GET",
                f"{self._repo_path}/contents/{path}",
                params={"ref": branch},
            )
        except IntegrationError as error:
            if error.status_code == _HTTP_NOT_FOUND:
                return None
            raise
        if isinstance(payload, dict):
            return payload.get("sha")
        return None

    async def find_open_pull_request(self, *, head: str, base: str) -> PullRequestRef | None:
        payload = await self._request(
            "GET",
            f"{self._repo_path}/pulls",
            params={"state": "open", "head": f"{self._owner}:{head}", "base": base},
        )
        if not payload:
            return None
        return PullRequestRef(number=int(payload[0]["number"]), url=str(payload[0]["html_url"]))

    async def create_pull_request(self, draft: PullRequestDraft) -> PullRequestRef:
        """Open a pull request for ``draft.head``, reusing one that is already open."""

        pull = await self.find_open_pull_request(head=draft.head, base=draft.base)
        if pull is not None:
            logger.info("Reusing open pull request #%d for %s", pull.number, draft.head)
        else:
            payload = await self._request(
                "POST",
                f"{self._repo_path}/pulls",
                json={
                    "title": draft.title,
                    "body": draft.body,
                    "head": draft.head,
                    "base": draft.base,
                    "draft": draft.draft,
                },
            )
            pull = PullRequestRef(number=int(payload["number"]), url=str(payload["html_url"]))
        if draft.labels:
            await self._request(
                "POST",
                f"{self._repo_path}/issues/{pull.number}/labels",
                json={"labels": draft.labels},
            )
        if draft.reviewers:
            await self._request(
                "POST",
                f"{self._repo_path}/pulls/{pull.number}/requested_reviewers",
                json={"reviewers": draft.reviewers},
            )
        logger.info("Opened pull request #%d: %s", pull.number, pull.url)
        return pull
