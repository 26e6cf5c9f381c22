"""Publication of generated files as a GitHub branch and pull request."""

from __future__ import annotations

import logging
import re
from typing import Any

from frontend_agents.agents.common import capability, dependency_output
from frontend_agents.integrations.github import GitHubClient, PullRequestDraft
from frontend_agents.orchestrator.models import TaskType, WorkerConfig, WorkerType, WorkItem
from frontend_agents.orchestrator.worker import BaseWorker, UnsupportedOperationError

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "frontend-agents"
PULL_REQUEST_LABELS = ["frontend-agents", "generated"]

_TITLE_MAX_CHARS = 72


def branch_name(item_id: str, title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")[:40].rstrip("-") or "change"
    run_prefix = re.sub(r"[^a-z0-9]", "", item_id.lower())[:8]
    return f"{BRANCH_PREFIX}/{slug}-{run_prefix}"


def pull_request_title(documentation: str) -> str:
    for line in documentation.splitlines():
        text = line.lstrip("#").strip()
        if text:
            return text[:_TITLE_MAX_CHARS]
    return "Generated frontend components"


def pull_request_body(
    *,
    files: list[dict[str, Any]],
    tests: list[dict[str, Any]],
    qa_report: dict[str, Any],
    build_commands: list[str],
) -> str:
    lines = ["## Summary", "", "Generated frontend components.", "", "## Files", ""]
    lines += [f"- `{generated['path']}`" for generated in files]
    if tests:
        lines += ["", "## Tests", ""]
        lines += [f"- `{generated['path']}`" for generated in tests]
    score = qa_report.get("overall_score")
    if score is not None:
        lines += ["", "## Visual QA", "", f"Overall score: {score}/100", ""]
        lines += [f"- {text}" for text in qa_report.get("recommendations") or []]
    if build_commands:
        lines += ["", "## Build", "", "```sh", *build_commands, "```"]
    return "\n".join(lines) + "\n"


class GitHubManagerWorker(BaseWorker):
    """Commit generated files to a new branch and open a pull request."""

    def __init__(
        self,
        config: WorkerConfig,
        github: GitHubClient,
        *,
        base_branch: str = "",
        draft: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            config,
            worker_type=WorkerType.GITHUB_MANAGER,
            capabilities=[
                capability(
                    "github_publication",
                    "Create branches, commits, and pull requests",
                    TaskType.CREATE_PULL_REQUEST,
                    services=("github",),
                ),
            ],
            **kwargs,
        )
        self.github = github
        self.base_branch = base_branch
        self.draft = draft

    async def perform_task(self, item: WorkItem) -> dict[str, Any]:
        if item.type is not TaskType.CREATE_PULL_REQUEST:
            raise UnsupportedOperationError(self.name, item.type)

        code = dependency_output(item.input, "generate_code")
        tests = list(dependency_output(item.input, "create_tests").get("tests") or [])
        qa_report = dependency_output(item.input, "visual_qa_testing")
        files = list(code.get("files") or [])
        if not files:
            raise ValueError("No generated files to publish")

        title = pull_request_title(str(code.get("documentation") or ""))
        base = self.base_branch or await self.github.get_default_branch()
        branch = branch_name(item.id, title)
        await self.github.create_branch(branch, await self.github.get_branch_sha(base))

        committed: list[str] = []
        for generated in [*files, *tests]:
            await self.github.put_file(
                branch=branch,
                path=str(generated["path"]),
                content=str(generated["content"]),
                message=f"Add {generated['path']}",
            )
            committed.append(str(generated["path"]))

        pull = await self.github.create_pull_request(
            PullRequestDraft(
                title=title,
                body=pull_request_body(
                    files=files,
                    tests=tests,
                    qa_report=qa_report,
                    build_commands=list(code.get("build_commands") or []),
                ),
                head=branch,
                base=base,
                draft=self.draft,
                labels=list(PULL_REQUEST_LABELS),
            ),
        )
        logger.info("Published %d file(s) on %s", len(committed), branch)
        return {
            "branch": branch,
            "base": base,
            "pull_request_url": pull.url,
            "pull_request_number": pull.number,
            "files_committed": committed,
        }
