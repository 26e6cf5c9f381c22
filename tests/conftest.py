"""Shared test fixtures."""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Callable
from dataclasses import replace

import httpx
import pytest

from frontend_agents.config import ENV_PREFIX, Settings
from frontend_agents.llm.backend import CompletionRequest, CompletionResult
from frontend_agents.llm.routing import FrozenRouting
from frontend_agents.orchestrator.models import TaskType, WorkerConfig, WorkItem

_ECHO_AGENT_COMMAND_TEMPLATE = (
    f"{sys.executable} -m frontend_agents.llm.backend.echo_agent "
    "--prompt-file {prompt_file} --model {model}"
)

_UNPREFIXED = (
    "LLM_AGENT",
    "MAIN_AGENT_MODEL",
    "SPECIALIZED_AGENT_MODEL",
    "LLM_COMMAND_TEMPLATE",
    "LLM_COMPLETION_TIMEOUT_SECONDS",
    "MAX_PARALLEL_AGENTS",
    "SPECIALIZED_MAX_CONCURRENT",
    "RETRY_ATTEMPTS",
    "RETRY_BASE_SECONDS",
    "TASK_TIMEOUT_MINUTES",
    "LOG_LEVEL",
    "LOG_FILE",
    "JIRA_HOST",
    "JIRA_USERNAME",
    "JIRA_API_TOKEN",
    "FIGMA_ACCESS_TOKEN",
    "GITHUB_TOKEN",
    "GITHUB_REPOSITORY",
    "GITHUB_BASE_BRANCH",
    "GITHUB_API_URL",
    "GITHUB_DRAFT_PULL_REQUESTS",
)

TEST_ROUTING = FrozenRouting(
    agent="codex",
    tier="specialized",
    model="test-model",
    command_template="codex exec --model {model} {prompt}",
)


class FakeCompletion:
    """Completion backend that records requests and replies from a script."""

    def __init__(self, reply: str | Callable[[CompletionRequest], str] = "") -> None:
        self.reply = reply
        self.requests: list[CompletionRequest] = []

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        self.requests.append(request)
        text = self.reply(request) if callable(self.reply) else self.reply
        return CompletionResult(text=text, exit_code=0, duration_ms=1)


class FakeGitHub:
    """MockTransport handler emulating the GitHub endpoints used for publishing."""

    def __init__(
        self,
        repo: str = "acme/web",
        default_branch: str = "main",
        *,
        failing_puts: int = 0,
        failing_labels: int = 0,
    ) -> None:
        self.repo = repo
        self.repo_path = f"/repos/{repo}"
        self.default_branch = default_branch
        self.requests: list[httpx.Request] = []
        self.branches: set[str] = set()
        self.open_pulls: dict[str, int] = {}
        self.failing_puts = failing_puts
        self.failing_labels = failing_labels

    def __call__(self, request: httpx.Request) -> httpx.Response:  # noqa: PLR0911
        self.requests.append(request)
        path = request.url.path.removeprefix(self.repo_path)
        if request.method == "GET" and path == "":
            return httpx.Response(200, json={"default_branch": self.default_branch})
        if request.method == "GET" and path.startswith("/git/ref/heads/"):
            return httpx.Response(200, json={"object": {"sha": "base-sha"}})
        if request.method == "GET" and path.startswith("/contents/"):
            return httpx.Response(404, json={"message": "Not Found"})
        if request.method == "PUT" and path.startswith("/contents/"):
            if self.failing_puts:
                self.failing_puts -= 1
                return httpx.Response(502, text="Bad Gateway")
            return httpx.Response(201, json={"content": {"path": path}})
        if request.method == "POST" and path == "/git/refs":
            ref = json.loads(request.content)["ref"]
            if ref in self.branches:
                return httpx.Response(422, json={"message": "Reference already exists"})
            self.branches.add(ref)
            return httpx.Response(201, json={"ref": ref})
        if request.method == "GET" and path == "/pulls":
            head = request.url.params["head"].split(":", 1)[1]
            number = self.open_pulls.get(head)
            return httpx.Response(200, json=[self._pull(number)] if number else [])
        if request.method == "POST" and path == "/pulls":
            number = len(self.open_pulls) + 1
            self.open_pulls[json.loads(request.content)["head"]] = number
            return httpx.Response(201, json=self._pull(number))
        if request.method == "POST" and path.endswith("/labels"):
            if self.failing_labels:
                self.failing_labels -= 1
                return httpx.Response(502, text="Bad Gateway")
            return httpx.Response(200, json=[])
        return httpx.Response(404, json={"message": "Not Found"})

    def _pull(self, number: int) -> dict:
        return {"number": number, "html_url": f"https://github.com/{self.repo}/pull/{number}"}

    def calls(self, method: str) -> list[str]:
        return [
            request.url.path.removeprefix(self.repo_path)
            for request in self.requests
            if request.method == method
        ]


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Drop any configuration inherited from the developer shell."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)
    for name in _UNPREFIXED:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def required_env(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_testtoken")
    monkeypatch.setenv("GITHUB_REPOSITORY", "acme/web")


@pytest.fixture()
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def fake_completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture()
def echo_agent(monkeypatch):
    """Monkeypatch Settings.from_env to route completions to the echo agent."""
    original_from_env = Settings.from_env

    def _patched_from_env():
        settings = original_from_env()
        llm = replace(settings.llm, command_template=_ECHO_AGENT_COMMAND_TEMPLATE)
        return replace(settings, llm=llm)

    monkeypatch.setattr(Settings, "from_env", staticmethod(_patched_from_env))


def worker_config(worker_id: str = "worker") -> WorkerConfig:
    return WorkerConfig(id=worker_id, name=worker_id.replace("-", " ").title(), model="test-model")


def work_item(task_type: TaskType, payload: dict | None = None) -> WorkItem:
    return WorkItem(
        id=f"{task_type.value}-1",
        type=task_type,
        description=task_type.value,
        input=dict(payload or {}),
    )
