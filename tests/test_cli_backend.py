from __future__ import annotations

import json
import sys
from pathlib import Path

import allure
import pytest

from frontend_agents.llm.backend import (
    CliCompletionBackend,
    CompletionBackendError,
    CompletionRequest,
)
from frontend_agents.llm.backend.cli_backend import _build_prompt, _build_run_args

pytestmark = [
    allure.epic("LLM Runtime"),
    allure.feature("Agent Command Rendering"),
]

_ECHO_TEMPLATE = (
    f"{sys.executable} -m frontend_agents.llm.backend.echo_agent "
    "--prompt-file {prompt_file} --model {model}"
)


def _request(**overrides) -> CompletionRequest:
    values = {
        "system_prompt": "You are a frontend developer.",
        "user_prompt": "Reply with exactly: OK",
        "agent": "codex",
        "model": "gpt-5-codex",
        "command_template": _ECHO_TEMPLATE,
        "timeout_seconds": 30.0,
    }
    values.update(overrides)
    return CompletionRequest(**values)


def test_build_run_args_quotes_prompt_as_single_argument() -> None:
    run_args = _build_run_args(
        command_template="codex exec --model {model} {prompt}",
        model="gpt-5-codex",
        prompt='hello "world" $HOME',
        prompt_file=Path("prompt.txt"),
    )

    assert run_args == ["codex", "exec", "--model", "gpt-5-codex", 'hello "world" $HOME']


def test_build_run_args_renders_prompt_file_with_spaces() -> None:
    run_args = _build_run_args(
        command_template="runner --file {prompt_file}",
        model="m",
        prompt="ignored",
        prompt_file=Path("/tmp/work dir/prompt.txt"),
    )

    assert run_args == ["runner", "--file", "/tmp/work dir/prompt.txt"]


def test_build_run_args_requires_prompt_placeholder() -> None:
    with pytest.raises(CompletionBackendError, match=r"\{prompt\} or \{prompt_file\}") as error:
        _build_run_args(
            command_template="codex exec --model {model}",
            model="m",
            prompt="p",
            prompt_file=Path("prompt.txt"),
        )

    assert error.value.transient is False


def test_build_run_args_rejects_unknown_placeholder() -> None:
    with pytest.raises(CompletionBackendError, match="Unsupported command template placeholder"):
        _build_run_args(
            command_template="codex {prompt} --workspace {workspace}",
            model="m",
            prompt="p",
            prompt_file=Path("prompt.txt"),
        )


def test_build_prompt_skips_empty_system_prompt() -> None:
    assert _build_prompt(system_prompt="  ", user_prompt="user") == "user"
    assert _build_prompt(system_prompt="sys", user_prompt="user") == "sys\n\nuser"


@pytest.mark.asyncio
async def test_cli_backend_runs_echo_agent() -> None:
    result = await CliCompletionBackend().complete(_request())

    payload = json.loads(result.text)
    assert payload == {
        "backend": "echo_agent",
        "model": "gpt-5-codex",
        "echo": "Reply with exactly: OK",
    }
    assert result.exit_code == 0
    assert result.duration_ms >= 0


@pytest.mark.asyncio
async def test_cli_backend_reports_missing_executable() -> None:
    request = _request(command_template="definitely-not-an-agent-binary {prompt}")

    with pytest.raises(CompletionBackendError, match="command not found") as error:
        await CliCompletionBackend().complete(request)

    assert error.value.transient is False


@pytest.mark.asyncio
async def test_cli_backend_reports_non_zero_exit() -> None:
    template = f"{sys.executable} -c 'import sys; sys.exit(3)' {{prompt}}"

    with pytest.raises(CompletionBackendError, match="exited with code 3") as error:
        await CliCompletionBackend().complete(_request(command_template=template))

    assert error.value.transient is True


@pytest.mark.asyncio
async def test_cli_backend_times_out() -> None:
    template = f"{sys.executable} -c 'import time; time.sleep(5)' {{prompt}}"

    with pytest.raises(CompletionBackendError, match="timed out"):
        await CliCompletionBackend().complete(
            _request(command_template=template, timeout_seconds=0.2),
        )
