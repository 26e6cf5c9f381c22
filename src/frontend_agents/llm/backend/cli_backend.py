"""Subprocess-based completion backend for CLI agents."""

from __future__ import annotations

import asyncio
import logging
import shlex
import tempfile
import time
from pathlib import Path

from frontend_agents.llm.backend.base import CompletionRequest, CompletionResult
from frontend_agents.llm.sanitization import sanitize_preview

logger = logging.getLogger(__name__)

_STDERR_PREVIEW_CHARS = 500


class CompletionBackendError(RuntimeError):
    """Completion failure with retryability hint."""

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient


class CliCompletionBackend:
    """Run one CLI agent invocation per completion and return its stdout."""

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        prompt = _build_prompt(
            system_prompt=request.system_prompt,
            user_prompt=request.user_prompt,
        )
        with tempfile.TemporaryDirectory(prefix="frontend-agents-") as workdir:
            prompt_file = Path(workdir) / "prompt.txt"
            prompt_file.write_text(prompt, "utf-8")
            run_args = _build_run_args(
                command_template=request.command_template,
                model=request.model,
                prompt=prompt,
                prompt_file=prompt_file,
            )
            return await _run_subprocess(
                run_args=run_args,
                timeout_seconds=request.timeout_seconds,
            )


def _build_prompt(*, system_prompt: str, user_prompt: str) -> str:
    system = system_prompt.strip()
    if not system:
        return user_prompt
    return f"{system}\n\n{user_prompt}"


def _build_run_args(
    *,
    command_template: str,
    model: str,
    prompt: str,
    prompt_file: Path,
) -> list[str]:
    stripped = command_template.strip()
    if not stripped:
        raise CompletionBackendError("CLI command template is empty.", transient=False)
    if "{prompt}" not in stripped and "{prompt_file}" not in stripped:
        raise CompletionBackendError(
            "CLI command template must include {prompt} or {prompt_file}.",
            transient=False,
        )

    try:
        rendered = stripped.format(
            model=shlex.quote(model),
            prompt=shlex.quote(prompt),
            prompt_file=shlex.quote(str(prompt_file)),
        )
    except KeyError as error:
        raise CompletionBackendError(
            f"Unsupported command template placeholder: {error}",
            transient=False,
        ) from error

    argv = shlex.split(rendered)
    if not argv:
        raise CompletionBackendError(
            "CLI command template rendered empty command.",
            transient=False,
        )
    return argv


async def _run_subprocess(*, run_args: list[str], timeout_seconds: float) -> CompletionResult:
    started = time.monotonic()
    try:
        process = await asyncio.create_subprocess_exec(
            *run_args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as error:
        raise CompletionBackendError(
            f"CLI agent command not found: {run_args[0]}",
            transient=False,
        ) from error
    except OSError as error:
        raise CompletionBackendError(
            f"CLI agent failed to start: {error}",
            transient=True,
        ) from error

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_seconds)
    except TimeoutError as error:
        _kill(process)
        await process.wait()
        raise CompletionBackendError(
            f"CLI agent timed out after {timeout_seconds:g}s",
            transient=True,
        ) from error

    duration_ms = int((time.monotonic() - started) * 1000)
    exit_code = process.returncode if process.returncode is not None else -1
    if exit_code != 0:
        preview = sanitize_preview(
            stderr.decode("utf-8", errors="replace"),
            max_chars=_STDERR_PREVIEW_CHARS,
        )
        logger.debug("CLI agent %s exited with %d", run_args[0], exit_code)
        raise CompletionBackendError(
            f"CLI agent exited with code {exit_code}: {preview or 'no stderr'}",
            transient=True,
        )

    return CompletionResult(
        text=stdout.decode("utf-8", errors="replace").strip(),
        exit_code=exit_code,
        duration_ms=duration_ms,
    )


def _kill(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        return
