"""Backend interface for text completion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(slots=True)
class CompletionRequest:
    """Inputs required to run one completion."""

    system_prompt: str
    user_prompt: str
    agent: str
    model: str
    command_template: str
    timeout_seconds: float


@dataclass(slots=True)
class CompletionResult:
    """Completion text plus execution metadata."""

    text: str
    exit_code: int
    duration_ms: int


class CompletionBackend(Protocol):
    """Protocol implemented by completion runners."""

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Run a completion and return the produced text."""
