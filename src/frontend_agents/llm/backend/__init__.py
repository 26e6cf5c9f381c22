"""Completion backends."""

from frontend_agents.llm.backend.base import (
    CompletionBackend,
    CompletionRequest,
    CompletionResult,
)
from frontend_agents.llm.backend.cli_backend import CliCompletionBackend, CompletionBackendError

__all__ = [
    "CliCompletionBackend",
    "CompletionBackend",
    "CompletionBackendError",
    "CompletionRequest",
    "CompletionResult",
]
