"""Runtime configuration for the automation system."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

ENV_PREFIX = "FRONTEND_AGENTS_"


class ConfigurationError(ValueError):
    """Startup configuration is incomplete or invalid."""

    def __init__(self, message: str, *, missing: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.missing = missing


@dataclass(slots=True)
class LlmSettings:
    """Completion agent and model selection."""

    agent: str = "claude"
    main_model: str = ""
    specialized_model: str = ""
    command_template: str = ""
    completion_timeout_seconds: float = 300.0


@dataclass(slots=True)
class WorkerSettings:
    """Concurrency and retry tunables for the coordinator and its workers."""

    max_parallel_agents: int = 3
    specialized_max_concurrent: int = 2
    retry_attempts: int = 3
    retry_base_seconds: float = 1.0
    task_timeout_minutes: float = 30.0

    @property
    def task_timeout_seconds(self) -> float | None:
        if self.task_timeout_minutes <= 0:
            return None
        return self.task_timeout_minutes * 60


@dataclass(slots=True)
class LoggingSettings:
    level: str = "INFO"
    file: Path | None = None


@dataclass(slots=True)
class JiraSettings:
    """Issue tracker credentials. Optional as a group."""

    host: str = ""
    username: str = ""
    api_token: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.host and self.username and self.api_token)


@dataclass(slots=True)
class FigmaSettings:
    access_token: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.access_token)


@dataclass(slots=True)
class GitHubSettings:
    """Source-control host credentials. Required."""

    token: str = ""
    repository: str = ""
    base_branch: str = ""
    api_url: str = "https://api.github.com"
    draft_pull_requests: bool = True

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0]

    @property
    def repo(self) -> str:
        return self.repository.split("/", 1)[-1]


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    llm: LlmSettings = field(default_factory=LlmSettings)
    workers: WorkerSettings = field(default_factory=WorkerSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    jira: JiraSettings = field(default_factory=JiraSettings)
    figma: FigmaSettings = field(default_factory=FigmaSettings)
    github: GitHubSettings = field(default_factory=GitHubSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with sane defaults for local development.

        Credentials accept both the prefixed name and the conventional unprefixed
        one (``GITHUB_TOKEN``, ``JIRA_HOST``...); the prefixed name wins.
        """

        log_file = _env("LOG_FILE", "").strip()
        return cls(
            llm=LlmSettings(
                agent=_env("LLM_AGENT", "claude"),
                main_model=_env("MAIN_AGENT_MODEL", "").strip(),
                specialized_model=_env("SPECIALIZED_AGENT_MODEL", "").strip(),
                command_template=_env("LLM_COMMAND_TEMPLATE", "").strip(),
                completion_timeout_seconds=float(
                    _env("LLM_COMPLETION_TIMEOUT_SECONDS", "300"),
                ),
            ),
            workers=WorkerSettings(
                max_parallel_agents=_env_int("MAX_PARALLEL_AGENTS", 3),
                specialized_max_concurrent=_env_int("SPECIALIZED_MAX_CONCURRENT", 2),
                retry_attempts=_env_int("RETRY_ATTEMPTS", 3),
                retry_base_seconds=float(_env("RETRY_BASE_SECONDS", "1.0")),
                task_timeout_minutes=float(_env("TASK_TIMEOUT_MINUTES", "30")),
            ),
            logging=LoggingSettings(
                level=_env("LOG_LEVEL", "INFO").strip().upper(),
                file=Path(log_file) if log_file else None,
            ),
            jira=JiraSettings(
                host=_env("JIRA_HOST", "").strip(),
                username=_env("JIRA_USERNAME", "").strip(),
                api_token=_env("JIRA_API_TOKEN", "").strip(),
            ),
            figma=FigmaSettings(
                access_token=_env("FIGMA_ACCESS_TOKEN", "").strip(),
            ),
            github=GitHubSettings(
                token=_env("GITHUB_TOKEN", "").strip(),
                repository=_env("GITHUB_REPOSITORY", "").strip(),
                base_branch=_env("GITHUB_BASE_BRANCH", "").strip(),
                api_url=_env("GITHUB_API_URL", "https://api.github.com").strip(),
                draft_pull_requests=_env_bool("GITHUB_DRAFT_PULL_REQUESTS", default=True),
            ),
        )

    def missing_required(self) -> list[str]:
        """Names of required variables that are not set."""

        missing: list[str] = []
        if not self.github.token:
            missing.append("GITHUB_TOKEN")
        if not self.github.repository:
            missing.append("GITHUB_REPOSITORY")
        return missing

    def validate_required(self) -> None:
        """Raise configuration error listing every missing required variable."""

        missing = self.missing_required()
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                missing=tuple(missing),
            )
        self.validate()

    def validate(self) -> None:
        """Raise configuration error for out-of-range values."""

        if self.workers.max_parallel_agents < 1:
            raise ConfigurationError(f"{ENV_PREFIX}MAX_PARALLEL_AGENTS must be >= 1.")
        if self.workers.specialized_max_concurrent < 1:
            raise ConfigurationError(f"{ENV_PREFIX}SPECIALIZED_MAX_CONCURRENT must be >= 1.")
        if self.workers.retry_attempts < 1:
            raise ConfigurationError(f"{ENV_PREFIX}RETRY_ATTEMPTS must be >= 1.")
        if self.workers.retry_base_seconds < 0:
            raise ConfigurationError(f"{ENV_PREFIX}RETRY_BASE_SECONDS must be >= 0.")
        if self.llm.completion_timeout_seconds <= 0:
            raise ConfigurationError(f"{ENV_PREFIX}LLM_COMPLETION_TIMEOUT_SECONDS must be > 0.")
        if self.github.repository and "/" not in self.github.repository:
            raise ConfigurationError(
                f"Invalid GITHUB_REPOSITORY: {self.github.repository!r}. Expected 'owner/name'.",
            )

    def disabled_integrations(self) -> list[str]:
        """Optional integrations that lack credentials and will not be registered."""

        disabled: list[str] = []
        if not self.jira.configured:
            disabled.append("jira")
        if not self.figma.configured:
            disabled.append("figma")
        return disabled


def _env(name: str, default: str) -> str:
    return os.getenv(f"{ENV_PREFIX}{name}", os.getenv(name, default))


def _env_int(name: str, default: int) -> int:
    raw = _env(name, str(default)).strip()
    try:
        return int(raw)
    except ValueError as error:
        raise ConfigurationError(f"Invalid integer value for {name}: {raw!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = _env(name, "")
    if not value:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigurationError(f"Invalid boolean value for {name}: {value!r}")
