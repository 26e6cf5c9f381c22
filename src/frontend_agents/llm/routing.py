"""Routing resolution helpers for per-worker completion calls."""

from __future__ import annotations

from dataclasses import dataclass

from frontend_agents.config import LlmSettings

SUPPORTED_AGENTS = ("claude", "codex", "gemini")
SUPPORTED_TIERS = ("main", "specialized")

DEFAULT_MODELS: dict[str, dict[str, str]] = {
    "claude": {"main": "opus", "specialized": "sonnet"},
    "codex": {"main": "gpt-5-codex", "specialized": "gpt-5-codex-mini"},
    "gemini": {"main": "gemini-2.5-pro", "specialized": "gemini-2.5-flash"},
}

DEFAULT_COMMAND_TEMPLATES: dict[str, str] = {
    "codex": "codex exec --model {model} {prompt}",
    "claude": "claude -p --model {model} --permission-mode dontAsk -- {prompt}",
    "gemini": "gemini --model {model} --prompt {prompt}",
}


@dataclass(slots=True, frozen=True)
class FrozenRouting:
    """Resolved immutable routing for one worker tier."""

    agent: str
    tier: str
    model: str
    command_template: str


@dataclass(slots=True)
class RoutingDefaults:
    """Settings snapshot used to resolve routing per worker tier."""

    default_agent: str
    command_templates: dict[str, str]
    models: dict[str, dict[str, str]]

    @classmethod
    def from_settings(cls, settings: LlmSettings) -> RoutingDefaults:
        """Build validated defaults from LLM settings."""

        default_agent = _normalize(settings.agent)
        _validate_supported_agent(default_agent)

        command_templates = dict(DEFAULT_COMMAND_TEMPLATES)
        if settings.command_template:
            command_templates[default_agent] = settings.command_template
        for agent, template in command_templates.items():
            if not template.strip():
                raise ValueError(f"Empty command template for agent={agent!r}")

        models = {agent: dict(tiers) for agent, tiers in DEFAULT_MODELS.items()}
        if settings.main_model:
            models[default_agent]["main"] = settings.main_model
        if settings.specialized_model:
            models[default_agent]["specialized"] = settings.specialized_model

        return cls(
            default_agent=default_agent,
            command_templates=command_templates,
            models=models,
        )


def resolve_routing(
    *,
    defaults: RoutingDefaults,
    tier: str,
    agent_override: str | None = None,
    model_override: str | None = None,
) -> FrozenRouting:
    """Resolve agent, model, and command template for a worker tier."""

    agent = _normalize(agent_override) if agent_override is not None else defaults.default_agent
    _validate_supported_agent(agent)
    tier = _normalize(tier)
    if tier not in SUPPORTED_TIERS:
        raise ValueError(f"Unsupported worker tier: {tier!r}. Use one of {SUPPORTED_TIERS}.")
    model = model_override.strip() if model_override is not None else defaults.models[agent][tier]
    if not model:
        raise ValueError(f"Resolved model is empty for agent={agent!r}, tier={tier!r}")
    return FrozenRouting(
        agent=agent,
        tier=tier,
        model=model,
        command_template=defaults.command_templates[agent].strip(),
    )


def _normalize(value: str) -> str:
    return value.strip().lower()


def _validate_supported_agent(agent: str) -> None:
    if agent in SUPPORTED_AGENTS:
        return
    raise ValueError(f"Unsupported LLM agent: {agent!r}. Use codex, claude, or gemini.")
