"""Async clients for Jira, Figma, and GitHub."""

from frontend_agents.integrations.figma import FigmaClient
from frontend_agents.integrations.github import GitHubClient
from frontend_agents.integrations.http import IntegrationError
from frontend_agents.integrations.jira import JiraClient

__all__ = [
    "FigmaClient",
    "GitHubClient",
    "IntegrationError",
    "JiraClient",
]
