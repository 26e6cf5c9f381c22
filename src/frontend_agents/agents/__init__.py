"""Specialized workers registered with the coordinator."""

from frontend_agents.agents.code_generator import CodeGeneratorWorker
from frontend_agents.agents.figma_designer import FigmaDesignerWorker
from frontend_agents.agents.github_manager import GitHubManagerWorker
from frontend_agents.agents.jira_analyzer import JiraAnalyzerWorker
from frontend_agents.agents.prompt_analyzer import PromptAnalyzerWorker
from frontend_agents.agents.qa_tester import QATesterWorker

__all__ = [
    "CodeGeneratorWorker",
    "FigmaDesignerWorker",
    "GitHubManagerWorker",
    "JiraAnalyzerWorker",
    "PromptAnalyzerWorker",
    "QATesterWorker",
]
