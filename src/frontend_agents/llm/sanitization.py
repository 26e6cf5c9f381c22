"""Redaction for text echoed into logs and CLI output.

Jira, Figma, and GitHub error bodies, agent stderr, and model responses are
previewed through :func:`sanitize_preview` so that the credentials this tool
is configured with (and the e-mail addresses Jira payloads carry) never reach
a log line.
"""

from __future__ import annotations

import re
from collections.abc import Callable

_MAX_PREVIEW_CHARS = 2_000

_TOKEN = "[redacted-token]"

_Replacement = str | Callable[[re.Match[str]], str]

# Order matters: credentials embedded in URLs must go before the e-mail rule.
_REPLACEMENTS: tuple[tuple[re.Pattern[str], _Replacement], ...] = (
    # Authorization and X-Figma-Token headers, plain or JSON-quoted.
    (
        re.compile(
            r"(?i)\b(authorization|x-figma-token)(\s*[\"']?\s*[:=]\s*[\"']?)"
            r"((?:bearer|basic|token)\s+)?[^\s\"',}]+",
        ),
        rf"\1\2\3{_TOKEN}",
    ),
    (
        re.compile(r"(?i)\b(bearer|basic)\s+[a-z0-9._\-=+/]{8,}"),
        rf"\1 {_TOKEN}",
    ),
    (
        re.compile(r"(?i)\b(https?://)[^\s/:@]+:[^\s/@]+@"),
        r"\1[redacted-credentials]@",
    ),
    # GitHub, Figma, Atlassian, and model provider key formats.
    (
        re.compile(
            r"\b(gh[pousr]_[A-Za-z0-9]{16,}|github_pat_[A-Za-z0-9_]{20,}"
            r"|figd_[A-Za-z0-9_\-]{8,}|ATATT[A-Za-z0-9_\-=]{16,}|sk-(?:ant-)?[A-Za-z0-9_\-]{8,})",
        ),
        _TOKEN,
    ),
    (
        re.compile(
            r"(?i)\b(frontend_agents|github|jira|figma|openai|anthropic|gemini)[a-z0-9_]*_?"
            r"(api_|access_)?(key|token)\b\s*[:=]\s*['\"]?[^'\" \n\r\t]+['\"]?",
        ),
        "[redacted-secret]",
    ),
    (
        re.compile(r"(?i)([?&](?:token|key|signature|auth)=[^&\s]+)"),
        lambda match: match.group(1).split("=")[0] + "=[redacted]",
    ),
    (
        re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
        "[redacted-email]",
    ),
)


def sanitize_preview(text: str, *, max_chars: int = _MAX_PREVIEW_CHARS) -> str:
    """Strip ``text``, redact service credentials and e-mails, and clamp to ``max_chars``."""

    compact = text.strip()
    if not compact:
        return ""

    redacted = compact
    for pattern, replacement in _REPLACEMENTS:
        redacted = pattern.sub(replacement, redacted)
    return redacted[:max_chars]
