"""Shared async HTTP client base for third-party service integrations."""

from __future__ import annotations

import logging
from typing import Any, Self

import httpx

from frontend_agents import __version__
from frontend_agents.llm.sanitization import sanitize_preview

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_USER_AGENT = f"frontend-agents/{__version__}"

_ERROR_PREVIEW_CHARS = 300


class IntegrationError(RuntimeError):
    """Failed call to a third-party service."""

    def __init__(self, service: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code


class ServiceClient:
    """``httpx.AsyncClient`` wrapper with base URL, auth headers, and error mapping."""

    service = "http"
    health_path = "/"

    def __init__(  # noqa: PLR0913
        self,
        *,
        base_url: str,
        headers: dict[str, str] | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        base_headers = {"User-Agent": DEFAULT_USER_AGENT, "Accept": "application/json"}
        if headers:
            base_headers.update(headers)
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=base_headers,
            auth=auth,
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            transport=transport or httpx.AsyncHTTPTransport(retries=max_retries),
            follow_redirects=True,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as error:
            logger.warning("%s timeout on %s %s", self.service, method, path)
            raise IntegrationError(self.service, f"timeout on {method} {path}") from error
        except httpx.HTTPError as error:
            logger.warning("%s HTTP error on %s %s: %s", self.service, method, path, error)
            raise IntegrationError(self.service, str(error)) from error

        if not response.is_success:
            preview = sanitize_preview(response.text, max_chars=_ERROR_PREVIEW_CHARS)
            raise IntegrationError(
                self.service,
                f"HTTP {response.status_code} on {method} {path}: {preview}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as error:
            raise IntegrationError(
                self.service,
                f"invalid JSON from {method} {path}",
                status_code=response.status_code,
            ) from error

    async def test_connection(self) -> bool:
        """GET ``health_path``; report failure instead of raising."""

        try:
            await self._request("GET", self.health_path)
        except IntegrationError as error:
            logger.warning("%s connection check failed: %s", self.service, error)
            return False
        return True

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()
