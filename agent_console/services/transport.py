"""
Transport client for the agent backend.

Issues JSON requests over one shared httpx.AsyncClient and normalizes every
failure into the AgentServiceError hierarchy so callers handle a single
signal. No retries: a failed call fails once and the caller decides.

Usage:
    transport = TransportClient("http://localhost:8000")
    status = await transport.get("/agent/status")
    await transport.post("/agent/run-loop", {"max_steps": 10})
    await transport.close()
"""

import json
from typing import Any

import httpx
import structlog

from agent_console.config import TransportConfig
from agent_console.exceptions import (
    BackendUnavailableError,
    MalformedResponseError,
    TransportError,
)

logger = structlog.get_logger(__name__)

_JSON_HEADERS = {"Content-Type": "application/json"}


class TransportClient:
    """JSON-over-HTTP client bound to the agent backend base URL."""

    def __init__(
        self,
        base_url: str,
        transport_config: TransportConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the transport client.

        Args:
            base_url:         Agent backend base URL, e.g. "http://localhost:8000".
            transport_config: Timeout settings.
            transport:        Optional httpx transport (tests pass a MockTransport).
        """
        self.base_url = base_url.rstrip("/")
        self.transport_config = transport_config or TransportConfig()
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.transport_config.request_timeout_seconds),
            transport=transport,
        )

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        json_body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Send a request and return the parsed JSON body.

        The JSON content type is always sent; caller headers are merged on top
        and only replace it when they set Content-Type themselves.

        Args:
            path:      Backend path, e.g. "/agent/status".
            method:    HTTP method.
            json_body: Value serialized as the JSON request body (None = no body).
            headers:   Extra request headers.

        Returns:
            Parsed JSON response body.

        Raises:
            TransportError: Non-2xx response (carries status code and text).
            MalformedResponseError: The response body is not valid JSON.
            BackendUnavailableError: Connection-level failure or timeout.
        """
        merged_headers = httpx.Headers(_JSON_HEADERS)
        merged_headers.update(headers or {})
        content = json.dumps(json_body) if json_body is not None else None

        try:
            response = await self._client.request(
                method, path, content=content, headers=merged_headers
            )
        except httpx.HTTPError as e:
            reason = str(e) or type(e).__name__
            logger.warning("backend_unreachable", method=method, backend_path=path, error=reason)
            raise BackendUnavailableError(f"{method} {path}: {reason}") from e

        if not response.is_success:
            logger.warning(
                "backend_request_failed",
                method=method,
                backend_path=path,
                status_code=response.status_code,
            )
            raise TransportError(response.status_code, response.reason_phrase)

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"{method} {path}: response is not JSON") from e

    async def get(self, path: str, **kwargs: Any) -> Any:
        """GET a backend path."""
        return await self.request(path, method="GET", **kwargs)

    async def post(self, path: str, json_body: Any = None, **kwargs: Any) -> Any:
        """POST a JSON body to a backend path."""
        return await self.request(path, method="POST", json_body=json_body, **kwargs)
