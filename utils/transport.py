# Shopping MCP Relay - HTTP transport to the remote MCP server

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from models import MCPRequest, MCPResponse
from utils.envelope import build_request, decode_response, encode_request
from utils.errors import EnvelopeParseError, TransportError

logger = logging.getLogger(__name__)

SESSION_HEADER = "Mcp-Session-Id"
NO_SESSION = "no-session-id"


@dataclass
class TransportResult:
    status_code: int
    reason: str
    headers: httpx.Headers
    envelope: Optional[MCPResponse] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class McpTransport:
    """Posts JSON-RPC envelopes to a single MCP endpoint over one pooled client."""

    def __init__(self, url: str, auth_token: Optional[str] = None, timeout: float = 30.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.auth_token = auth_token
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def build_headers(self, session_id: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
        }
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        if session_id and session_id != NO_SESSION:
            headers[SESSION_HEADER] = session_id
        return headers

    async def post(self, request: MCPRequest, session_id: Optional[str] = None) -> TransportResult:
        """Send one envelope and decode whatever came back."""
        try:
            response = await self._get_client().post(
                self.url,
                content=encode_request(request),
                headers=self.build_headers(session_id),
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"[Transport] Timed out calling {request.method} at {self.url}")
            raise TransportError(
                f"Timed out after {self.timeout:g}s waiting for MCP server at {self.url}",
                unreachable=True,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"[Transport] Request to {self.url} failed: {e}")
            raise TransportError(
                f"Network error connecting to MCP server at {self.url}: {e}. "
                "Please verify the URL is correct and the server is accessible.",
                unreachable=True,
            ) from e

        envelope = None
        if response.content.strip():
            try:
                envelope = decode_response(
                    response.content,
                    response.headers.get("content-type", ""),
                    expected_id=request.id,
                )
            except EnvelopeParseError:
                # error pages from proxies are not envelopes; the status code decides
                if response.is_success:
                    raise
                logger.debug(f"[Transport] Non-envelope body with HTTP {response.status_code}")

        return TransportResult(
            status_code=response.status_code,
            reason=response.reason_phrase,
            headers=response.headers,
            envelope=envelope,
        )

    async def notify(self, method: str, session_id: Optional[str] = None) -> TransportResult:
        """Send a notification; servers answer 202 with no body."""
        return await self.post(build_request(method, notification=True), session_id=session_id)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "McpTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
