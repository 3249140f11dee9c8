# Shopping MCP Relay - tool invocation client

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt
from tenacity.wait import wait_base

from config import MCP_CONFIG
from models import MCPResponse
from utils.content import extract_content, preview
from utils.envelope import build_request
from utils.errors import (
    EnvelopeParseError,
    ErrorClassifier,
    ErrorKind,
    GatewayError,
    SessionExpiredError,
    TransportError,
)
from utils.session import SessionManager
from utils.transport import NO_SESSION, McpTransport

logger = logging.getLogger(__name__)

# first attempt plus one retry after re-handshaking
MAX_ATTEMPTS = 2


@dataclass(frozen=True)
class wait_for_gateway(wait_base):
    """Pause before retrying a gateway fault; a stale session is retried at once."""

    backoff: float

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        if outcome is None or not outcome.failed:
            return 0.0
        error = outcome.exception()
        if getattr(error, "kind", None) is ErrorKind.GATEWAY:
            return max(self.backoff, 0.0)
        return 0.0


class McpRelayClient:
    """Calls tools on the remote MCP server over a managed session.

    A stale session (or a gateway fault) gets exactly one retry on a fresh
    session; every other failure reaches the caller untouched.
    """

    def __init__(self, transport: McpTransport, sessions: Optional[SessionManager] = None,
                 classifier: Optional[ErrorClassifier] = None, gateway_backoff: float = 0.5):
        self.transport = transport
        self.sessions = sessions or SessionManager(transport)
        self.classifier = classifier or ErrorClassifier.from_config(MCP_CONFIG)
        self.gateway_backoff = gateway_backoff

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None,
                    client: Optional[httpx.AsyncClient] = None) -> "McpRelayClient":
        config = config or MCP_CONFIG
        transport = McpTransport(
            config["url"],
            auth_token=config.get("auth_token"),
            timeout=config.get("timeout_seconds", 30.0),
            client=client,
        )
        sessions = SessionManager(
            transport,
            protocol_version=config.get("protocol_version", "2024-11-05"),
            client_name=config.get("client_name", "tira-agentic-shopping"),
            client_version=config.get("client_version", "1.0.0"),
            send_initialized=config.get("send_initialized", False),
        )
        return cls(
            transport,
            sessions=sessions,
            classifier=ErrorClassifier.from_config(config),
            gateway_backoff=config.get("gateway_backoff_seconds", 0.5),
        )

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        """Invoke a remote tool and return its normalized result."""
        if not name:
            raise ValueError("Tool name is required")
        arguments = arguments or {}

        logger.info(f"[MCP Relay] Calling tool: {name}")
        logger.debug(f"[MCP Relay] Arguments: {arguments}")

        envelope = await self._request(
            "tools/call",
            {"name": name, "arguments": arguments},
            failure_prefix="Tool call failed",
        )

        result = envelope.result
        if isinstance(result, dict) and result.get("isError"):
            logger.warning(f"[MCP Relay] Tool {name} reported an error result")

        value = extract_content(result)
        logger.info(f"[MCP Relay] Tool result: {preview(value)}")
        return value

    async def list_tools(self) -> List[Dict[str, Any]]:
        """Capability discovery (``tools/list``)."""
        envelope = await self._request("tools/list", None, failure_prefix="List tools failed")
        if isinstance(envelope.result, dict):
            return envelope.result.get("tools") or []
        return []

    async def _request(self, method: str, params: Optional[Dict[str, Any]],
                       failure_prefix: str) -> MCPResponse:
        sent: Dict[str, str] = {}

        def renew_session(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            logger.warning(
                f"[MCP Relay] {method} hit {error.kind.value} ({error.remote_message}); "
                "re-initializing session and retrying once"
            )
            self.sessions.invalidate(sent.get("session_id"))

        retrying = AsyncRetrying(
            stop=stop_after_attempt(MAX_ATTEMPTS),
            retry=retry_if_exception_type((SessionExpiredError, GatewayError)),
            wait=wait_for_gateway(self.gateway_backoff),
            before_sleep=renew_session,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                # the next attempt re-handshakes once renew_session has dropped the id
                session_id = await self.sessions.ensure_session()
                sent["session_id"] = session_id
                return await self._send(build_request(method, params), session_id, failure_prefix)

    async def _send(self, request, session_id: str, failure_prefix: str) -> MCPResponse:
        result = await self.transport.post(request, session_id=session_id)
        envelope = result.envelope
        sent_session = session_id != NO_SESSION

        if envelope is not None and envelope.error is not None:
            logger.error(f"[MCP Relay] {request.method} failed: {envelope.error.message}")
            raise self.classifier.build(
                failure_prefix,
                envelope.error.message,
                code=envelope.error.code,
                status_code=result.status_code,
                sent_session=sent_session,
            )

        if not result.ok:
            message = result.reason or f"HTTP {result.status_code}"
            error = self.classifier.build(
                failure_prefix, message, status_code=result.status_code, sent_session=sent_session
            )
            if error.kind is ErrorKind.BUSINESS:
                raise TransportError(
                    f"{failure_prefix}: HTTP {result.status_code} {message}",
                    status_code=result.status_code,
                )
            raise error

        if envelope is None:
            raise EnvelopeParseError(f"{failure_prefix}: empty response body")
        return envelope

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self) -> "McpRelayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


# process-wide relay, created on first use
_relay: Optional[McpRelayClient] = None


def get_relay() -> McpRelayClient:
    global _relay
    if _relay is None:
        logger.info(f"[MCP Relay] Initializing with URL: {MCP_CONFIG['url']}")
        if MCP_CONFIG.get("auth_token"):
            logger.info("[MCP Relay] Using authentication token")
        else:
            logger.info("[MCP Relay] No authentication token - connecting without auth")
        _relay = McpRelayClient.from_config(MCP_CONFIG)
    return _relay


def set_relay(relay: Optional[McpRelayClient]) -> None:
    global _relay
    _relay = relay


async def reset_relay() -> None:
    global _relay
    if _relay is not None:
        await _relay.aclose()
    _relay = None
