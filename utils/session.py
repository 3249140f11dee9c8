# Shopping MCP Relay - session lifecycle

import asyncio
import logging
from typing import Any, Dict, Optional

from utils.envelope import build_request
from utils.errors import HandshakeError, RelayError
from utils.transport import NO_SESSION, SESSION_HEADER, McpTransport

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns the one session id shared by every call through a transport.

    The id is created lazily by an ``initialize`` handshake and dropped again
    when the server stops recognising it. Concurrent callers share a single
    in-flight handshake.
    """

    def __init__(self, transport: McpTransport, protocol_version: str = "2024-11-05",
                 client_name: str = "tira-agentic-shopping", client_version: str = "1.0.0",
                 send_initialized: bool = False):
        self.transport = transport
        self.protocol_version = protocol_version
        self.client_name = client_name
        self.client_version = client_version
        self.send_initialized = send_initialized
        self.server_info: Dict[str, Any] = {}
        self.handshake_count = 0
        self._session_id: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def has_session(self) -> bool:
        return self._session_id is not None

    def handshake_params(self) -> Dict[str, Any]:
        return {
            "protocolVersion": self.protocol_version,
            "capabilities": {"tools": {}},
            "clientInfo": {
                "name": self.client_name,
                "version": self.client_version,
            },
        }

    async def ensure_session(self) -> str:
        """Return the current session id, handshaking first if there is none."""
        if self._session_id is not None:
            return self._session_id
        async with self._lock:
            # another caller may have finished the handshake while we waited
            if self._session_id is None:
                self._session_id = await self._handshake()
            return self._session_id

    def invalidate(self, stale: Optional[str] = None) -> None:
        """Forget the session id.

        With ``stale`` given, only clear it if it is still the current id, so a
        session another caller has just re-established survives.
        """
        if stale is not None and stale != self._session_id:
            return
        if self._session_id is not None:
            logger.info("[Session] Discarding session")
        self._session_id = None

    async def _handshake(self) -> str:
        request = build_request("initialize", self.handshake_params())
        logger.info(f"[Session] Initializing session with {self.transport.url}")

        result = await self.transport.post(request)
        self.handshake_count += 1

        envelope = result.envelope
        if envelope is not None and envelope.error is not None:
            raise HandshakeError(
                f"MCP initialization failed: {envelope.error.message}",
                status_code=result.status_code,
            )
        if not result.ok:
            raise HandshakeError(
                f"MCP initialization failed: HTTP {result.status_code} {result.reason}".rstrip(),
                status_code=result.status_code,
            )

        if envelope is not None and isinstance(envelope.result, dict):
            self.server_info = envelope.result.get("serverInfo") or {}

        session_id = result.headers.get(SESSION_HEADER)
        if session_id:
            logger.info("[Session] Session initialized")
        else:
            logger.warning("[Session] Server returned no session id; continuing without one")
            session_id = NO_SESSION

        if self.send_initialized:
            await self._notify_initialized(session_id)
        return session_id

    async def _notify_initialized(self, session_id: str) -> None:
        try:
            await self.transport.notify("notifications/initialized", session_id=session_id)
        except RelayError as e:
            logger.warning(f"[Session] initialized notification failed (non-fatal): {e}")
