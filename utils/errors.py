# Shopping MCP Relay - error types and classification

from enum import Enum
from typing import Iterable, Optional


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    PARSE = "parse"
    HANDSHAKE = "handshake"
    SESSION_INVALID = "session_invalid"
    GATEWAY = "gateway"
    BUSINESS = "business"


class RelayError(Exception):
    """Base class for every failure raised by the relay core."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransportError(RelayError):
    """Network failure, timeout, or a non-2xx reply carrying no envelope."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, status_code: Optional[int] = None, unreachable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.unreachable = unreachable


class EnvelopeParseError(RelayError):
    kind = ErrorKind.PARSE


class HandshakeError(RelayError):
    kind = ErrorKind.HANDSHAKE

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(RelayError):
    """The remote answered with a JSON-RPC ``error`` member."""

    kind = ErrorKind.BUSINESS

    def __init__(self, message: str, code: Optional[int] = None,
                 remote_message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.remote_message = remote_message
        self.status_code = status_code


class SessionExpiredError(ProtocolError):
    kind = ErrorKind.SESSION_INVALID


class GatewayError(ProtocolError):
    kind = ErrorKind.GATEWAY


_ERROR_TYPES = {
    ErrorKind.SESSION_INVALID: SessionExpiredError,
    ErrorKind.GATEWAY: GatewayError,
    ErrorKind.BUSINESS: ProtocolError,
}

GATEWAY_STATUS_CODES = frozenset({502, 503, 504})


class ErrorClassifier:
    """Decides whether a failed call is a stale session, a gateway fault or a business error.

    Structured signals (JSON-RPC code, HTTP status) are checked first; message
    substrings are only a compatibility fallback for servers that report
    everything as free text.
    """

    def __init__(self, session_codes: Iterable[int] = (),
                 session_signatures: Iterable[str] = (),
                 gateway_signatures: Iterable[str] = ()):
        self.session_codes = frozenset(session_codes)
        self.session_signatures = tuple(s.lower() for s in session_signatures)
        self.gateway_signatures = tuple(s.lower() for s in gateway_signatures)

    @classmethod
    def from_config(cls, config: dict) -> "ErrorClassifier":
        return cls(
            session_codes=config.get("session_error_codes", ()),
            session_signatures=config.get("session_error_signatures", ()),
            gateway_signatures=config.get("gateway_error_signatures", ()),
        )

    def classify(self, message: str, code: Optional[int] = None,
                 status_code: Optional[int] = None, sent_session: bool = False) -> ErrorKind:
        if code is not None and code in self.session_codes:
            return ErrorKind.SESSION_INVALID
        # Streamable HTTP servers answer 404 for a session id they no longer know
        if status_code == 404 and sent_session:
            return ErrorKind.SESSION_INVALID
        lowered = (message or "").lower()
        if any(sig in lowered for sig in self.session_signatures):
            return ErrorKind.SESSION_INVALID
        if status_code in GATEWAY_STATUS_CODES:
            return ErrorKind.GATEWAY
        if any(sig in lowered for sig in self.gateway_signatures):
            return ErrorKind.GATEWAY
        return ErrorKind.BUSINESS

    def build(self, prefix: str, message: str, code: Optional[int] = None,
              status_code: Optional[int] = None, sent_session: bool = False) -> ProtocolError:
        kind = self.classify(message, code=code, status_code=status_code, sent_session=sent_session)
        error_type = _ERROR_TYPES[kind]
        return error_type(f"{prefix}: {message}", code=code, remote_message=message, status_code=status_code)
