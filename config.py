# Shopping MCP Relay Configuration

import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Local API server
SERVER_CONFIG = {
    "title": "Shopping MCP Relay",
    "version": "1.0.0",
    "host": os.getenv("HOST", "0.0.0.0"),
    "port": int(os.getenv("PORT", "5000")),
    "log_level": os.getenv("LOG_LEVEL", "INFO"),
}

# Remote MCP server
MCP_CONFIG = {
    "url": os.getenv("MCP_SERVER_URL", "https://shopping-mcp-7u0k.onrender.com/mcp"),
    "auth_token": os.getenv("MCP_AUTH_TOKEN") or None,
    "protocol_version": "2024-11-05",
    "client_name": "tira-agentic-shopping",
    "client_version": "1.0.0",
    "timeout_seconds": float(os.getenv("MCP_TIMEOUT_SECONDS", "30")),
    "gateway_backoff_seconds": float(os.getenv("MCP_GATEWAY_BACKOFF_SECONDS", "0.5")),
    # follow initialize with notifications/initialized
    "send_initialized": _env_flag("MCP_SEND_INITIALIZED", False),
    # JSON-RPC error codes the server uses for an unknown/expired session
    "session_error_codes": [],
    "session_error_signatures": [
        "No valid session ID",
        "Invalid session",
        "Session not found",
    ],
    "gateway_error_signatures": [
        "Bad Gateway",
        "Gateway Timeout",
        "Service Unavailable",
    ],
}

# Mock/demo responder
MOCK_CONFIG = {
    "fallback_enabled": _env_flag("MCP_MOCK_FALLBACK", True),
    "port": int(os.getenv("MOCK_MCP_PORT", "8003")),
}

# Product cache
CACHE_CONFIG = {
    "max_entries": 100,
    "ttl_seconds": 24 * 60 * 60,
}
