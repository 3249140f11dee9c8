# Mock responder helpers - MCP shaped tool results

import json
from typing import Any

from models import MCPError, MCPResponse

INVALID_PARAMS = -32602


def text_response(text: str) -> MCPResponse:
    return MCPResponse(result={
        "content": [{"type": "text", "text": text}],
        "isError": False,
    })


def json_response(data: Any) -> MCPResponse:
    return text_response(json.dumps(data, ensure_ascii=False))


def error_response(message: str, code: int = INVALID_PARAMS) -> MCPResponse:
    return MCPResponse(error=MCPError(code=code, message=message))
