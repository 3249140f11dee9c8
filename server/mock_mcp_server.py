#!/usr/bin/env python3
"""
Mock Shopping MCP Server - speaks the remote tool server's protocol
Port: 8003 (run with ``python -m server.mock_mcp_server``)

Streamable-HTTP style sessions: ``initialize`` hands out an id in the
``Mcp-Session-Id`` header and every later request must present it.
"""

import logging
import uuid
from typing import Any, Dict, Optional, Set

from fastapi import FastAPI, Header, Response
from fastapi.responses import JSONResponse

from config import MCP_CONFIG, MOCK_CONFIG, SERVER_CONFIG
from models import MCPError, MCPRequest, MCPResponse
from tools_manager import tools_manager

logger = logging.getLogger(__name__)

SESSION_REQUIRED = "Bad Request: No valid session ID provided"

app = FastAPI(title="Mock Shopping MCP Server", version=SERVER_CONFIG["version"])

active_sessions: Set[str] = set()


def expire_sessions() -> None:
    """Forget every issued session, as a server restart would."""
    active_sessions.clear()


def _error(request_id: Any, code: int, message: str, status_code: int = 200) -> JSONResponse:
    body = MCPResponse(id=request_id, error=MCPError(code=code, message=message))
    return JSONResponse(body.model_dump(exclude_none=True), status_code=status_code)


def _result(request_id: Any, result: Any, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    body = MCPResponse(id=request_id, result=result)
    return JSONResponse(body.model_dump(exclude_none=True), headers=headers)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "Mock Shopping MCP", "sessions": len(active_sessions)}


@app.post("/mcp")
async def mcp_endpoint(request: MCPRequest,
                       mcp_session_id: Optional[str] = Header(default=None)):
    """MCP protocol endpoint"""
    logger.info(f"[MOCK_MCP] {request.method} (id={request.id})")
    method = request.method
    params = request.params or {}

    if method == "initialize":
        session_id = str(uuid.uuid4())
        active_sessions.add(session_id)
        return _result(
            request.id,
            {
                "protocolVersion": params.get("protocolVersion", MCP_CONFIG["protocol_version"]),
                "capabilities": {"tools": {}},
                "serverInfo": {"name": "mock-shopping-mcp", "version": SERVER_CONFIG["version"]},
            },
            headers={"Mcp-Session-Id": session_id},
        )

    if mcp_session_id not in active_sessions:
        return _error(request.id, -32000, SESSION_REQUIRED, status_code=400)

    if request.is_notification:
        return Response(status_code=202)

    if method == "tools/list":
        return _result(request.id, {"tools": tools_manager.get_tools_list()})

    if method == "tools/call":
        tool_name = params.get("name")
        arguments = params.get("arguments") or {}
        tool_function = tools_manager.get_tool_function(tool_name)
        if tool_function is None:
            return _error(request.id, -32602, f"Unknown tool: {tool_name}")

        tool_response = await tool_function(arguments)
        tool_response.id = request.id
        return JSONResponse(tool_response.model_dump(exclude_none=True))

    return _error(request.id, -32601, f"Unknown method: {method}")


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=SERVER_CONFIG["log_level"])
    uvicorn.run(app, host="0.0.0.0", port=MOCK_CONFIG["port"])
