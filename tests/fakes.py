"""Scripted stand-ins for the remote MCP server."""

import json
from typing import Any, Callable, Dict, List, Optional

import httpx

MCP_URL = "http://mcp.test/mcp"


def rpc_result(body: Dict[str, Any], result: Any, status_code: int = 200, **kwargs) -> httpx.Response:
    return httpx.Response(status_code, json={"jsonrpc": "2.0", "id": body.get("id"), "result": result}, **kwargs)


def rpc_error(body: Dict[str, Any], message: str, code: int = -32000, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"jsonrpc": "2.0", "id": body.get("id"), "error": {"code": code, "message": message}},
    )


def text_result(body: Dict[str, Any], text: str, is_error: bool = False) -> httpx.Response:
    return rpc_result(body, {"content": [{"type": "text", "text": text}], "isError": is_error})


Reply = Callable[[Dict[str, Any]], httpx.Response]


class FakeMcpServer:
    """Handler for httpx.MockTransport.

    ``initialize`` hands out ``session-1``, ``session-2``... unless
    ``handshake`` is overridden; other requests are answered from the
    ``replies`` queue, falling back to an ``ok`` text result.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.replies: List[Reply] = []
        self.handshake: Optional[Reply] = None
        self.notification: Optional[Reply] = None
        self.sessions_issued = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content)

        if body["method"] == "initialize":
            if self.handshake is not None:
                return self.handshake(body)
            self.sessions_issued += 1
            return rpc_result(
                body,
                {"protocolVersion": "2024-11-05", "serverInfo": {"name": "fake-mcp", "version": "0.1"}},
                headers={"Mcp-Session-Id": f"session-{self.sessions_issued}"},
            )
        if "id" not in body:
            if self.notification is not None:
                return self.notification(body)
            return httpx.Response(202)
        if self.replies:
            return self.replies.pop(0)(body)
        return text_result(body, "ok")

    def sent(self, method: str) -> List[httpx.Request]:
        return [r for r in self.requests if json.loads(r.content)["method"] == method]

    def bodies(self, method: str) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.sent(method)]
