# Shopping MCP Relay - JSON-RPC envelope codec

import json
import logging
import time
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import ValidationError

from models import JSONRPC_VERSION, MCPRequest, MCPResponse
from utils.errors import EnvelopeParseError

logger = logging.getLogger(__name__)

_last_request_id = 0


def next_request_id() -> int:
    """Time-based correlation id, strictly increasing within the process."""
    global _last_request_id
    _last_request_id = max(int(time.time() * 1000), _last_request_id + 1)
    return _last_request_id


def build_request(method: str, params: Optional[Dict[str, Any]] = None,
                  request_id: Optional[Union[int, str]] = None,
                  notification: bool = False) -> MCPRequest:
    """Build a request envelope for a remote method."""
    if not method or not method.strip():
        raise ValueError("method name must be non-empty")
    if params is not None:
        if not isinstance(params, dict):
            raise ValueError(f"params for {method} must be a mapping, got {type(params).__name__}")
        try:
            json.dumps(params)
        except (TypeError, ValueError) as e:
            raise ValueError(f"params for {method} are not JSON-serializable: {e}") from e

    if notification:
        request_id = None
    elif request_id is None:
        request_id = next_request_id()

    return MCPRequest(id=request_id, method=method, params=params)


def encode_request(request: MCPRequest) -> str:
    # built by hand so that explicit nulls inside params survive
    payload: Dict[str, Any] = {"jsonrpc": request.jsonrpc or JSONRPC_VERSION}
    if request.id is not None:
        payload["id"] = request.id
    payload["method"] = request.method
    if request.params is not None:
        payload["params"] = request.params
    return json.dumps(payload, ensure_ascii=False)


def _iter_sse_data(text: str) -> Iterator[str]:
    """Yield the joined ``data:`` payload of each server-sent event."""
    data_lines: List[str] = []
    for line in text.splitlines():
        if not line.strip():
            if data_lines:
                yield "\n".join(data_lines)
                data_lines = []
            continue
        if line.startswith("data:"):
            data_lines.append(line[5:].lstrip())
    if data_lines:
        yield "\n".join(data_lines)


def _is_event_stream(text: str, content_type: str) -> bool:
    if "text/event-stream" in (content_type or "").lower():
        return True
    return text.lstrip().startswith(("event:", "data:", "id:"))


def _load_messages(text: str, content_type: str) -> List[Any]:
    if _is_event_stream(text, content_type):
        messages = []
        for data in _iter_sse_data(text):
            try:
                messages.append(json.loads(data))
            except json.JSONDecodeError:
                logger.debug(f"[Envelope] Skipping non-JSON event: {data[:200]}")
        if not messages:
            raise EnvelopeParseError("Event stream carried no JSON-RPC message")
        return messages

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise EnvelopeParseError(f"Response body is not valid JSON: {e}") from e
    # batch replies arrive as an array
    return data if isinstance(data, list) else [data]


def _select_response(messages: List[Any], expected_id: Optional[Union[int, str]]) -> Dict[str, Any]:
    responses = [
        m for m in messages
        if isinstance(m, dict) and ("result" in m or "error" in m)
    ]
    if not responses:
        raise EnvelopeParseError("No JSON-RPC response with a result or error found in body")
    if expected_id is not None:
        for message in responses:
            if str(message.get("id")) == str(expected_id):
                return message
        if len(responses) > 1:
            raise EnvelopeParseError(f"None of {len(responses)} responses answers request {expected_id}")
        logger.warning(
            f"[Envelope] Response id {responses[0].get('id')!r} does not match request {expected_id!r}"
        )
    return responses[-1]


def decode_response(body: Union[str, bytes], content_type: str = "",
                    expected_id: Optional[Union[int, str]] = None) -> MCPResponse:
    """Parse a raw body (plain JSON or an event stream) into a response envelope.

    A protocol-level ``error`` member is returned inside the envelope, not
    raised; only bodies that cannot be read as an envelope raise
    :class:`EnvelopeParseError`.
    """
    if isinstance(body, bytes):
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EnvelopeParseError(f"Response body is not UTF-8: {e}") from e
    else:
        text = body

    if not text.strip():
        raise EnvelopeParseError("Response body is empty")

    message = _select_response(_load_messages(text, content_type), expected_id)
    try:
        return MCPResponse.model_validate(message)
    except ValidationError as e:
        raise EnvelopeParseError(f"Malformed response envelope: {e}") from e
