# Shopping MCP Relay - tool result normalization

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from models import (
    ContentBlock,
    Payload,
    StructuredListPayload,
    StructuredSingletonPayload,
    TextPayload,
)

logger = logging.getLogger(__name__)

LIST_KEYS = ("products", "items")


def _first_text_block(result: dict) -> Optional[ContentBlock]:
    content = result.get("content")
    if not isinstance(content, list):
        return None
    for raw in content:
        if not isinstance(raw, dict):
            continue
        try:
            block = ContentBlock.model_validate(raw)
        except ValidationError:
            continue
        if block.type == "text":
            return block
    return None


def extract_content(result: Any) -> Any:
    """Reduce an MCP tool result to one logical value.

    The first ``text`` content block wins: its text is returned JSON-decoded
    when possible, otherwise verbatim (markdown prose is expected). Results
    without a usable text block are returned unchanged.
    """
    if not isinstance(result, dict):
        return result
    block = _first_text_block(result)
    if block is None or not block.text:
        return result
    try:
        return json.loads(block.text)
    except json.JSONDecodeError:
        return block.text


def to_payload(value: Any) -> Payload:
    """Tag an extracted value as text, a list of records, or a single object."""
    if isinstance(value, str):
        return TextPayload(text=value)
    if isinstance(value, list):
        return StructuredListPayload(items=value, source=value)
    if isinstance(value, dict):
        for key in LIST_KEYS:
            if isinstance(value.get(key), list):
                return StructuredListPayload(items=value[key], source=value)
        return StructuredSingletonPayload(data=value)
    return StructuredSingletonPayload(data=value)


def preview(value: Any, limit: int = 500) -> str:
    """Short printable form of a tool result for log lines."""
    if isinstance(value, str):
        text = value
    else:
        try:
            text = json.dumps(value, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            text = repr(value)
    return text if len(text) <= limit else text[:limit] + "..."
