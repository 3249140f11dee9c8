#!/usr/bin/env python3
"""
Shopping MCP Relay - local API in front of the remote shopping MCP server
Port: 5000
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import MCP_CONFIG, MOCK_CONFIG, SERVER_CONFIG
from models import InvokeRequest, InvokeResponse, ProductSearchRequest
from tools_manager import tools_manager
from utils.errors import GatewayError, HandshakeError, RelayError, TransportError
from utils.mcp_client import get_relay, reset_relay
from utils.product_cache import product_cache
from utils.product_parser import parse_product_detail_response, parse_product_response

logging.basicConfig(level=SERVER_CONFIG["log_level"])
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await reset_relay()


app = FastAPI(
    title=SERVER_CONFIG["title"],
    version=SERVER_CONFIG["version"],
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def remote_unreachable(error: Exception) -> bool:
    """True for failures that mean the remote is down rather than saying no."""
    if isinstance(error, GatewayError):
        return True
    if isinstance(error, (TransportError, HandshakeError)):
        status = error.status_code
        return getattr(error, "unreachable", False) or (status is not None and status >= 500)
    return False


async def call_with_fallback(tool: str, params: Dict[str, Any]) -> Tuple[Any, bool]:
    """Call a remote tool; serve the mock table instead when the remote is down."""
    try:
        return await get_relay().call_tool(tool, params), False
    except RelayError as e:
        if not (MOCK_CONFIG["fallback_enabled"] and remote_unreachable(e)
                and tools_manager.is_valid_tool(tool)):
            raise
        logger.warning(f"[API] Remote MCP unavailable ({e}); serving mock response for {tool}")
        return await tools_manager.respond(tool, params), True


def reply(status_code: int = 200, mock: Optional[bool] = None, **body) -> JSONResponse:
    payload = InvokeResponse(mock=mock or None, **body)
    return JSONResponse(payload.model_dump(exclude_none=True), status_code=status_code)


@app.get("/")
async def root():
    return {
        "service": SERVER_CONFIG["title"],
        "version": SERVER_CONFIG["version"],
        "status": "running",
        "timestamp": datetime.now().isoformat()
    }


@app.get("/health")
@app.get("/api/health")
async def health_check():
    return {"status": "ok", "mcp": MCP_CONFIG["url"]}


@app.post("/api/mcp/invoke")
async def invoke_tool(request: InvokeRequest):
    """Relay one tool call to the remote MCP server"""
    tool = (request.tool or "").strip()
    if not tool:
        return reply(400, success=False, error="Tool name is required")
    params = request.params or {}

    logger.info(f"[API] MCP Tool: {tool}")
    try:
        data, mock = await call_with_fallback(tool, params)
    except RelayError as e:
        logger.error(f"[API] MCP Error: {e}")
        return reply(500, success=False, error=str(e))
    except Exception as e:
        logger.exception(f"[API] Unexpected error invoking {tool}")
        return reply(500, success=False, error=str(e) or "Unknown error")

    logger.info("[API] Result received")
    return reply(success=True, data=data, mock=mock)


@app.get("/api/mcp/tools")
async def list_tools():
    """Tools offered by the remote MCP server"""
    try:
        tools = await get_relay().list_tools()
    except RelayError as e:
        if MOCK_CONFIG["fallback_enabled"] and remote_unreachable(e):
            logger.warning(f"[API] Remote MCP unavailable ({e}); listing mock tools")
            return {"success": True, "tools": tools_manager.get_tools_list(), "mock": True}
        logger.error(f"[API] List tools error: {e}")
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)
    return {"success": True, "tools": tools}


@app.post("/api/products/search")
async def search_products(request: ProductSearchRequest):
    """Catalog search parsed into product records"""
    try:
        data, mock = await call_with_fallback(
            "get_products", {"query": request.query, "limit": request.limit}
        )
        products = parse_product_response(data)
    except RelayError as e:
        logger.error(f"[API] Product search failed: {e}")
        return reply(500, success=False, error=str(e))
    except Exception as e:
        logger.exception("[API] Unexpected error searching products")
        return reply(500, success=False, error=str(e) or "Unknown error")

    product_cache.cache_products(products)
    logger.info(f"[API] Parsed {len(products)} products for {request.query!r}")
    return reply(success=True, data=[p.to_dict() for p in products], mock=mock)


@app.get("/api/products/{slug}")
async def get_product(slug: str):
    """Product detail by slug, topped up from the product cache"""
    try:
        data, mock = await call_with_fallback("tira_get_product_by_slug", {"slug": slug})
        detail = parse_product_detail_response(data)
    except RelayError as e:
        logger.error(f"[API] Product lookup failed: {e}")
        return reply(500, success=False, error=str(e))
    except Exception as e:
        logger.exception(f"[API] Unexpected error looking up {slug}")
        return reply(500, success=False, error=str(e) or "Unknown error")

    cached = product_cache.get_cached_product(slug)
    if detail is None:
        if cached is None:
            return reply(404, success=False, error=f"Product not found: {slug}", mock=mock)
        return reply(success=True, data=cached.to_dict(), mock=mock)

    if not detail.images and cached is not None and cached.images:
        detail = detail.model_copy(update={"images": cached.images})
    return reply(success=True, data=detail.to_dict(), mock=mock)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=SERVER_CONFIG["host"], port=SERVER_CONFIG["port"])
