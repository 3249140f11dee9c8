# Mock commerce tools - cart, delivery, payment mandates, price bids

import time
import uuid
from typing import Any, Dict, List

from models import MCPResponse
from tools.responses import error_response, json_response

MOCK_CUSTOMER_ID = "cust_mock_001"

_bids: List[Dict[str, Any]] = []


def _mock_id(prefix: str) -> str:
    return f"{prefix}_mock_{uuid.uuid4().hex[:12]}"


async def add_to_cart(params: Dict[str, Any]) -> MCPResponse:
    items = params.get("items")
    if not isinstance(items, list) or not items:
        return error_response("items must be a non-empty list")
    for item in items:
        if not isinstance(item, dict) or "item_id" not in item:
            return error_response("every cart item needs an item_id")
    kept = [item for item in items if item.get("quantity", 1) > 0]
    return json_response({
        "success": True,
        "cart": {"items": kept, "item_count": sum(i.get("quantity", 1) for i in kept)},
    })


async def set_delivery_mode(params: Dict[str, Any]) -> MCPResponse:
    mode = params.get("delivery_mode", params.get("mode", "standard"))
    return json_response({"success": True, "delivery_mode": mode})


async def get_token_masked_data(params: Dict[str, Any]) -> MCPResponse:
    return json_response({
        "customer_id": MOCK_CUSTOMER_ID,
        "items": [{
            "id": "token_mock_001",
            "customer_id": MOCK_CUSTOMER_ID,
            "status": "confirmed",
            "max_amount": 500000,
            "amount_blocked": 0,
            "amount_debited": 0,
        }],
    })


async def create_order_with_masked_data(params: Dict[str, Any]) -> MCPResponse:
    amount = params.get("amount")
    if not isinstance(amount, (int, float)) or amount <= 0:
        return error_response(f"Invalid amount: {amount}")
    return json_response({
        "id": _mock_id("order"),
        "amount": amount,
        "currency": params.get("currency", "INR"),
        "status": "created",
    })


async def initiate_payment_with_masked_data(params: Dict[str, Any]) -> MCPResponse:
    if not params.get("order_id"):
        return error_response("order_id is required")
    payment_id = _mock_id("pay")
    return json_response({
        "id": payment_id,
        "order_id": params["order_id"],
        "status": "created",
        "short_url": f"https://rzp.io/mock/{payment_id}",
    })


async def price_bidding(params: Dict[str, Any]) -> MCPResponse:
    slug = params.get("slug") or params.get("product_slug")
    bid_price = params.get("bid_price")
    if not slug:
        return error_response("slug is required")
    if not isinstance(bid_price, (int, float)) or bid_price <= 0:
        return error_response(f"Invalid bid: bid price must be positive, got {bid_price}")
    bid = {
        "bid_id": _mock_id("bid"),
        "slug": slug,
        "bid_price": bid_price,
        "status": "monitoring",
        "created_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
    }
    _bids.append(bid)
    return json_response({"success": True, **bid})


async def list_price_bids(params: Dict[str, Any]) -> MCPResponse:
    return json_response({"bids": list(_bids)})
