# Mock account tools - OTP login, session check, addresses

import re
import uuid
from typing import Any, Dict, List

from models import MCPResponse
from tools.responses import error_response, json_response

MOCK_USER = {
    "_id": "mock-user-1",
    "first_name": "Demo",
    "last_name": "Shopper",
    "emails": [{"email": "demo.shopper@example.com"}],
}

_addresses: List[Dict[str, Any]] = [
    {
        "id": "addr_mock_1",
        "name": "Demo Shopper",
        "address": "12 MG Road",
        "area": "Indiranagar",
        "city": "Bengaluru",
        "state": "Karnataka",
        "pincode": "560038",
        "address_type": "home",
        "is_default_address": True,
    },
]


async def send_otp(params: Dict[str, Any]) -> MCPResponse:
    phone = str(params.get("phone", params.get("mobile", ""))).strip()
    if not re.fullmatch(r"\+?\d{10,13}", phone):
        return error_response(f"Invalid phone number: {phone or 'missing'}")
    return json_response({
        "success": True,
        "request_id": str(uuid.uuid4()),
        "message": f"OTP sent to {phone}",
        "resend_timer": 30,
    })


async def verify_otp(params: Dict[str, Any]) -> MCPResponse:
    otp = str(params.get("otp", "")).strip()
    if not params.get("request_id"):
        return error_response("request_id is required")
    if not re.fullmatch(r"\d{4,6}", otp):
        return error_response("Invalid OTP")
    cookie = f"f.session=mock-{uuid.uuid4().hex}"
    return json_response({
        "success": True,
        "session_cookie": cookie,
        "authentication": {
            "cookies": cookie,
            "user_info": {k: MOCK_USER[k] for k in ("first_name", "last_name", "emails")},
        },
    })


async def check_user_session(params: Dict[str, Any]) -> MCPResponse:
    cookies = params.get("cookies") or params.get("sessionCookie")
    if not cookies:
        return json_response({"isAuthenticated": False})
    return json_response({
        "isAuthenticated": True,
        "user": {
            "name": f"{MOCK_USER['first_name']} {MOCK_USER['last_name']}",
            "email": MOCK_USER["emails"][0]["email"],
        },
    })


async def get_address(params: Dict[str, Any]) -> MCPResponse:
    return json_response({"addresses": list(_addresses)})


async def add_address(params: Dict[str, Any]) -> MCPResponse:
    missing = [f for f in ("address", "city", "state", "pincode") if not params.get(f)]
    if missing:
        return error_response(f"Missing address fields: {', '.join(missing)}")
    address = {
        "id": f"addr_mock_{len(_addresses) + 1}",
        "address": params["address"],
        "area": params.get("area", ""),
        "city": params["city"],
        "state": params["state"],
        "pincode": str(params["pincode"]),
        "address_type": params.get("address_type", "home"),
        "is_default_address": False,
    }
    _addresses.append(address)
    return json_response({"success": True, "address": address})
