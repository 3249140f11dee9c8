"""Tests for the tool invocation client."""

import json
import time
from types import SimpleNamespace

import httpx
import pytest

from server.mock_mcp_server import app as mock_app, expire_sessions
from tests.fakes import rpc_error, rpc_result, text_result
from utils import mcp_client
from utils.errors import (
    EnvelopeParseError,
    GatewayError,
    ProtocolError,
    SessionExpiredError,
    TransportError,
)
from utils.mcp_client import (
    MAX_ATTEMPTS,
    McpRelayClient,
    get_relay,
    reset_relay,
    set_relay,
    wait_for_gateway,
)

SESSION_GONE = "Bad Request: No valid session ID provided"


def session_gone(body):
    return rpc_error(body, SESSION_GONE, status_code=400)


class TestCallTool:
    async def test_json_text_block_is_decoded(self, relay, fake_server):
        payload = {"products": [{"name": "Serum", "slug": "serum-x"}]}
        fake_server.replies.append(lambda body: text_result(body, json.dumps(payload)))
        assert await relay.call_tool("get_products", {"query": "serum"}) == payload

    async def test_markdown_text_block_returned_verbatim(self, relay, fake_server):
        fake_server.replies.append(lambda body: text_result(body, "**1. Lakme Lipstick**"))
        assert await relay.call_tool("get_products") == "**1. Lakme Lipstick**"

    async def test_result_without_text_block_unchanged(self, relay, fake_server):
        result = {"content": [{"type": "image", "data": "aGk=", "mimeType": "image/png"}]}
        fake_server.replies.append(lambda body: rpc_result(body, result))
        assert await relay.call_tool("render") == result

    async def test_request_shape(self, relay, fake_server):
        await relay.call_tool("get_products", {"query": "lipstick", "limit": 5})
        call = fake_server.sent("tools/call")[0]
        body = json.loads(call.content)
        assert body["params"] == {"name": "get_products", "arguments": {"query": "lipstick", "limit": 5}}
        assert call.headers["Mcp-Session-Id"] == "session-1"
        assert "Authorization" not in call.headers

    async def test_missing_arguments_sent_as_empty_mapping(self, relay, fake_server):
        await relay.call_tool("get_address")
        assert fake_server.bodies("tools/call")[0]["params"]["arguments"] == {}

    async def test_bearer_token_when_configured(self, http_client, relay_config, fake_server):
        relay = McpRelayClient.from_config({**relay_config, "auth_token": "secret"}, client=http_client)
        await relay.call_tool("get_address")
        assert fake_server.sent("tools/call")[0].headers["Authorization"] == "Bearer secret"

    async def test_session_reused_across_calls(self, relay, fake_server):
        await relay.call_tool("get_address")
        await relay.call_tool("get_address")
        assert len(fake_server.sent("initialize")) == 1
        ids = [b["id"] for b in fake_server.bodies("tools/call")]
        assert ids[0] != ids[1]

    async def test_event_stream_reply(self, relay, fake_server):
        def sse(body):
            message = {"jsonrpc": "2.0", "id": body["id"],
                       "result": {"content": [{"type": "text", "text": '{"ok": true}'}]}}
            return httpx.Response(
                200,
                text=f"event: message\ndata: {json.dumps(message)}\n\n",
                headers={"content-type": "text/event-stream"},
            )

        fake_server.replies.append(sse)
        assert await relay.call_tool("check_user_session") == {"ok": True}

    async def test_error_result_passed_through(self, relay, fake_server):
        fake_server.replies.append(lambda body: text_result(body, "Cart is locked", is_error=True))
        assert await relay.call_tool("add_to_cart", {"items": []}) == "Cart is locked"

    async def test_tool_name_required(self, relay, fake_server):
        with pytest.raises(ValueError, match="Tool name is required"):
            await relay.call_tool("")
        assert fake_server.requests == []


class TestSessionRetry:
    async def test_one_stale_session_is_recovered(self, relay, fake_server):
        fake_server.replies.append(session_gone)
        fake_server.replies.append(lambda body: text_result(body, '{"isAuthenticated": false}'))

        assert await relay.call_tool("check_user_session") == {"isAuthenticated": False}

        calls = fake_server.sent("tools/call")
        assert len(calls) == 2
        assert calls[0].headers["Mcp-Session-Id"] == "session-1"
        assert calls[1].headers["Mcp-Session-Id"] == "session-2"
        assert len(fake_server.sent("initialize")) == 2

    async def test_bounded_to_two_attempts(self, relay, fake_server):
        fake_server.replies.extend([session_gone, session_gone, session_gone])

        with pytest.raises(SessionExpiredError) as excinfo:
            await relay.call_tool("get_products")

        assert len(fake_server.sent("tools/call")) == MAX_ATTEMPTS == 2
        assert excinfo.value.message == f"Tool call failed: {SESSION_GONE}"

    async def test_http_404_with_session_counts_as_stale(self, relay, fake_server):
        fake_server.replies.append(lambda body: httpx.Response(404, text="Not Found"))
        await relay.call_tool("get_address")
        assert len(fake_server.sent("tools/call")) == 2

    async def test_business_error_not_retried(self, relay, fake_server):
        message = "Invalid bid: bid price must be positive, got -5"
        fake_server.replies.append(lambda body: rpc_error(body, message, code=-32602))

        with pytest.raises(ProtocolError) as excinfo:
            await relay.call_tool("tira_price_bidding", {"slug": "x", "bid_price": -5})

        assert type(excinfo.value) is ProtocolError
        assert excinfo.value.remote_message == message
        assert excinfo.value.code == -32602
        assert len(fake_server.sent("tools/call")) == 1
        assert len(fake_server.sent("initialize")) == 1

    async def test_session_kept_after_business_error(self, relay, fake_server):
        fake_server.replies.append(lambda body: rpc_error(body, "Product not found"))
        with pytest.raises(ProtocolError):
            await relay.call_tool("tira_get_product_by_slug", {"slug": "nope"})
        assert relay.sessions.session_id == "session-1"


class TestGatewayRetry:
    async def test_gateway_fault_retried_once(self, relay, fake_server):
        fake_server.replies.append(lambda body: httpx.Response(502, text="<html>Bad Gateway</html>"))
        assert await relay.call_tool("get_address") == "ok"
        assert len(fake_server.sent("tools/call")) == 2
        assert len(fake_server.sent("initialize")) == 2

    async def test_gateway_fault_twice_is_fatal(self, relay, fake_server):
        bad_gateway = lambda body: httpx.Response(502, text="<html>Bad Gateway</html>")
        fake_server.replies.extend([bad_gateway, bad_gateway])

        with pytest.raises(GatewayError) as excinfo:
            await relay.call_tool("get_address")
        assert excinfo.value.status_code == 502
        assert len(fake_server.sent("tools/call")) == 2

    async def test_gateway_error_message_in_envelope(self, relay, fake_server):
        fake_server.replies.append(lambda body: rpc_error(body, "Service Unavailable"))
        assert await relay.call_tool("get_address") == "ok"
        assert len(fake_server.sent("tools/call")) == 2

    async def test_backoff_before_gateway_retry(self, http_client, relay_config, fake_server):
        relay = McpRelayClient.from_config({**relay_config, "gateway_backoff_seconds": 0.05}, client=http_client)
        fake_server.replies.append(lambda body: httpx.Response(503, text="Service Unavailable"))

        started = time.monotonic()
        assert await relay.call_tool("get_address") == "ok"
        assert time.monotonic() - started >= 0.04


class TestWaitForGateway:
    @staticmethod
    def failed_with(error):
        outcome = SimpleNamespace(failed=True, exception=lambda: error)
        return SimpleNamespace(outcome=outcome, attempt_number=1)

    def test_gateway_fault_waits(self):
        wait = wait_for_gateway(1.5)
        assert wait(self.failed_with(GatewayError("Bad Gateway", status_code=502))) == 1.5

    def test_stale_session_retried_at_once(self):
        wait = wait_for_gateway(1.5)
        assert wait(self.failed_with(SessionExpiredError("Invalid session"))) == 0.0

    def test_no_outcome_no_wait(self):
        assert wait_for_gateway(1.5)(SimpleNamespace(outcome=None, attempt_number=1)) == 0.0

    def test_negative_backoff_clamped(self):
        assert wait_for_gateway(-1)(self.failed_with(GatewayError("Bad Gateway"))) == 0.0


class TestFatalFailures:
    async def test_http_500_without_envelope(self, relay, fake_server):
        fake_server.replies.append(lambda body: httpx.Response(500, text="Internal Server Error"))
        with pytest.raises(TransportError) as excinfo:
            await relay.call_tool("get_address")
        assert excinfo.value.status_code == 500
        assert not excinfo.value.unreachable
        assert len(fake_server.sent("tools/call")) == 1

    async def test_unreachable_server(self, relay, fake_server):
        def refuse(body):
            raise httpx.ConnectError("connection refused")

        fake_server.replies.append(refuse)
        with pytest.raises(TransportError) as excinfo:
            await relay.call_tool("get_address")
        assert excinfo.value.unreachable
        assert "Network error connecting to MCP server" in str(excinfo.value)

    async def test_timeout(self, relay, fake_server):
        def slow(body):
            raise httpx.ReadTimeout("timed out")

        fake_server.replies.append(slow)
        with pytest.raises(TransportError, match="Timed out"):
            await relay.call_tool("get_address")

    async def test_garbage_success_body(self, relay, fake_server):
        fake_server.replies.append(lambda body: httpx.Response(200, text="<html>hello</html>"))
        with pytest.raises(EnvelopeParseError):
            await relay.call_tool("get_address")
        assert len(fake_server.sent("tools/call")) == 1

    async def test_empty_success_body(self, relay, fake_server):
        fake_server.replies.append(lambda body: httpx.Response(200))
        with pytest.raises(EnvelopeParseError, match="empty response body"):
            await relay.call_tool("get_address")

    async def test_envelope_without_outcome(self, relay, fake_server):
        fake_server.replies.append(lambda body: httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"]}))
        with pytest.raises(EnvelopeParseError, match="result or error"):
            await relay.call_tool("get_address")
        assert len(fake_server.sent("tools/call")) == 1


class TestListTools:
    async def test_tools_returned(self, relay, fake_server):
        tools = [{"name": "get_products", "inputSchema": {"type": "object"}}]
        fake_server.replies.append(lambda body: rpc_result(body, {"tools": tools}))
        assert await relay.list_tools() == tools
        assert "params" not in fake_server.bodies("tools/list")[0]

    async def test_missing_tools_key(self, relay, fake_server):
        fake_server.replies.append(lambda body: rpc_result(body, {}))
        assert await relay.list_tools() == []


class TestProcessRelay:
    async def test_get_relay_is_shared(self):
        relay = get_relay()
        assert get_relay() is relay
        await reset_relay()
        assert mcp_client._relay is None

    async def test_set_relay(self, relay):
        set_relay(relay)
        assert get_relay() is relay


@pytest.fixture
async def mock_relay(relay_config):
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=mock_app), base_url="http://mock")
    relay = McpRelayClient.from_config({**relay_config, "url": "http://mock/mcp"}, client=client)
    yield relay
    await client.aclose()
    expire_sessions()


class TestAgainstMockServer:
    async def test_search_returns_markdown(self, mock_relay):
        text = await mock_relay.call_tool("get_products", {"query": "lipstick", "limit": 5})
        assert text.startswith('Found 2 products for "lipstick"')
        assert "**1. Lakme 9to5 Primer + Matte Lipstick - Red Coat**" in text

    async def test_json_tool_decoded(self, mock_relay):
        result = await mock_relay.call_tool("get_address")
        assert result["addresses"][0]["city"] == "Bengaluru"

    async def test_recovers_after_server_restart(self, mock_relay):
        await mock_relay.call_tool("get_address")
        expire_sessions()
        await mock_relay.call_tool("get_address")
        assert mock_relay.sessions.handshake_count == 2

    async def test_business_error_from_server(self, mock_relay):
        with pytest.raises(ProtocolError, match="Invalid bid"):
            await mock_relay.call_tool("tira_price_bidding", {"slug": "x", "bid_price": 0})
        assert mock_relay.sessions.handshake_count == 1

    async def test_unknown_tool(self, mock_relay):
        with pytest.raises(ProtocolError, match="Unknown tool: nope"):
            await mock_relay.call_tool("nope")

    async def test_list_tools(self, mock_relay):
        names = [tool["name"] for tool in await mock_relay.list_tools()]
        assert "get_products" in names
        assert "tira_get_product_by_slug" in names
