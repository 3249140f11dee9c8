import httpx
import pytest

from config import MCP_CONFIG
from tests.fakes import MCP_URL, FakeMcpServer
from tools import mock_account, mock_commerce
from utils import mcp_client
from utils.mcp_client import McpRelayClient
from utils.product_cache import product_cache


@pytest.fixture
def fake_server():
    return FakeMcpServer()


@pytest.fixture
async def http_client(fake_server):
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_server))
    yield client
    await client.aclose()


@pytest.fixture
def relay_config():
    return {**MCP_CONFIG, "url": MCP_URL, "auth_token": None, "gateway_backoff_seconds": 0}


@pytest.fixture
def relay(http_client, relay_config):
    return McpRelayClient.from_config(relay_config, client=http_client)


@pytest.fixture(autouse=True)
def _isolate_process_state():
    """Module-level relay, cache and mock stores start empty for every test."""
    addresses = list(mock_account._addresses)
    mcp_client.set_relay(None)
    product_cache.clear()
    mock_commerce._bids.clear()
    yield
    mcp_client.set_relay(None)
    product_cache.clear()
    mock_commerce._bids.clear()
    mock_account._addresses[:] = addresses
