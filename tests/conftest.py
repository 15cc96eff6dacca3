import httpx
import pytest

from tests.helpers import FakeMCPServer


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake_server() -> FakeMCPServer:
    return FakeMCPServer()


@pytest.fixture
def http_client(fake_server: FakeMCPServer) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_server))
