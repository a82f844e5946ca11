"""Test fixtures — a fake backend, a fake socket server, a wired client.

Learn: Nothing here touches the network:

1. `backend` is a FakeBackend (in-memory FastAPI app) per test
2. `shop` is a StorefrontClient whose httpx client talks to that app
   through ASGITransport, exactly how the backend's own API tests run
3. `sockets` is the factory the client uses for Socket.IO connections

The session lives in memory unless a test asks for a file.
"""

import logging

import pytest
import pytest_asyncio
import structlog
from httpx import ASGITransport

from fake_backend import FakeBackend
from fake_socket import FakeSocketFactory
from vitrine.client import StorefrontClient
from vitrine.config import Settings
from vitrine.state.actions import ShowModal
from vitrine.state.session import SessionContext, SessionStorage

API_URL = "http://test/api/v1"
SOCKET_URL = "http://socket.test"


@pytest.fixture(autouse=True, scope="session")
def _quiet_logs():
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING))


@pytest.fixture()
def config(tmp_path) -> Settings:
    return Settings(
        api_url=API_URL,
        server_url=SOCKET_URL,
        session_path=tmp_path / "session.json",
        keep_unused_for=60.0,
    )


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def sockets() -> FakeSocketFactory:
    return FakeSocketFactory()


@pytest.fixture()
def session() -> SessionContext:
    return SessionContext(SessionStorage())


@pytest_asyncio.fixture()
async def shop(config, backend, sockets, session):
    """Client wired to the fake backend and fake socket server."""
    client = StorefrontClient(
        config,
        session=session,
        transport=ASGITransport(app=backend.app),
        socket_factory=sockets,
    )
    yield client
    await client.aclose()


@pytest.fixture()
def modals(shop) -> list[ShowModal]:
    """Every ShowModal dispatched during the test, in order."""
    seen: list[ShowModal] = []

    def record(action):
        if isinstance(action, ShowModal):
            seen.append(action)

    shop.store.subscribe(record)
    return seen
