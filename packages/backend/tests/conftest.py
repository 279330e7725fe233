"""Test fixtures — every test gets its own data directory.

Learn: Nothing is shared between tests. JSON backends write into pytest's
tmp_path, the document store is a throwaway SQLite file (aiosqlite), and
the app is built with create_app(settings) so its lifespan wires a fresh
QueueService each time.

httpx's ASGITransport doesn't run the lifespan, so the `client` fixture
enters it by hand.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from orderqueue.config import Settings
from orderqueue.main import create_app
from orderqueue.realtime.broadcaster import Broadcaster
from orderqueue.services.queue_service import QueueService
from orderqueue.services.retention import TimeBoxedRetention
from orderqueue.storage import DocumentStoreBackend, JsonFileBackend


class FakeClock:
    """Deterministic clock; call it like utcnow()."""

    def __init__(self, start: datetime = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingListener:
    """Stands in for a WebSocket: remembers everything it was sent."""

    def __init__(self):
        self.messages: list[dict] = []

    async def send_json(self, data) -> None:
        self.messages.append(data)

    def types(self) -> list[str]:
        return [m["type"] for m in self.messages]


class BrokenListener:
    """A screen whose connection died without a clean close."""

    async def send_json(self, data) -> None:
        raise ConnectionResetError("socket closed")


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "data", use_document_store=False)


@pytest_asyncio.fixture()
async def json_backend(tmp_path, clock):
    backend = JsonFileBackend(tmp_path / "data", clock=clock)
    await backend.initialize()
    yield backend
    await backend.close()


@pytest_asyncio.fixture()
async def document_backend(tmp_path, clock):
    backend = DocumentStoreBackend(f"sqlite+aiosqlite:///{tmp_path / 'docs.db'}", clock=clock)
    await backend.initialize()
    yield backend
    await backend.close()


@pytest_asyncio.fixture(params=["json", "document"])
async def any_backend(request, tmp_path, clock):
    """Run a contract test against both storage variants."""
    if request.param == "json":
        backend = JsonFileBackend(tmp_path / "data", clock=clock)
    else:
        backend = DocumentStoreBackend(
            f"sqlite+aiosqlite:///{tmp_path / 'docs.db'}", clock=clock
        )
    await backend.initialize()
    yield backend
    await backend.close()


@pytest.fixture()
def broadcaster():
    return Broadcaster()


@pytest.fixture()
def service(json_backend, broadcaster, clock):
    return QueueService(
        json_backend,
        retention=TimeBoxedRetention(),
        broadcaster=broadcaster,
        clock=clock,
    )


@pytest.fixture()
def app(settings):
    return create_app(settings)


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client against a fully started app (lifespan included)."""
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


ORDER = {
    "productName": "Embroidery",
    "size": "M",
    "color": "Black",
    "quantity": 2,
    "courier": "Grab",
}
