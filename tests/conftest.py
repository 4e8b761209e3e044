"""Pytest configuration and shared fixtures."""

import asyncio
from pathlib import Path

import pytest
from websockets.exceptions import ConnectionClosed

from zelo.config.schema import ZeloConfig
from zelo.providers.base import ProviderPool
from zelo.session.models import Segment
from zelo.session.store import JSONFileSessionStore


class FakeProvider:
    """In-memory provider recording every call."""

    name = "deepgram"

    def __init__(self):
        self.language = None
        self.on_segment = None
        self.on_error = None
        self.sent: list[bytes] = []
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.connect_error: Exception | None = None
        self.send_error: Exception | None = None
        self.disconnect_error: Exception | None = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self, language, on_segment, on_error):
        self.connect_calls += 1
        if self.connect_error:
            raise self.connect_error
        self.language = language
        self.on_segment = on_segment
        self.on_error = on_error

    async def send(self, audio: bytes):
        if self.send_error:
            raise self.send_error
        self._connected = True
        self.sent.append(audio)

    async def disconnect(self):
        self.disconnect_calls += 1
        # Yield like a real close handshake would.
        await asyncio.sleep(0)
        if self.disconnect_error:
            raise self.disconnect_error
        self._connected = False

    def emit(self, segment: Segment):
        self.on_segment(segment)


class FakeWebSocket:
    """Websocket double fed from a queue; ``None`` ends the stream."""

    def __init__(self):
        self.sent: list = []
        self.closed = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def send(self, data):
        if self.closed:
            raise ConnectionClosed(None, None)
        self.sent.append(data)

    async def close(self):
        self.closed = True
        self._incoming.put_nowait(None)

    def push(self, message):
        self._incoming.put_nowait(message)

    def drop(self):
        """Simulate the server closing the connection."""
        self.closed = True
        self._incoming.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        message = await self._incoming.get()
        if message is None:
            raise StopAsyncIteration
        return message


class FakeConnector:
    """Stands in for ``websockets.connect``; fails the next ``failures`` calls."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.calls: list[tuple[str, dict]] = []
        self.sockets: list[FakeWebSocket] = []

    async def __call__(self, url, additional_headers=None):
        self.calls.append((url, additional_headers or {}))
        if self.failures > 0:
            self.failures -= 1
            raise OSError("connection refused")
        websocket = FakeWebSocket()
        self.sockets.append(websocket)
        return websocket


@pytest.fixture
def default_config() -> ZeloConfig:
    """Provide a default configuration for tests."""
    return ZeloConfig()


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_pool(fake_provider) -> ProviderPool:
    """Single-slot pool around the fake provider."""
    return ProviderPool(lambda: fake_provider)


@pytest.fixture
def json_store(tmp_path: Path) -> JSONFileSessionStore:
    return JSONFileSessionStore(tmp_path / "sessions")


@pytest.fixture
def fake_connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def make_segment():
    """Factory for segments with sensible defaults."""
    counter = {"n": 0}

    def _make(
        text: str = "hello",
        is_final: bool = True,
        start: float = 0.0,
        end: float = 1.0,
        **kwargs,
    ):
        counter["n"] += 1
        return Segment(
            id=kwargs.pop("id", f"seg-{counter['n']}"),
            text=text,
            start_time=start,
            end_time=end,
            is_final=is_final,
            **kwargs,
        )

    return _make


@pytest.fixture
def wait_until():
    """Poll a predicate while letting the event loop run."""

    async def _wait(predicate, timeout: float = 2.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait


@pytest.fixture
def runtime(default_config, provider_pool, json_store):
    """Runtime wired to the fake provider and a temporary store."""
    from zelo.runtime import build_runtime

    return build_runtime(default_config, store=json_store, provider_pool=provider_pool)
