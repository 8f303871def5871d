from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import aiohttp
import pytest

from hydrai.config import HydraiConfig


@dataclass(frozen=True)
class FakeMessage:
    type: aiohttp.WSMsgType
    data: Any


class FakeWebSocket:
    """Minimal stand-in for aiohttp.ClientWebSocketResponse."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[FakeMessage | None] = asyncio.Queue()
        self.sent: list[str] = []
        self.closed = False
        self.close_code: int | None = None

    def push(self, data: str) -> None:
        self._queue.put_nowait(FakeMessage(aiohttp.WSMsgType.TEXT, data))

    def server_close(self, code: int = 1006) -> None:
        self.close_code = code
        self._queue.put_nowait(None)

    async def send_str(self, data: str) -> None:
        if self.closed:
            raise ConnectionResetError("socket closed")
        self.sent.append(data)

    async def close(self) -> bool:
        if self.closed:
            return False
        self.closed = True
        self.close_code = self.close_code or 1000
        self._queue.put_nowait(None)
        return True

    def exception(self) -> BaseException | None:
        return None

    def __aiter__(self) -> FakeWebSocket:
        return self

    async def __anext__(self) -> FakeMessage:
        msg = await self._queue.get()
        if msg is None:
            raise StopAsyncIteration
        return msg


class FakeConnector:
    """Callable used as ``ws_connect``; records every handshake."""

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.urls: list[str] = []
        self.sockets: list[FakeWebSocket] = []

    @property
    def calls(self) -> int:
        return len(self.urls)

    async def __call__(self, url: str) -> FakeWebSocket:
        self.urls.append(url)
        if self.failures > 0:
            self.failures -= 1
            raise aiohttp.ClientConnectionError("connection refused")
        ws = FakeWebSocket()
        self.sockets.append(ws)
        return ws


class FakeTransport:
    """Scripted inference transport.

    ``responses`` maps endpoint → list of bodies or exceptions, consumed
    in order.
    """

    def __init__(self, responses: Mapping[str, list[Any]], gate: asyncio.Event | None = None) -> None:
        self._responses = {endpoint: list(items) for endpoint, items in responses.items()}
        self.gate = gate
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @property
    def endpoints(self) -> list[str]:
        return [endpoint for endpoint, _ in self.calls]

    async def post_json(self, endpoint: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        self.calls.append((endpoint, dict(payload)))
        if self.gate is not None:
            await self.gate.wait()
        item = self._responses[endpoint].pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    async def dispatch(self, title: str, body: str) -> None:
        self.sent.append((title, body))
        if self.fail:
            raise RuntimeError("notification service down")


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def config() -> HydraiConfig:
    return HydraiConfig(
        ws_url="wss://hydrai.test/ws",
        api_base_url="https://hydrai.test",
        reconnect_delay=0.05,
        banner_ttl_ms=5000,
        fade_ms=20,
    )


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()
