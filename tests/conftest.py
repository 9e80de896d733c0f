from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Callable, List, Union

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from roomrelay.core import state

DISCONNECT = object()


class FakeConnection:
    """In-memory stand-in for ClientConnection: records writes, replays queued frames."""

    def __init__(self, user_id: str, *, fail_on_send: bool = False) -> None:
        self.user_id = user_id
        self.fail_on_send = fail_on_send
        self.sent: List[Union[str, bytes]] = []
        self.close_calls = 0
        self._incoming: asyncio.Queue = asyncio.Queue()
        self._write_lock = asyncio.Lock()

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def feed(self, *frames) -> None:
        for frame in frames:
            self._incoming.put_nowait(frame)

    def hang_up(self) -> None:
        self._incoming.put_nowait(DISCONNECT)

    async def receive(self):
        item = await self._incoming.get()
        if item is DISCONNECT:
            raise WebSocketDisconnect(code=1000)
        if isinstance(item, BaseException):
            raise item
        return item

    async def send(self, payload) -> None:
        async with self._write_lock:
            await self.write(payload)

    @asynccontextmanager
    async def holding_writes(self):
        async with self._write_lock:
            yield

    async def write(self, payload) -> None:
        if self.fail_on_send or self.closed:
            raise RuntimeError(f"connection to {self.user_id} lost")
        self.sent.append(payload)

    async def close(self, code: int = 1000) -> None:
        self.close_calls += 1


@pytest.fixture(autouse=True)
def fresh_state() -> None:
    state.init_state()


@pytest.fixture
def make_connection() -> Callable[..., FakeConnection]:
    return FakeConnection


@pytest.fixture
def client():
    from roomrelay.main import app

    with TestClient(app) as test_client:
        yield test_client
