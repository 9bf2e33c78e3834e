"""
Shared fixtures for chatroom tests.
Points the service at a temp SQLite database before any chatroom import.
"""
from __future__ import annotations

import asyncio
import json
import os
import tempfile

import pytest
from sqlalchemy.pool import NullPool

_TEST_DIR = tempfile.mkdtemp(prefix="chatroom_test_")
os.environ["ASYNC_DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/app.db"
os.environ["AI_BASE_URL"] = "http://ai.test/v1"
os.environ["SOCKETIO_REDIS"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"


class FakeConnection:
    def __init__(self, conn_id: str, fail: bool = False):
        self.id = conn_id
        self.fail = fail
        self.sent: list[str] = []

    async def send(self, text: str) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.sent.append(text)

    @property
    def events(self) -> list[dict]:
        return [json.loads(t) for t in self.sent]


class FakeResponder:
    def __init__(self, reply: str = "4", error: Exception | None = None, delay: float = 0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, list[dict[str, str]]]] = []

    async def respond(self, prompt, history):
        self.calls.append((prompt, history))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path}/rooms.db"


@pytest.fixture
def make_engine(db_url):
    from sqlalchemy.ext.asyncio import create_async_engine

    # NullPool: every asyncio.run() gets fresh connections on its own loop
    def factory():
        return create_async_engine(db_url, poolclass=NullPool)

    return factory


@pytest.fixture
def connection_factory():
    return FakeConnection


@pytest.fixture
def responder_factory():
    return FakeResponder
