"""Tests for the HTTP routes around the room coordinators."""
from __future__ import annotations

import asyncio
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from chatroom.db.schemas import ChatMessage
from chatroom.rooms.store import RoomStore


@pytest.fixture(scope="module")
def client():
    from chatroom.main import fastapi_app

    with TestClient(fastapi_app) as c:
        yield c


def test_room_lifecycle(client):
    r = client.get("/api/room-exists", params={"roomId": "general-1"})
    assert r.status_code == 200
    assert r.json() == {"exist": False}

    r = client.post("/api/chatrooms", json={"id": "general-1", "name": "General"})
    assert r.status_code == 200
    assert r.json() == {"ok": True}

    # creating twice is fine
    assert client.post("/api/chatrooms", json={"id": "general-1", "name": "General"}).json() == {"ok": True}
    assert client.get("/api/room-exists", params={"roomId": "general-1"}).json() == {"exist": True}


def test_create_room_validates_body(client):
    r = client.post("/api/chatrooms", json={"id": "", "name": "x"})
    assert r.status_code == 422


def test_room_exists_requires_room_id(client):
    assert client.get("/api/room-exists").status_code == 422


def test_history_reads_durable_log(client):
    async def seed():
        engine = create_async_engine(os.environ["ASYNC_DATABASE_URL"], poolclass=NullPool)
        store = RoomStore("seeded", engine)
        await store.init_schema()
        await store.upsert_message(ChatMessage(id="m1", content="hello", user="Alice", role="user"))
        await engine.dispose()

    asyncio.run(seed())
    r = client.get("/api/rooms/seeded/history")
    assert r.status_code == 200
    assert r.json() == {
        "room_id": "seeded",
        "messages": [{"id": "m1", "content": "hello", "user": "Alice", "role": "user"}],
    }
    assert client.get("/api/rooms/empty/history").json()["messages"] == []


def test_rename_history_collapses_chain(client):
    assert client.get("/api/users/u-1/renames").json() == {"user_id": "u-1", "history": [], "collapsed": None}

    for old, new in [("Bob", "Rob"), ("Rob", "Robby"), ("Robby", "Robert")]:
        r = client.post("/api/users/u-1/renames", json={"old": old, "new": new})
        assert r.status_code == 200
        assert r.json()["user_id"] == "u-1"

    data = client.get("/api/users/u-1/renames").json()
    assert [(h["old"], h["new"]) for h in data["history"]] == [("Bob", "Rob"), ("Rob", "Robby"), ("Robby", "Robert")]
    assert data["collapsed"] == {"old": "Bob", "new": "Robert"}


def test_rename_back_to_original_collapses_to_nothing(client):
    client.post("/api/users/u-2/renames", json={"old": "Eve", "new": "Evelyn"})
    client.post("/api/users/u-2/renames", json={"old": "Evelyn", "new": "Eve"})
    assert client.get("/api/users/u-2/renames").json()["collapsed"] is None


def test_rename_to_same_name_is_rejected(client):
    r = client.post("/api/users/u-3/renames", json={"old": "Zoe", "new": "Zoe"})
    assert r.status_code == 400
