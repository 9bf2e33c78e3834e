"""Tests for starting and evicting room coordinators."""
from __future__ import annotations

import asyncio

from chatroom.core.config import Settings
from chatroom.rooms.registry import RoomRegistry


def test_one_coordinator_per_room(make_engine):
    async def scenario():
        registry = RoomRegistry(make_engine(), Settings())
        a1, a2, b = await asyncio.gather(registry.get("a"), registry.get("a"), registry.get("b"))
        return a1, a2, b

    a1, a2, b = asyncio.run(scenario())
    assert a1 is a2
    assert a1 is not b
    assert (a1.room_id, b.room_id) == ("a", "b")


def test_settings_flow_into_coordinators(make_engine):
    async def scenario():
        settings = Settings(AI_HISTORY_LIMIT=5, AGENT_NAME="Helper", UPDATE_MISSING_POLICY="append")
        return await RoomRegistry(make_engine(), settings).get("a")

    room = asyncio.run(scenario())
    assert room.history_limit == 5
    assert room.agent_name == "Helper"
    assert room.update_missing_policy == "append"


def test_release_evicts_idle_rooms_only(make_engine, connection_factory):
    async def scenario():
        registry = RoomRegistry(make_engine(), Settings())
        alice = connection_factory("alice")
        room = await registry.join("a", alice)
        await registry.release("a")
        still_running = registry.peek("a") is room
        await room.disconnect(alice.id)
        await registry.release("a")
        return still_running, registry.peek("a"), alice.events

    still_running, after, events = asyncio.run(scenario())
    assert still_running
    assert after is None
    assert events[0]["type"] == "all"


def test_rejoin_after_eviction_reloads_history(make_engine, connection_factory):
    async def scenario():
        registry = RoomRegistry(make_engine(), Settings())
        alice = connection_factory("alice")
        room = await registry.join("a", alice)
        await room.handle(alice, '{"type":"add","id":"m1","content":"hi","user":"Alice","role":"user"}')
        await room.disconnect(alice.id)
        await registry.release("a")

        bob = connection_factory("bob")
        again = await registry.join("a", bob)
        await registry.close_all()
        return room, again, bob.events

    room, again, events = asyncio.run(scenario())
    assert again is not room
    assert [m["id"] for m in events[0]["messages"]] == ["m1"]
