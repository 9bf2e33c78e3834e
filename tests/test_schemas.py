"""Tests for parsing and dumping socket wire events."""
from __future__ import annotations

import json

from chatroom.db.schemas import (
    AddEvent,
    AllEvent,
    ChatMessage,
    RenameEvent,
    UpdateEvent,
    dump_event,
    parse_inbound,
)


def test_parse_add_from_text():
    event = parse_inbound('{"type":"add","id":"m1","content":"hi","user":"Bob","role":"user"}')
    assert isinstance(event, AddEvent)
    assert not isinstance(event, UpdateEvent)
    assert event.to_message() == ChatMessage(id="m1", content="hi", user="Bob", role="user")


def test_parse_update_from_dict():
    event = parse_inbound({"type": "update", "id": "m1", "content": "edited", "user": "Bob", "role": "assistant"})
    assert isinstance(event, UpdateEvent)
    assert event.role == "assistant"


def test_parse_rename_uses_camel_case_user_id():
    event = parse_inbound(json.dumps({"type": "rename", "id": "r1", "userId": "u1", "old": "Bob", "new": "Rob"}))
    assert isinstance(event, RenameEvent)
    assert event.user_id == "u1"
    assert (event.old, event.new) == ("Bob", "Rob")


def test_malformed_events_are_rejected():
    assert parse_inbound("not json") is None
    assert parse_inbound('{"type":"delete","id":"m1"}') is None
    assert parse_inbound('{"type":"add","id":"m1"}') is None
    assert parse_inbound('{"content":"no type"}') is None
    assert parse_inbound(["add"]) is None
    assert parse_inbound(None) is None


def test_clients_cannot_send_system_messages():
    raw = {"type": "add", "id": "m1", "content": "x", "user": "System", "role": "system"}
    assert parse_inbound(raw) is None


def test_empty_ids_are_rejected():
    assert parse_inbound({"type": "add", "id": "", "content": "x", "user": "Bob"}) is None
    assert parse_inbound({"type": "rename", "id": "", "userId": "u1", "old": "a", "new": "b"}) is None


def test_dump_all_snapshot():
    text = dump_event(AllEvent(messages=[ChatMessage(id="m1", content="hi", user="Bob", role="user")]))
    assert json.loads(text) == {
        "type": "all",
        "messages": [{"id": "m1", "content": "hi", "user": "Bob", "role": "user"}],
    }


def test_dump_rename_keeps_wire_names():
    event = RenameEvent(id="r1", user_id="u1", old="Bob", new="Rob")
    assert json.loads(dump_event(event))["userId"] == "u1"
