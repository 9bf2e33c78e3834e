"""
Per-room session coordinator.

One ``RoomCoordinator`` owns one room: its ordered in-memory message list,
its connection set, and every write to the room's durable log. Mutating
operations run one at a time under the room's lock; the store is written
first and memory follows only after the write committed.
"""
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, Iterable, Protocol

from sqlalchemy.exc import SQLAlchemyError

from chatroom.ai.responder import Responder, respond_with_policy
from chatroom.db.schemas import (
    AddEvent,
    AllEvent,
    ChatMessage,
    RenameEvent,
    UpdateEvent,
    dump_event,
    parse_inbound,
)
from chatroom.rooms.store import RoomStore
from chatroom.rooms.trigger import build_history, parse_ai_prompt

_log = logging.getLogger(__name__)


class Connection(Protocol):
    id: str

    async def send(self, text: str) -> None: ...


def new_message_id() -> str:
    return uuid.uuid4().hex


def _raw_text(raw: Any) -> str:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        return raw.decode("utf-8")
    return json.dumps(raw)


class RoomCoordinator:
    def __init__(
        self,
        room_id: str,
        store: RoomStore,
        responder: Responder | None = None,
        *,
        history_limit: int = 20,
        trigger_prefix: str = "/ai",
        agent_name: str = "Agent",
        ai_timeout: float = 10.0,
        ai_retries: int = 0,
        update_missing_policy: str = "ignore",
    ) -> None:
        self.room_id = room_id
        self.store = store
        self.responder = responder
        self.history_limit = history_limit
        self.trigger_prefix = trigger_prefix
        self.agent_name = agent_name
        self.ai_timeout = ai_timeout
        self.ai_retries = ai_retries
        self.update_missing_policy = update_missing_policy

        self.messages: list[ChatMessage] = []
        self.connections: dict[str, Connection] = {}
        self._lock = asyncio.Lock()
        self._ai_tasks: set[asyncio.Task] = set()
        self._closed = False

    # ---------- Lifecycle ----------
    async def start(self) -> None:
        async with self._lock:
            await self.store.init_schema()
            self.messages = await self.store.load_all()
            self._closed = False
        _log.info("room %s started with %d messages", self.room_id, len(self.messages))

    async def close(self) -> None:
        self._closed = True
        tasks = list(self._ai_tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.connections.clear()
        _log.info("room %s closed", self.room_id)

    @property
    def has_connections(self) -> bool:
        return bool(self.connections)

    # ---------- Connections ----------
    async def connect(self, connection: Connection) -> None:
        async with self._lock:
            self.connections[connection.id] = connection
            await self._send(connection, self.snapshot())

    async def disconnect(self, connection_id: str) -> None:
        self.connections.pop(connection_id, None)

    def snapshot(self) -> str:
        return dump_event(AllEvent(messages=self.messages))

    # ---------- Inbound events ----------
    async def handle(self, connection: Connection, raw: Any) -> None:
        event = parse_inbound(raw)
        if event is None:
            _log.debug("room %s: dropped malformed event from %s", self.room_id, connection.id)
            return

        if isinstance(event, RenameEvent):
            await self.apply_rename(event)
            return

        message = await self._apply_message(connection, event, _raw_text(raw))
        if message is None:
            return

        prompt = parse_ai_prompt(event.content, self.trigger_prefix)
        if prompt is not None:
            self._schedule_ai(event.user, prompt)

    async def _apply_message(self, connection: Connection, event: AddEvent, raw_text: str) -> ChatMessage | None:
        async with self._lock:
            position = self._position(event.id)
            if position is None and isinstance(event, UpdateEvent) and self.update_missing_policy != "append":
                _log.warning("room %s: update for unknown message %s ignored", self.room_id, event.id)
                return None

            message = event.to_message()
            try:
                await self.store.upsert_message(message)
            except SQLAlchemyError:
                _log.exception("room %s: failed to persist message %s", self.room_id, event.id)
                await self._send(connection, self.snapshot())
                return None

            if position is None:
                self.messages.append(message)
            else:
                self.messages[position] = message
            await self._broadcast(raw_text, exclude=(connection.id,))
            return message

    def _position(self, message_id: str) -> int | None:
        for i, m in enumerate(self.messages):
            if m.id == message_id:
                return i
        return None

    # ---------- Rename ----------
    async def apply_rename(self, event: RenameEvent) -> bool:
        """Run the rename protocol; ``True`` if the event changed anything."""
        async with self._lock:
            try:
                result = await self.store.apply_rename(event, new_message_id())
            except SQLAlchemyError:
                _log.exception("room %s: rename %s failed", self.room_id, event.id)
                return False
            if result is None:
                _log.debug("room %s: rename %s is a no-op", self.room_id, event.id)
                return False

            self.messages = [
                m.model_copy(update={"user": result.new}) if m.user == result.old else m
                for m in self.messages
            ]
            self.messages.append(result.system_message)
            await self._broadcast(self.snapshot())
            return True

    # ---------- AI ----------
    def _schedule_ai(self, sender: str, prompt: str) -> None:
        task = asyncio.create_task(self._reply_with_ai(sender, prompt))
        self._ai_tasks.add(task)
        task.add_done_callback(self._ai_tasks.discard)

    async def _reply_with_ai(self, sender: str, prompt: str) -> None:
        if self.responder is None:
            _log.info("room %s: no AI responder configured, ignoring prompt", self.room_id)
            return
        try:
            recent = await self.store.recent_messages(self.history_limit)
            reply = await respond_with_policy(
                self.responder,
                f"{sender}: {prompt}",
                build_history(recent),
                timeout=self.ai_timeout,
                retries=self.ai_retries,
            )
        except Exception:
            _log.exception("room %s: AI responder failed", self.room_id)
            return

        message = ChatMessage(id=new_message_id(), content=reply, user=self.agent_name, role="assistant")
        async with self._lock:
            if self._closed:
                return
            try:
                stored = await self.store.upsert_message(message)
            except SQLAlchemyError:
                _log.exception("room %s: failed to persist agent reply", self.room_id)
                return
            self.messages.append(stored)
            await self._broadcast(dump_event(AddEvent(**stored.model_dump())))

    # ---------- Delivery ----------
    async def _send(self, connection: Connection, text: str) -> bool:
        try:
            await connection.send(text)
            return True
        except Exception:
            _log.warning("room %s: send to %s failed", self.room_id, connection.id, exc_info=True)
            return False

    async def _broadcast(self, text: str, exclude: Iterable[str] = ()) -> None:
        skip = set(exclude)
        for connection in list(self.connections.values()):
            if connection.id in skip:
                continue
            await self._send(connection, text)
