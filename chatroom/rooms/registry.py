"""One running coordinator per room id, started on demand and evicted when idle."""
from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from chatroom.ai.responder import Responder
from chatroom.core.config import Settings
from chatroom.rooms.coordinator import Connection, RoomCoordinator
from chatroom.rooms.store import RoomStore

_log = logging.getLogger(__name__)


class RoomRegistry:
    def __init__(self, engine: AsyncEngine, settings: Settings, responder: Responder | None = None) -> None:
        self.engine = engine
        self.settings = settings
        self.responder = responder
        self._rooms: dict[str, RoomCoordinator] = {}
        self._starting: dict[str, asyncio.Task] = {}
        # schema creation is not safe to run concurrently on a fresh database
        self._start_lock = asyncio.Lock()

    def _build(self, room_id: str) -> RoomCoordinator:
        s = self.settings
        return RoomCoordinator(
            room_id,
            RoomStore(room_id, self.engine),
            self.responder,
            history_limit=s.AI_HISTORY_LIMIT,
            trigger_prefix=s.AI_TRIGGER_PREFIX,
            agent_name=s.AGENT_NAME,
            ai_timeout=s.AI_TIMEOUT_SECONDS,
            ai_retries=s.AI_RETRIES,
            update_missing_policy=s.UPDATE_MISSING_POLICY,
        )

    async def get(self, room_id: str) -> RoomCoordinator:
        room = self._rooms.get(room_id)
        if room is not None:
            return room

        starting = self._starting.get(room_id)
        if starting is None:
            starting = asyncio.create_task(self._start(room_id))
            self._starting[room_id] = starting
        return await asyncio.shield(starting)

    async def _start(self, room_id: str) -> RoomCoordinator:
        try:
            room = self._build(room_id)
            async with self._start_lock:
                await room.start()
            self._rooms[room_id] = room
            return room
        finally:
            self._starting.pop(room_id, None)

    async def join(self, room_id: str, connection: Connection) -> RoomCoordinator:
        while True:
            room = await self.get(room_id)
            await room.connect(connection)
            if self._rooms.get(room_id) is room:
                return room
            # evicted while we were connecting
            await room.disconnect(connection.id)

    def peek(self, room_id: str) -> RoomCoordinator | None:
        return self._rooms.get(room_id)

    async def release(self, room_id: str) -> None:
        """Tear the room down if nobody is connected to it any more."""
        room = self._rooms.get(room_id)
        if room is None or room.has_connections:
            return
        del self._rooms[room_id]
        await room.close()

    async def close_all(self) -> None:
        rooms = list(self._rooms.values())
        self._rooms.clear()
        for room in rooms:
            await room.close()
        _log.info("closed %d rooms", len(rooms))
