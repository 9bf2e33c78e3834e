"""
Durable message log and rename ledger for one room.

Every table is shared between rooms and keyed by ``room_id``; a ``RoomStore``
only ever reads and writes the rows of its own room.
"""
from __future__ import annotations

import logging
from typing import NamedTuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from chatroom.db.models import AppliedRename, Message, RenameState
from chatroom.db.schemas import ChatMessage, RenameEvent
from chatroom.db.session import init_schema

_log = logging.getLogger(__name__)

SYSTEM_USER = "System"


class AppliedRenameResult(NamedTuple):
    old: str
    new: str
    system_message: ChatMessage


def _to_chat_message(row: Message) -> ChatMessage:
    return ChatMessage(id=row.message_id, content=row.content, user=row.user, role=row.role)


class RoomStore:
    def __init__(self, room_id: str, engine: AsyncEngine) -> None:
        self.room_id = room_id
        self._engine = engine
        self._sessions = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)

    async def init_schema(self) -> None:
        await init_schema(self._engine)

    # ---------- Message log ----------
    async def load_all(self) -> list[ChatMessage]:
        async with self._sessions() as session:
            res = await session.execute(
                select(Message).where(Message.room_id == self.room_id).order_by(Message.seq.asc())
            )
            return [_to_chat_message(row) for row in res.scalars().all()]

    async def recent_messages(self, limit: int) -> list[ChatMessage]:
        """The ``limit`` newest messages, oldest first."""
        async with self._sessions() as session:
            res = await session.execute(
                select(Message)
                .where(Message.room_id == self.room_id)
                .order_by(Message.seq.desc())
                .limit(limit)
            )
            rows = list(res.scalars().all())
        rows.reverse()
        return [_to_chat_message(row) for row in rows]

    async def upsert_message(self, message: ChatMessage) -> ChatMessage:
        async with self._sessions() as session:
            stored = await self._upsert(session, message)
            await session.commit()
            return stored

    async def _upsert(self, session: AsyncSession, message: ChatMessage) -> ChatMessage:
        # On an id conflict only content changes; user and role move only through rewrite_user.
        res = await session.execute(
            select(Message).where(Message.room_id == self.room_id, Message.message_id == message.id)
        )
        row = res.scalar_one_or_none()
        if row is None:
            row = Message(
                room_id=self.room_id,
                message_id=message.id,
                user=message.user,
                role=message.role,
                content=message.content,
            )
            session.add(row)
        else:
            row.content = message.content
        await session.flush()
        return _to_chat_message(row)

    async def rewrite_user(self, old_name: str, new_name: str) -> int:
        async with self._sessions() as session:
            count = await self._rewrite_user(session, old_name, new_name)
            await session.commit()
            return count

    async def _rewrite_user(self, session: AsyncSession, old_name: str, new_name: str) -> int:
        res = await session.execute(
            update(Message)
            .where(Message.room_id == self.room_id, Message.user == old_name)
            .values(user=new_name)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount or 0

    # ---------- Rename ledger ----------
    async def is_rename_applied(self, rename_id: str) -> bool:
        async with self._sessions() as session:
            return await self._is_rename_applied(session, rename_id)

    async def _is_rename_applied(self, session: AsyncSession, rename_id: str) -> bool:
        res = await session.execute(
            select(AppliedRename.rename_id).where(
                AppliedRename.room_id == self.room_id, AppliedRename.rename_id == rename_id
            )
        )
        return res.scalar_one_or_none() is not None

    async def mark_rename_applied(self, rename_id: str) -> None:
        async with self._sessions() as session:
            session.add(AppliedRename(room_id=self.room_id, rename_id=rename_id))
            await session.commit()

    async def get_last_username(self, user_id: str) -> str | None:
        async with self._sessions() as session:
            return await self._get_last_username(session, user_id)

    async def _get_last_username(self, session: AsyncSession, user_id: str) -> str | None:
        res = await session.execute(
            select(RenameState.last_username).where(
                RenameState.room_id == self.room_id, RenameState.user_id == user_id
            )
        )
        return res.scalar_one_or_none()

    async def set_last_username(self, user_id: str, name: str) -> None:
        async with self._sessions() as session:
            await self._set_last_username(session, user_id, name)
            await session.commit()

    async def _set_last_username(self, session: AsyncSession, user_id: str, name: str) -> None:
        state = await session.get(RenameState, (self.room_id, user_id))
        if state is None:
            session.add(RenameState(room_id=self.room_id, user_id=user_id, last_username=name))
        else:
            state.last_username = name
        await session.flush()

    async def apply_rename(self, event: RenameEvent, system_message_id: str) -> AppliedRenameResult | None:
        """
        Apply a rename as one transaction.

        Returns ``None`` when the event was already applied or renames nothing.
        The applied marker is the last write, so a failed attempt leaves no
        trace and a retry recomputes the old name from the stored state.
        """
        async with self._sessions() as session:
            async with session.begin():
                if await self._is_rename_applied(session, event.id):
                    return None

                effective_old = await self._get_last_username(session, event.user_id) or event.old
                if not effective_old or effective_old == event.new:
                    return None

                rewritten = await self._rewrite_user(session, effective_old, event.new)
                system_message = await self._upsert(
                    session,
                    ChatMessage(
                        id=system_message_id,
                        content=f"{effective_old} changed their name to {event.new}.",
                        user=SYSTEM_USER,
                        role="system",
                    ),
                )
                await self._set_last_username(session, event.user_id, event.new)
                session.add(AppliedRename(room_id=self.room_id, rename_id=event.id))

        _log.info("room %s: renamed %r -> %r (%d messages)", self.room_id, effective_old, event.new, rewritten)
        return AppliedRenameResult(old=effective_old, new=event.new, system_message=system_message)
