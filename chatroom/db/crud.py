from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from chatroom.db.models import Chatroom, UserRename

# ---------- Rooms ----------
async def room_exists(session: AsyncSession, room_id: str) -> bool:
    res = await session.execute(select(Chatroom.room_id).where(Chatroom.room_id == room_id))
    return res.scalar_one_or_none() is not None

async def get_or_create_room(session: AsyncSession, room_id: str, name: str) -> Chatroom:
    res = await session.execute(select(Chatroom).where(Chatroom.room_id == room_id))
    room = res.scalar_one_or_none()
    if room:
        return room
    room = Chatroom(room_id=room_id, name=name)
    session.add(room)
    await session.commit()
    await session.refresh(room)
    return room

# ---------- Rename history ----------
async def record_rename(session: AsyncSession, user_id: str, old: str, new: str) -> UserRename:
    record = UserRename(user_id=user_id, old=old, new=new)
    session.add(record)
    await session.commit()
    await session.refresh(record)
    return record

async def get_rename_history(session: AsyncSession, user_id: str) -> list[UserRename]:
    res = await session.execute(
        select(UserRename).where(UserRename.user_id == user_id).order_by(UserRename.seq.asc())
    )
    return list(res.scalars().all())

def collapse_renames(history: list[UserRename]) -> tuple[str, str] | None:
    """Fold a chain of renames into (oldest old name, newest new name)."""
    if not history:
        return None
    old, new = history[0].old, history[-1].new
    if old == new:
        return None
    return old, new
