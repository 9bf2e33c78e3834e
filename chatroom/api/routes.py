from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from chatroom.db.session import get_async_session
from chatroom.db.schemas import (
    ChatroomIn,
    CollapsedRename,
    HistoryOut,
    RenameHistoryOut,
    RenameIn,
    RenameRecordOut,
)
from chatroom.db.crud import (
    collapse_renames,
    get_or_create_room,
    get_rename_history,
    record_rename,
    room_exists,
)
from chatroom.rooms.store import RoomStore

router = APIRouter()

@router.get("/room-exists")
async def check_room(roomId: str = Query(..., min_length=1), session: AsyncSession = Depends(get_async_session)):
    return {"exist": await room_exists(session, roomId)}

@router.post("/chatrooms")
async def create_chatroom(body: ChatroomIn, session: AsyncSession = Depends(get_async_session)):
    try:
        await get_or_create_room(session, body.id, body.name)
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="Something went wrong")
    return {"ok": True}

@router.get("/rooms/{room_id}/history", response_model=HistoryOut)
async def room_history(room_id: str, request: Request):
    # a running coordinator is authoritative; otherwise read the durable log
    room = request.app.state.registry.peek(room_id)
    if room is not None:
        messages = list(room.messages)
    else:
        messages = await RoomStore(room_id, request.app.state.engine).load_all()
    return {"room_id": room_id, "messages": messages}

@router.post("/users/{user_id}/renames", response_model=RenameRecordOut)
async def add_rename(user_id: str, body: RenameIn, session: AsyncSession = Depends(get_async_session)):
    if body.old == body.new:
        raise HTTPException(status_code=400, detail="old and new name are the same")
    record = await record_rename(session, user_id, body.old, body.new)
    return RenameRecordOut.model_validate(record)

@router.get("/users/{user_id}/renames", response_model=RenameHistoryOut)
async def rename_history(user_id: str, session: AsyncSession = Depends(get_async_session)):
    history = await get_rename_history(session, user_id)
    collapsed = collapse_renames(history)
    return {
        "user_id": user_id,
        "history": [RenameRecordOut.model_validate(h) for h in history],
        "collapsed": CollapsedRename(old=collapsed[0], new=collapsed[1]) if collapsed else None,
    }
