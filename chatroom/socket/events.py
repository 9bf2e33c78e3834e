import logging
import socketio

from chatroom.rooms.registry import RoomRegistry

_log = logging.getLogger(__name__)


class SocketConnection:
    """A Socket.IO client as seen by a room coordinator."""

    def __init__(self, sio: socketio.AsyncServer, sid: str):
        self.sio = sio
        self.id = sid

    async def send(self, text: str) -> None:
        await self.sio.emit("message", text, to=self.id)


def register_socket_events(sio: socketio.AsyncServer, registry: RoomRegistry):

    async def leave(sid):
        sess = await sio.get_session(sid)
        room_id = sess.get("room_id") if sess else None
        if room_id is None:
            return
        room = registry.peek(room_id)
        if room is not None:
            await room.disconnect(sid)
            await registry.release(room_id)
        await sio.save_session(sid, {})

    @sio.event
    async def connect(sid, environ, auth=None):
        await sio.emit("connected", {"sid": sid}, to=sid)

    @sio.event
    async def join(sid, data):
        room_id = str((data or {}).get("room_id", "")).strip()
        if not room_id:
            await sio.emit("error", {"message": "room_id required"}, to=sid)
            return

        await leave(sid)
        await sio.save_session(sid, {"room_id": room_id})
        await registry.join(room_id, SocketConnection(sio, sid))
        _log.info("%s joined room %s", sid, room_id)

    @sio.event
    async def message(sid, data):
        sess = await sio.get_session(sid)
        room = registry.peek(sess.get("room_id")) if sess else None
        if room is None:
            return
        await room.handle(SocketConnection(sio, sid), data)

    @sio.event
    async def disconnect(sid, reason=None):
        await leave(sid)
