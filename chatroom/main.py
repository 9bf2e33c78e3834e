from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import socketio

from chatroom.core.config import settings
from chatroom.core.logging import configure_logging
from chatroom.api.routes import router as api_router
from chatroom.ai.responder import build_responder
from chatroom.db.session import async_engine, init_schema
from chatroom.rooms.registry import RoomRegistry
from chatroom.socket.events import register_socket_events

configure_logging(settings.LOG_LEVEL)

responder = build_responder(settings)
registry = RoomRegistry(async_engine, settings, responder)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_schema(async_engine)
    yield
    await registry.close_all()
    await responder.aclose()


# FastAPI app
fastapi_app = FastAPI(title="Chatroom (FastAPI + Socket.IO)", lifespan=lifespan)
fastapi_app.state.registry = registry
fastapi_app.state.engine = async_engine

# CORS
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
fastapi_app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# REST routes
fastapi_app.include_router(api_router, prefix="/api")

# Socket.IO; the Redis manager is only needed when several web processes share clients
mgr = socketio.AsyncRedisManager(settings.REDIS_URL) if settings.SOCKETIO_REDIS else None
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=origins or "*", client_manager=mgr)
register_socket_events(sio, registry)

# Expose a single ASGI app (Socket.IO wrapping FastAPI)
app = socketio.ASGIApp(sio, other_asgi_app=fastapi_app)
