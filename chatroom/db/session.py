from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from chatroom.core.config import settings
from chatroom.db.models import Base
from typing import AsyncGenerator

# Async engine shared by the API routes and the room coordinators
async_engine = create_async_engine(settings.DATABASE_URL_ASYNC, echo=False, future=True)
AsyncSessionLocal = async_sessionmaker(bind=async_engine, expire_on_commit=False, class_=AsyncSession)


async def init_schema(engine: AsyncEngine = async_engine) -> None:
    """Create every table that does not exist yet. Safe to call on every start."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
