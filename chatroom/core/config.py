from pydantic import BaseModel
import os

class Settings(BaseModel):
    DATABASE_URL_ASYNC: str = os.getenv("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///./chatroom.db")
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://redis:6379/0")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")
    SOCKETIO_REDIS: bool = os.getenv("SOCKETIO_REDIS", "0").strip().lower() in ("1", "true", "yes", "on")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # AI responder
    AI_BACKEND: str = os.getenv("AI_BACKEND", "http")  # "http" or "celery"
    AI_BASE_URL: str = os.getenv("AI_BASE_URL", "https://api.openai.com/v1").rstrip("/")
    AI_API_KEY: str = os.getenv("AI_API_KEY", "")
    AI_MODEL: str = os.getenv("AI_MODEL", "gpt-4o-mini")
    AI_TIMEOUT_SECONDS: float = float(os.getenv("AI_TIMEOUT_SECONDS", "10"))
    AI_RETRIES: int = int(os.getenv("AI_RETRIES", "0"))
    AI_HISTORY_LIMIT: int = int(os.getenv("AI_HISTORY_LIMIT", "20"))
    AI_TRIGGER_PREFIX: str = os.getenv("AI_TRIGGER_PREFIX", "/ai")
    AGENT_NAME: str = os.getenv("AGENT_NAME", "Agent")

    # "ignore" drops an update for an unknown id, "append" stores it as a new message
    UPDATE_MISSING_POLICY: str = os.getenv("UPDATE_MISSING_POLICY", "ignore")

settings = Settings()
