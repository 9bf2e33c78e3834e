from celery import Celery
from chatroom.core.config import settings

# Celery application; workers run the AI completion off the web process
app = Celery(
    "chatroom",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["chatroom.tasks.complete_prompt"],
)
