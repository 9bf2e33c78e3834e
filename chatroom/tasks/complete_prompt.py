from chatroom.celery_app import app
from chatroom.core.config import settings
from chatroom.ai.responder import complete_prompt_sync

@app.task(name="complete_prompt_task")
def complete_prompt_task(prompt: str, history: list[dict[str, str]]) -> str:
    return complete_prompt_sync(
        prompt,
        history,
        base_url=settings.AI_BASE_URL,
        model=settings.AI_MODEL,
        api_key=settings.AI_API_KEY,
        timeout=settings.AI_TIMEOUT_SECONDS,
    )
