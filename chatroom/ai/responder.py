"""
AI responder: turns a prompt plus a window of prior chat turns into one reply.

Talks to any OpenAI-compatible ``/chat/completions`` endpoint, either inline
on the event loop or through a Celery worker.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import httpx

from chatroom.core.config import Settings

_log = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant in a chatroom with multiple users, which are identified by their names. "
    "Do not start your response with 'Username: '."
)
FALLBACK_REPLY = "I couldn't generate a response."

History = list[dict[str, str]]


class Responder(Protocol):
    async def respond(self, prompt: str, history: History) -> str: ...


def build_payload(model: str, prompt: str, history: History) -> dict[str, Any]:
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            *history,
            {"role": "user", "content": prompt},
        ],
    }


def extract_reply(data: Any) -> str:
    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return FALLBACK_REPLY
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return FALLBACK_REPLY
    text = str(message.get("content") or "").strip()
    return text or FALLBACK_REPLY


def _headers(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"} if api_key else {}


class HTTPResponder:
    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.model = model
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            headers=_headers(api_key),
            timeout=timeout,
        )

    async def respond(self, prompt: str, history: History) -> str:
        r = await self.client.post("/chat/completions", json=build_payload(self.model, prompt, history))
        r.raise_for_status()
        return extract_reply(r.json())

    async def aclose(self) -> None:
        await self.client.aclose()


def complete_prompt_sync(
    prompt: str,
    history: History,
    *,
    base_url: str,
    model: str,
    api_key: str = "",
    timeout: float = 10.0,
    transport: httpx.BaseTransport | None = None,
) -> str:
    """Blocking variant used by the Celery worker."""
    with httpx.Client(base_url=base_url, headers=_headers(api_key), timeout=timeout, transport=transport) as client:
        r = client.post("/chat/completions", json=build_payload(model, prompt, history))
        r.raise_for_status()
        return extract_reply(r.json())


class CeleryResponder:
    def __init__(self, timeout: float = 10.0) -> None:
        self.timeout = timeout

    async def respond(self, prompt: str, history: History) -> str:
        from chatroom.tasks.complete_prompt import complete_prompt_task

        result = complete_prompt_task.apply_async(args=[prompt, history])
        return await asyncio.to_thread(result.get, timeout=self.timeout)

    async def aclose(self) -> None:
        return None


async def respond_with_policy(
    responder: Responder,
    prompt: str,
    history: History,
    *,
    timeout: float,
    retries: int = 0,
) -> str:
    """Call ``responder`` with a per-attempt timeout and ``retries`` extra attempts."""
    attempt = 0
    while True:
        try:
            return await asyncio.wait_for(responder.respond(prompt, history), timeout=timeout)
        except Exception:
            if attempt >= retries:
                raise
            attempt += 1
            _log.warning("AI responder attempt %d failed, retrying", attempt, exc_info=True)


def build_responder(settings: Settings) -> HTTPResponder | CeleryResponder:
    if settings.AI_BACKEND == "celery":
        return CeleryResponder(timeout=settings.AI_TIMEOUT_SECONDS)
    return HTTPResponder(
        base_url=settings.AI_BASE_URL,
        model=settings.AI_MODEL,
        api_key=settings.AI_API_KEY,
        timeout=settings.AI_TIMEOUT_SECONDS,
    )
