from chatroom.db.schemas import ChatMessage


def parse_ai_prompt(content: str, prefix: str = "/ai") -> str | None:
    """Return the prompt of an AI-trigger message, or ``None`` if it is not one."""
    trimmed = content.strip()
    if not trimmed.lower().startswith(prefix.lower()):
        return None
    prompt = trimmed[len(prefix):].strip()
    return prompt or None


def build_history(recent: list[ChatMessage]) -> list[dict[str, str]]:
    # The oldest row of the window is left out of the context.
    return [{"role": m.role, "content": f"{m.user}: {m.content}"} for m in recent[1:]]
