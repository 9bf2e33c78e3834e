from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

Role = Literal["user", "assistant", "system"]

class ChatMessage(BaseModel):
    id: str
    content: str
    user: str
    role: Role

# ---------- Socket wire events ----------
class AddEvent(BaseModel):
    type: Literal["add"] = "add"
    id: str = Field(min_length=1)
    content: str
    user: str
    role: Literal["user", "assistant"] = "user"

    def to_message(self) -> ChatMessage:
        return ChatMessage(id=self.id, content=self.content, user=self.user, role=self.role)

class UpdateEvent(AddEvent):
    type: Literal["update"] = "update"

class RenameEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["rename"] = "rename"
    id: str = Field(min_length=1)
    user_id: str = Field(alias="userId", min_length=1)
    old: str
    new: str = Field(min_length=1)

class AllEvent(BaseModel):
    type: Literal["all"] = "all"
    messages: list[ChatMessage]

InboundEvent = Annotated[Union[AddEvent, UpdateEvent, RenameEvent], Field(discriminator="type")]
_inbound_adapter = TypeAdapter(InboundEvent)


def parse_inbound(raw: str | bytes | dict) -> AddEvent | UpdateEvent | RenameEvent | None:
    """Parse a client event; ``None`` for anything malformed or of unknown type."""
    try:
        if isinstance(raw, (str, bytes, bytearray)):
            return _inbound_adapter.validate_json(raw)
        return _inbound_adapter.validate_python(raw)
    except ValidationError:
        return None


def dump_event(event: BaseModel) -> str:
    return event.model_dump_json(by_alias=True)

# ---------- HTTP ----------
class HistoryOut(BaseModel):
    room_id: str
    messages: list[ChatMessage]

class ChatroomIn(BaseModel):
    id: str = Field(min_length=1, max_length=128)
    name: str = Field(min_length=1, max_length=256)

class RenameIn(BaseModel):
    old: str = Field(min_length=1)
    new: str = Field(min_length=1)

class RenameRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    seq: int
    user_id: str
    old: str
    new: str
    created_at: datetime

class CollapsedRename(BaseModel):
    old: str
    new: str

class RenameHistoryOut(BaseModel):
    user_id: str
    history: list[RenameRecordOut]
    collapsed: CollapsedRename | None = None
