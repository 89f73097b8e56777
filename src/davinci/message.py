from enum import Enum
from pydantic import BaseModel, field_serializer


class MessageRole(Enum):
    ASSISTANT = "assistant"
    USER = "user"


class Message(BaseModel):
    role: MessageRole
    content: str

    @field_serializer('role')
    def serialize_role(self, role: MessageRole, _info) -> str:
        return role.value


class ChatStreamDelta(BaseModel):
    """One ``data:`` payload from the chat stream endpoint."""

    content: str = ""
    done: bool = False
    finish_reason: str | None = None
    # Set by the server's ``event: error`` record instead of content.
    error: str | None = None
