import uuid
from collections.abc import Iterable
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, Field

from debtchat.models.tool import ToolCall


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class Message(BaseModel):
    id: Annotated[str, Field(default_factory=lambda: str(uuid.uuid4()), description="The unique identifier for the message")]
    role: Annotated[Role, Field(description="The role of the message")]
    content: Annotated[str, Field(default="", description="The content of the message, empty for tool-only turns")]
    tool_calls: Annotated[list[ToolCall], Field(default_factory=list, description="Tool calls requested in this turn")]
    tool_call_id: Annotated[str | None, Field(default=None, description="The call this tool result answers")]

    def to_wire(self) -> dict[str, Any]:
        """Return the OpenAI-style message dict understood by the backend."""
        if self.role == Role.TOOL:
            return {"role": self.role.value, "tool_call_id": self.tool_call_id, "content": self.content}
        if self.tool_calls:
            return {
                "role": self.role.value,
                "content": self.content or None,
                "tool_calls": [call.to_wire() for call in self.tool_calls],
            }
        return {"role": self.role.value, "content": self.content}


class ConversationHistory(BaseModel):
    """Ordered turns of one chat session, starting with the system instruction."""

    id: Annotated[str, Field(default_factory=lambda: str(uuid.uuid4()), description="The unique identifier for the conversation")]
    messages: Annotated[list[Message], Field(default_factory=list, description="The messages in the conversation")]

    @classmethod
    def with_system_prompt(cls, system_prompt: str) -> "ConversationHistory":
        history = cls()
        history.add_message(Role.SYSTEM, system_prompt)
        return history

    @property
    def messages_dict(self) -> list[dict[str, Any]]:
        return [message.to_wire() for message in self.messages]

    def add_message(self, role: Role, content: str) -> Message:
        message = Message(role=role, content=content)
        self.messages.append(message)
        return message

    def extend(self, messages: Iterable[Message]) -> None:
        self.messages.extend(messages)

    def reset(self) -> None:
        """Drop everything except a fresh copy of the system message."""
        system = next((m for m in self.messages if m.role == Role.SYSTEM), None)
        self.messages.clear()
        if system is not None:
            self.add_message(Role.SYSTEM, system.content)

    def __len__(self) -> int:
        return len(self.messages)


class ChatResponse(BaseModel):
    """Everything a backend produced for one exchange."""

    messages: Annotated[list[Message], Field(default_factory=list, description="Produced turns, in order")]

    @property
    def text(self) -> str | None:
        text = "".join(m.content for m in self.messages if m.role == Role.ASSISTANT and m.content)
        return text or None


class ChatResponseUpdate(BaseModel):
    """One incremental piece of a streamed response.

    Updates that share ``message_index`` belong to the same message.
    """

    role: Annotated[Role, Field(default=Role.ASSISTANT, description="Role of the message this update belongs to")]
    text: Annotated[str | None, Field(default=None, description="Assistant text delta shown to the user")]
    tool_result: Annotated[str | None, Field(default=None, description="Tool output, set on tool result updates")]
    tool_calls: Annotated[list[ToolCall], Field(default_factory=list, description="Completed tool calls")]
    tool_call_id: Annotated[str | None, Field(default=None, description="Set on tool result updates")]
    message_index: Annotated[int, Field(default=0, ge=0, description="Index of the message within the response")]


def messages_from_updates(updates: Iterable[ChatResponseUpdate]) -> list[Message]:
    """Coalesce streamed updates into complete messages.

    Consecutive updates with the same ``message_index`` are merged: text is
    concatenated and tool calls are collected. Assistant messages that end up
    with neither text nor tool calls are dropped.
    """
    messages: list[Message] = []
    current_index: int | None = None
    for update in updates:
        if current_index != update.message_index or not messages:
            messages.append(Message(role=update.role, tool_call_id=update.tool_call_id))
            current_index = update.message_index
        message = messages[-1]
        if update.text:
            message.content += update.text
        if update.tool_result:
            message.content += update.tool_result
        if update.tool_calls:
            message.tool_calls.extend(update.tool_calls)
        if update.tool_call_id and not message.tool_call_id:
            message.tool_call_id = update.tool_call_id
    return [m for m in messages if m.content or m.tool_calls or m.role != Role.ASSISTANT]
