"""Chat backend interface.

A backend turns the conversation so far plus the available tools into the
assistant's next turn(s). Tool dispatch is the backend's job: it receives the
registered ``ToolDefinition`` objects and decides when to call them.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping, Sequence

from debtchat.models.conversation import ChatResponse, ChatResponseUpdate, Message
from debtchat.models.tool import ToolDefinition


class ChatBackend(ABC):
    """Abstract base class for chat-completion backends.

    Example:
        >>> class EchoBackend(ChatBackend):
        ...     async def complete(self, messages, tools):
        ...         return ChatResponse(messages=[Message(role=Role.ASSISTANT, content=messages[-1].content)])
        ...
        ...     async def stream_complete(self, messages, tools):
        ...         yield ChatResponseUpdate(text=messages[-1].content)
    """

    @abstractmethod
    async def complete(
        self,
        messages: Sequence[Message],
        tools: Mapping[str, ToolDefinition],
    ) -> ChatResponse:
        """Produce the full response for ``messages``.

        Returns:
            ChatResponse holding every message produced, tool-call and
            tool-result turns included, in order.
        """

    @abstractmethod
    def stream_complete(
        self,
        messages: Sequence[Message],
        tools: Mapping[str, ToolDefinition],
    ) -> AsyncIterator[ChatResponseUpdate]:
        """Produce the response incrementally.

        Implementations are async generators. Coalescing the yielded updates
        with ``messages_from_updates`` gives the same messages ``complete``
        would return.
        """
