"""Conversation orchestration for the debt assistant.

``ChatService`` owns one in-memory conversation: the system instruction, the
turns exchanged so far and the tool registry handed to the backend on every
call. History is lost when the process exits.

One call at a time per instance: concurrent sends on the same service would
interleave history and are not supported.

Example:
    >>> service = ChatService(backend, clock_tool, debt_tool)
    >>> answer = await service.send_message("What is the current U.S. debt?")
    >>> async for chunk in service.send_message_streaming("And in 2008?"):
    ...     print(chunk, end="")
    >>> service.reset()
"""

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import aclosing

from debtchat.backends.base import ChatBackend
from debtchat.logging_config import get_logger
from debtchat.models.conversation import ChatResponseUpdate, ConversationHistory, Message, Role, messages_from_updates
from debtchat.models.tool import ToolDefinition
from debtchat.prompts import render_system_prompt
from debtchat.tools import ClockTool, DebtDataTool, build_tool_registry

FALLBACK_RESPONSE = "I was unable to generate a response. Please try again."


class ChatService:
    """Drives the backend with the full history and records what it produced."""

    def __init__(
        self,
        backend: ChatBackend,
        clock_tool: ClockTool,
        debt_tool: DebtDataTool,
        logger: logging.Logger | None = None,
    ):
        """Initialize the service.

        Args:
            backend: Chat backend used for every exchange
            clock_tool: Source of the ``get_current_date`` tool
            debt_tool: Source of the ``get_us_debt`` tool
            logger: Logger to use instead of the module logger
        """
        self._backend = backend
        self._logger = logger or get_logger(__name__)
        self._tools = build_tool_registry(clock_tool, debt_tool)
        self._system_prompt = render_system_prompt(self._tools.values())
        self._history = ConversationHistory.with_system_prompt(self._system_prompt)

    @property
    def tools(self) -> Mapping[str, ToolDefinition]:
        return self._tools

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    @property
    def history(self) -> list[Message]:
        """A copy of the conversation so far, system message first."""
        return list(self._history.messages)

    async def send_message(self, user_message: str) -> str:
        """Send one user message and return the assistant's reply.

        Backend errors propagate unchanged; the user message stays in history.
        """
        self._logger.info(f"User message received ({len(user_message)} chars)")

        self._history.add_message(Role.USER, user_message)

        response = await self._backend.complete(self.history, self._tools)
        text = response.text

        self._logger.info(f"Assistant response received ({len(text or '')} chars)")

        self._history.extend(response.messages)

        return text or FALLBACK_RESPONSE

    async def send_message_streaming(self, user_message: str) -> AsyncIterator[str]:
        """Send one user message and yield the reply as text chunks arrive.

        The produced turns are added to history only once the stream has been
        consumed to the end. If the consumer is cancelled or stops early,
        nothing beyond the user message is recorded and the backend stream
        is closed.
        """
        self._logger.info(f"User message received for streaming ({len(user_message)} chars)")

        self._history.add_message(Role.USER, user_message)

        updates: list[ChatResponseUpdate] = []
        async with aclosing(self._backend.stream_complete(self.history, self._tools)) as stream:
            async for update in stream:
                updates.append(update)
                if update.text:
                    yield update.text

        self._history.extend(messages_from_updates(updates))

        self._logger.info("Streaming response completed")

    def reset(self) -> None:
        """Clear the conversation, keeping only the system instruction."""
        self._history.reset()
        self._logger.info("Chat history reset")
