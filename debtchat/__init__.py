"""DebtChat - a console assistant for U.S. public debt questions.

DebtChat combines an LLM conversation loop with two tools: today's date and
the Treasury "Debt to the Penny" API. Answers are grounded in fetched data;
the system instruction keeps the model on topic.

Quick Start:
    >>> import asyncio
    >>> from debtchat import AnyLLMBackend, ChatService, ClockTool, DebtDataTool, TreasuryClient
    >>>
    >>> async def main():
    ...     async with TreasuryClient() as treasury:
    ...         service = ChatService(AnyLLMBackend(), ClockTool(), DebtDataTool(treasury))
    ...         print(await service.send_message("What is the current U.S. debt?"))
    >>>
    >>> asyncio.run(main())

Main Components:
    - ChatService: conversation orchestrator (send_message, send_message_streaming, reset)
    - ChatBackend / AnyLLMBackend: chat-completion backends
    - ClockTool / DebtDataTool: tools exposed to the model
    - TreasuryClient: Debt to the Penny API client
    - DebtChatSettings: global settings

Exceptions:
    - DebtChatError: Base exception
    - TransportError / ProtocolError: Treasury API failures
    - BackendError and subclasses: chat backend failures
"""

from debtchat.backends import AnyLLMBackend, ChatBackend
from debtchat.chat import FALLBACK_RESPONSE, ChatService
from debtchat.config import DebtChatSettings, get_settings, reload_settings, settings
from debtchat.errors import (
    APIConnectionError,
    AuthenticationError,
    BackendError,
    DebtChatError,
    InvalidRequestError,
    ProtocolError,
    RateLimitError,
    TokenLimitError,
    TransportError,
    TreasuryError,
)
from debtchat.logging_config import setup_logging
from debtchat.models import (
    ChatResponse,
    ChatResponseUpdate,
    ConversationHistory,
    DebtApiEnvelope,
    DebtApiMeta,
    DebtQuery,
    DebtRecord,
    Message,
    Role,
    ToolCall,
    ToolDefinition,
)
from debtchat.tools import ClockTool, DebtDataTool, build_tool_registry
from debtchat.treasury import TreasuryClient

_setup_logging_called = False


def _initialize_logging() -> None:
    """Initialize logging configuration from settings."""
    global _setup_logging_called
    if not _setup_logging_called:
        setup_logging(settings)
        _setup_logging_called = True


_initialize_logging()

__all__ = [
    # Orchestration
    "ChatService",
    "FALLBACK_RESPONSE",
    "ChatBackend",
    "AnyLLMBackend",
    # Tools and data source
    "ClockTool",
    "DebtDataTool",
    "build_tool_registry",
    "TreasuryClient",
    # Exceptions
    "DebtChatError",
    "TreasuryError",
    "TransportError",
    "ProtocolError",
    "BackendError",
    "TokenLimitError",
    "RateLimitError",
    "APIConnectionError",
    "InvalidRequestError",
    "AuthenticationError",
    # Models
    "ChatResponse",
    "ChatResponseUpdate",
    "ConversationHistory",
    "DebtApiEnvelope",
    "DebtApiMeta",
    "DebtQuery",
    "DebtRecord",
    "Message",
    "Role",
    "ToolCall",
    "ToolDefinition",
    # Configuration
    "DebtChatSettings",
    "settings",
    "get_settings",
    "reload_settings",
]

__version__ = "0.1.0"
