"""Data models for DebtChat.

Available Models:
    - Role, Message, ConversationHistory: conversation state
    - ChatResponse, ChatResponseUpdate: backend results (one-shot and streamed)
    - ToolCall, ToolDefinition: tool invocation and registration
    - DebtQuery, DebtRecord, DebtApiMeta, DebtApiEnvelope: Treasury API data
"""

from debtchat.models.conversation import (
    ChatResponse,
    ChatResponseUpdate,
    ConversationHistory,
    Message,
    Role,
    messages_from_updates,
)
from debtchat.models.debt import DebtApiEnvelope, DebtApiMeta, DebtQuery, DebtRecord
from debtchat.models.tool import ToolCall, ToolDefinition

__all__ = [
    "ChatResponse",
    "ChatResponseUpdate",
    "ConversationHistory",
    "Message",
    "Role",
    "messages_from_updates",
    "DebtApiEnvelope",
    "DebtApiMeta",
    "DebtQuery",
    "DebtRecord",
    "ToolCall",
    "ToolDefinition",
]
