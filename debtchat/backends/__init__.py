"""Chat backends.

Available Backends:
    - ChatBackend: abstract one-shot / streaming capability pair
    - AnyLLMBackend: any_llm based backend with automatic tool execution
"""

from debtchat.backends.anyllm_backend import AnyLLMBackend
from debtchat.backends.base import ChatBackend

__all__ = ["AnyLLMBackend", "ChatBackend"]
