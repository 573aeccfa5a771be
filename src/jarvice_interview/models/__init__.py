"""
Models module for the chat client abstraction.

Provides a unified interface for the Gemini/OpenAI chat assistant.
"""

from jarvice_interview.models.chat_service import ChatService
from jarvice_interview.models.llm_client import (
    ASSISTANT_PERSONA,
    FALLBACK_REPLY,
    ChatClient,
    ChatClientBase,
    ChatProviderError,
    ChatReply,
    GenerationConfig,
)

__all__ = [
    "ASSISTANT_PERSONA",
    "FALLBACK_REPLY",
    "ChatClient",
    "ChatClientBase",
    "ChatProviderError",
    "ChatReply",
    "ChatService",
    "GenerationConfig",
]
