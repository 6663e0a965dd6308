"""
LLM provider adapters behind one `submit` contract
"""

from appforge.modules.providers.base import (
    ProviderAdapter,
    ConversationState,
    ConversationMessage,
    ProviderResponse,
    ToolCall,
    ToolResponse,
)
from appforge.modules.providers.claude_provider import ClaudeProvider
from appforge.modules.providers.gemini_provider import GeminiProvider
from appforge.modules.providers.factory import create_provider, PROVIDERS

__all__ = [
    "ProviderAdapter",
    "ConversationState",
    "ConversationMessage",
    "ProviderResponse",
    "ToolCall",
    "ToolResponse",
    "ClaudeProvider",
    "GeminiProvider",
    "create_provider",
    "PROVIDERS",
]
