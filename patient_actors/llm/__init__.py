"""
LLM providers for patient actor role-play
"""
from .base import LLMError, LLMMessage, LLMProvider, LLMResponse, LLMRole
from .factory import LLMProviderFactory
from .mock import MockLLMProvider

__all__ = [
    "LLMError",
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "LLMRole",
    "LLMProviderFactory",
    "MockLLMProvider",
]
