"""
LLM provider abstraction

Every provider takes an ordered list of LLMMessage (system first, then the
conversation) and returns an LLMResponse. Any downstream fault (auth, quota,
network, content policy, malformed payload) is raised as LLMError.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class LLMRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class LLMMessage:
    role: LLMRole
    content: str


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)


class LLMError(Exception):
    """Generic model invocation failure"""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class LLMProvider(ABC):
    """Base class for language model providers"""

    name = "base"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}

    @abstractmethod
    async def generate(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """
        Generate the next assistant turn

        Args:
            messages: System prompt followed by the ordered conversation
            temperature: Sampling temperature (provider default if None)
            max_tokens: Output token cap (provider default if None)

        Returns:
            LLMResponse with the generated text

        Raises:
            LLMError: On any invocation failure
        """

    @staticmethod
    def split_system(messages: List[LLMMessage]):
        """Separate system instructions from conversation turns"""
        system = "\n\n".join(m.content for m in messages if m.role == LLMRole.SYSTEM)
        turns = [m for m in messages if m.role != LLMRole.SYSTEM]
        return system, turns
