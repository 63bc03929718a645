"""
Mock LLM provider for development and tests (no API calls)
"""
from typing import Any, Dict, List, Optional

from .base import LLMError, LLMMessage, LLMProvider, LLMResponse, LLMRole


class MockLLMProvider(LLMProvider):
    """
    Deterministic provider.

    Config:
        responses: list of canned replies, consumed in order (cycled)
        fail: raise LLMError on every call
    """

    name = "mock"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.responses = list(self.config.get("responses", []))
        self.fail = bool(self.config.get("fail", False))
        self.calls: List[List[LLMMessage]] = []

    async def generate(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        self.calls.append(list(messages))
        if self.fail:
            raise LLMError("Mock provider configured to fail", provider=self.name)

        if self.responses:
            content = self.responses[(len(self.calls) - 1) % len(self.responses)]
        else:
            last_user = next(
                (m.content for m in reversed(messages) if m.role == LLMRole.USER), ""
            )
            content = f"[mock patient] You said: {last_user}"

        return LLMResponse(
            content=content,
            model="mock",
            usage={"total_tokens": sum(len(m.content.split()) for m in messages)},
        )
