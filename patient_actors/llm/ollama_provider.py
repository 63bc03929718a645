"""
Ollama provider (local models over the /api/chat endpoint)
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from .base import LLMError, LLMMessage, LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class OllamaProvider(LLMProvider):
    """
    Config:
        base_url: default http://localhost:11434
        model: default llama2
        temperature, timeout, keep_alive, options
    """

    name = "ollama"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.base_url = self.config.get("base_url", "http://localhost:11434").rstrip("/")
        self.model = self.config.get("model", "llama2")
        self.temperature = float(self.config.get("temperature", 0.7))
        self.timeout = float(self.config.get("timeout", 60.0))
        self.keep_alive = self.config.get("keep_alive")
        self.options = dict(self.config.get("options", {}))

    async def generate(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        options = dict(self.options)
        options["temperature"] = self.temperature if temperature is None else temperature
        if max_tokens:
            options["num_predict"] = max_tokens

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role.value, "content": m.content} for m in messages],
            "stream": False,
            "options": options,
        }
        if self.keep_alive:
            payload["keep_alive"] = self.keep_alive

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/api/chat", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            raise LLMError(f"Ollama request failed: {e}", provider=self.name) from e

        message = data.get("message") or {}
        if "content" not in message:
            raise LLMError("Ollama returned no message content", provider=self.name)

        prompt_tokens = data.get("prompt_eval_count", 0)
        completion_tokens = data.get("eval_count", 0)
        return LLMResponse(
            content=message["content"],
            model=data.get("model", self.model),
            usage={
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
        )
