"""
Google Gemini provider (Generative Language REST API over httpx)
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from .base import LLMError, LLMMessage, LLMProvider, LLMResponse, LLMRole

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class GeminiProvider(LLMProvider):
    """
    Config:
        api_key: GOOGLE_GENERATIVE_AI_API_KEY
        model: default gemini-2.0-flash
        timeout: seconds, default 30
        temperature: default sampling temperature
    """

    name = "gemini"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.api_key = self.config.get("api_key")
        self.model = self.config.get("model", "gemini-2.0-flash")
        self.timeout = float(self.config.get("timeout", 30.0))
        self.temperature = float(self.config.get("temperature", 0.7))
        if not self.api_key:
            logger.error(
                "Google Generative AI API key is missing. "
                "Set GOOGLE_GENERATIVE_AI_API_KEY to enable patient responses."
            )

    def _build_payload(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float],
        max_tokens: Optional[int],
    ) -> Dict[str, Any]:
        system, turns = self.split_system(messages)
        payload: Dict[str, Any] = {
            "contents": [
                {
                    # Gemini calls the assistant side "model"
                    "role": "model" if m.role == LLMRole.ASSISTANT else "user",
                    "parts": [{"text": m.content}],
                }
                for m in turns
            ],
            "generationConfig": {
                "temperature": self.temperature if temperature is None else temperature,
            },
        }
        if max_tokens:
            payload["generationConfig"]["maxOutputTokens"] = max_tokens
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        return payload

    async def generate(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        if not self.api_key:
            raise LLMError(
                "Google Generative AI API key is not configured. "
                "Please set GOOGLE_GENERATIVE_AI_API_KEY.",
                provider=self.name,
            )

        url = GEMINI_API_URL.format(model=self.model)
        payload = self._build_payload(messages, temperature, max_tokens)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, params={"key": self.api_key}, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"Gemini request failed with status {e.response.status_code}", provider=self.name
            ) from e
        except httpx.HTTPError as e:
            raise LLMError(f"Gemini request failed: {e}", provider=self.name) from e

        try:
            parts = data["candidates"][0]["content"]["parts"]
            content = "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError("Gemini returned no candidate text", provider=self.name) from e

        usage = data.get("usageMetadata", {})
        return LLMResponse(
            content=content,
            model=self.model,
            usage={
                "prompt_tokens": usage.get("promptTokenCount", 0),
                "completion_tokens": usage.get("candidatesTokenCount", 0),
                "total_tokens": usage.get("totalTokenCount", 0),
            },
        )
