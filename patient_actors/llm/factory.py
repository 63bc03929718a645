"""
LLM Provider Factory

Builds the provider that voices the patient actors.

Providers:
- gemini: Google Gemini over the REST API (default)
- ollama: local models served by Ollama
- mock: canned replies, no network (tests, offline development)

Usage:
    >>> from patient_actors.llm import LLMProviderFactory
    >>> provider = LLMProviderFactory.create_from_env()
    >>> provider = LLMProviderFactory.create("ollama", {"model": "llama3"})
"""
import logging
import os
from typing import Any, Dict, Optional

from .base import LLMProvider
from .gemini_provider import GeminiProvider
from .mock import MockLLMProvider
from .ollama_provider import OllamaProvider

logger = logging.getLogger(__name__)


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None


class LLMProviderFactory:
    """Registry of provider classes keyed by LLM_PROVIDER name"""

    _providers = {
        "gemini": GeminiProvider,
        "ollama": OllamaProvider,
        "mock": MockLLMProvider,
    }

    @classmethod
    def register_provider(cls, name: str, provider_class) -> None:
        """Add a provider type (must subclass LLMProvider)"""
        if not issubclass(provider_class, LLMProvider):
            raise ValueError(f"{provider_class} must inherit from LLMProvider")
        cls._providers[name] = provider_class

    @classmethod
    def create(cls, provider_type: str, config: Optional[Dict[str, Any]] = None) -> LLMProvider:
        """
        Instantiate a registered provider

        Raises:
            ValueError: If provider type is not registered
        """
        provider_class = cls._providers.get(provider_type)
        if provider_class is None:
            raise ValueError(
                f"Unknown provider type: {provider_type}. "
                f"Available providers: {', '.join(cls._providers)}"
            )
        return provider_class(config)

    @classmethod
    def get_available_providers(cls) -> list:
        return list(cls._providers)

    @classmethod
    def create_from_env(cls, provider_type: Optional[str] = None) -> LLMProvider:
        """
        Build the provider described by the environment

        LLM_PROVIDER picks the provider (default gemini). Gemini reads
        GOOGLE_GENERATIVE_AI_API_KEY, GEMINI_MODEL and GEMINI_TIMEOUT; Ollama
        reads OLLAMA_BASE_URL, OLLAMA_MODEL, OLLAMA_TEMPERATURE,
        OLLAMA_TIMEOUT, OLLAMA_KEEP_ALIVE and OLLAMA_NUM_CTX.
        """
        provider_type = (provider_type or os.getenv("LLM_PROVIDER", "gemini")).lower()
        config: Dict[str, Any] = {}

        if provider_type == "gemini":
            config["api_key"] = os.getenv("GOOGLE_GENERATIVE_AI_API_KEY")
            config["model"] = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
            timeout = _optional_float("GEMINI_TIMEOUT")
            if timeout:
                config["timeout"] = timeout

        elif provider_type == "ollama":
            config["base_url"] = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
            config["model"] = os.getenv("OLLAMA_MODEL", "llama2")
            config["temperature"] = float(os.getenv("OLLAMA_TEMPERATURE", "0.7"))
            timeout = _optional_float("OLLAMA_TIMEOUT")
            if timeout:
                config["timeout"] = timeout
            # Keeps the model resident between chat turns
            if os.getenv("OLLAMA_KEEP_ALIVE"):
                config["keep_alive"] = os.getenv("OLLAMA_KEEP_ALIVE")
            if os.getenv("OLLAMA_NUM_CTX"):
                config["options"] = {"num_ctx": int(os.getenv("OLLAMA_NUM_CTX"))}

        logger.info("Creating LLM provider", extra={"provider": provider_type})
        return cls.create(provider_type, config)
