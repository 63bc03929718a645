"""
Response Generator - produces the next patient turn for a conversation

Builds the system prompt of a patient actor (legacy raw prompt when present,
otherwise the compiled structured profile), prepends it to the ordered
message history and calls the language model.

Model failures are NOT hidden here: they surface as UpstreamFailureError so
the chat layer above can decide to answer with the in-character fallback.
"""
import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from ..database.models import PatientActorDB, UserDB
from ..database.repositories import PatientActorRepository
from ..llm.base import LLMMessage, LLMProvider, LLMRole
from .constants import PATIENT_MAX_TOKENS, PATIENT_TEMPERATURE
from .conversation import normalize_messages
from .errors import (
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    UpstreamFailureError,
    ValidationFailedError,
)
from .metrics import llm_call_duration_seconds
from .prompt_compiler import STRUCTURED_FIELDS, StructuredPrompt, generate_prompt

logger = logging.getLogger(__name__)


def structured_profile_of(actor: PatientActorDB) -> StructuredPrompt:
    """Read the structured profile columns of a persona (unset columns -> defaults)"""
    values = {name: getattr(actor, name, None) for name in STRUCTURED_FIELDS}
    return StructuredPrompt(**{name: value for name, value in values.items() if value is not None})


def build_system_prompt(actor: PatientActorDB) -> str:
    """
    Effective system prompt of a persona.

    A non-empty legacy raw prompt wins over the structured profile.
    """
    if actor.prompt and actor.prompt.strip():
        return actor.prompt
    return generate_prompt(structured_profile_of(actor))


class ResponseGenerator:
    """
    Gateway between patient actors and the language model.

    Two access variants share the same generation path:
    - respond_as_owner(): authenticated caller that owns the persona
    - respond_public(): anyone, persona must be public
    """

    def __init__(
        self,
        llm_provider: LLMProvider,
        actor_repo: Optional[PatientActorRepository] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.llm_provider = llm_provider
        self.actor_repo = actor_repo
        self.config = config or {}
        self.temperature = self.config.get("temperature", PATIENT_TEMPERATURE)
        self.max_tokens = self.config.get("max_tokens", PATIENT_MAX_TOKENS)

    @staticmethod
    def build_messages(system_prompt: str, history: Iterable[Any]) -> List[LLMMessage]:
        """System prompt followed by the history mapped to role/content pairs"""
        messages = [LLMMessage(role=LLMRole.SYSTEM, content=system_prompt)]
        for message in normalize_messages(history):
            messages.append(LLMMessage(role=LLMRole(message["role"]), content=message["content"]))
        return messages

    async def respond(self, actor: PatientActorDB, history: Iterable[Any]) -> str:
        """
        Generate the patient's next message.

        Args:
            actor: Persona to role-play
            history: Ordered conversation so far (user/assistant messages)

        Returns:
            Assistant text

        Raises:
            ValidationFailedError: Empty or malformed history
            UpstreamFailureError: The model call failed
        """
        history = list(history or [])
        if not history:
            raise ValidationFailedError("Conversation history must contain at least one message")

        messages = self.build_messages(build_system_prompt(actor), history)
        provider_name = getattr(self.llm_provider, "name", type(self.llm_provider).__name__)

        started = time.perf_counter()
        try:
            response = await self.llm_provider.generate(
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            llm_call_duration_seconds.labels(provider=provider_name, status="error").observe(
                time.perf_counter() - started
            )
            logger.error(
                f"Patient response generation failed: {e}",
                exc_info=True,
                extra={"patient_actor_id": actor.id, "provider": provider_name},
            )
            raise UpstreamFailureError(
                "Failed to generate patient response",
                extra={"patient_actor_id": actor.id},
            ) from e

        llm_call_duration_seconds.labels(provider=provider_name, status="success").observe(
            time.perf_counter() - started
        )
        logger.info(
            "Patient response generated",
            extra={
                "patient_actor_id": actor.id,
                "history_length": len(history),
                "tokens_used": response.usage.get("total_tokens", 0),
            },
        )
        return response.content

    def _load_actor(self, actor_id: str) -> PatientActorDB:
        if self.actor_repo is None:
            raise RuntimeError("ResponseGenerator needs a PatientActorRepository for id lookups")
        actor = self.actor_repo.get_by_id(actor_id)
        if not actor:
            raise NotFoundError("Patient actor not found", extra={"patient_actor_id": actor_id})
        return actor

    async def respond_as_owner(
        self,
        actor_id: str,
        user: Optional[UserDB],
        history: Iterable[Any],
    ) -> str:
        """Authenticated variant: the caller must own the persona"""
        if user is None:
            raise UnauthenticatedError()

        actor = self._load_actor(actor_id)
        if actor.owner_id != user.id:
            logger.warning(
                "Chat denied: caller does not own patient actor",
                extra={"patient_actor_id": actor_id, "user_id": user.id},
            )
            raise ForbiddenError("Unauthorized: You don't own this patient actor")

        return await self.respond(actor, history)

    async def respond_public(self, actor_id: str, history: Iterable[Any]) -> str:
        """Public (guest) variant: the persona must be public. Nothing is persisted."""
        actor = self._load_actor(actor_id)
        if not actor.is_public:
            raise ForbiddenError("This patient actor is not publicly accessible")

        return await self.respond(actor, history)
