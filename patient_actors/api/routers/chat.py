"""
Chat endpoints

POST /chat/{id}         authenticated owner of the persona
POST /public/chat/{id}  guest chat with a public persona, nothing persisted

A model failure never reaches the student as an error: the patient answers
with a fixed in-character fallback line instead.
"""
import logging

from fastapi import APIRouter, Depends

from ...core.constants import FALLBACK_PATIENT_MESSAGE
from ...core.conversation import ChatMessage
from ...core.errors import UpstreamFailureError
from ...core.metrics import chat_responses_total, llm_fallbacks_total
from ...core.response_generator import ResponseGenerator
from ...database.models import UserDB
from ..deps import get_optional_user, get_response_generator
from ..schemas.common import APIResponse
from ..schemas.sessions import ChatRequest, ChatResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])


def _reply(patient_actor_id: str, content: str, fallback: bool = False) -> APIResponse[ChatResponse]:
    return APIResponse(
        success=True,
        data=ChatResponse(
            patient_actor_id=patient_actor_id,
            message=ChatMessage(role="assistant", content=content),
            fallback=fallback,
        ),
    )


def _fallback(patient_actor_id: str, mode: str) -> APIResponse[ChatResponse]:
    llm_fallbacks_total.labels(mode=mode).inc()
    chat_responses_total.labels(mode=mode, status="fallback").inc()
    logger.warning(
        "Answering with fallback patient message",
        extra={"patient_actor_id": patient_actor_id, "mode": mode},
    )
    return _reply(patient_actor_id, FALLBACK_PATIENT_MESSAGE, fallback=True)


@router.post(
    "/chat/{patient_actor_id}",
    response_model=APIResponse[ChatResponse],
    summary="Chat with your patient actor",
)
async def chat(
    patient_actor_id: str,
    request: ChatRequest,
    user: UserDB = Depends(get_optional_user),
    generator: ResponseGenerator = Depends(get_response_generator),
) -> APIResponse[ChatResponse]:
    try:
        content = await generator.respond_as_owner(patient_actor_id, user, request.messages)
    except UpstreamFailureError:
        return _fallback(patient_actor_id, "owner")

    chat_responses_total.labels(mode="owner", status="success").inc()
    return _reply(patient_actor_id, content)


@router.post(
    "/public/chat/{patient_actor_id}",
    response_model=APIResponse[ChatResponse],
    summary="Guest chat with a public patient actor",
)
async def public_chat(
    patient_actor_id: str,
    request: ChatRequest,
    generator: ResponseGenerator = Depends(get_response_generator),
) -> APIResponse[ChatResponse]:
    try:
        content = await generator.respond_public(patient_actor_id, request.messages)
    except UpstreamFailureError:
        return _fallback(patient_actor_id, "public")

    chat_responses_total.labels(mode="public", status="success").inc()
    return _reply(patient_actor_id, content)
