"""
Patient actor endpoints

Owner-scoped CRUD, prompt preview, the public slug lookup and the starter
persona bootstrap used by the sign-up hook.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, status

from ...core.errors import ForbiddenError
from ...database.models import UserDB
from ...services.patient_actor_registry import PatientActorRegistry
from ..deps import get_current_user, get_registry
from ..schemas.common import APIResponse
from ..schemas.patient_actors import (
    PatientActorCreate,
    PatientActorResponse,
    PatientActorUpdate,
    PromptPreviewResponse,
    PublicPatientActorResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Patient Actors"])

_BASE_FIELDS = {"name", "age", "prompt", "is_public"}


@router.post(
    "/patient-actors",
    response_model=APIResponse[PatientActorResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create patient actor",
)
def create_patient_actor(
    request: PatientActorCreate,
    user: UserDB = Depends(get_current_user),
    registry: PatientActorRegistry = Depends(get_registry),
) -> APIResponse[PatientActorResponse]:
    payload = request.model_dump(exclude_none=True)
    profile = {key: value for key, value in payload.items() if key not in _BASE_FIELDS}
    actor = registry.create(
        user,
        name=request.name,
        age=request.age,
        prompt=request.prompt or "",
        is_public=request.is_public,
        profile=profile,
    )
    return APIResponse(
        success=True,
        data=PatientActorResponse.model_validate(actor),
        message="Patient actor created",
    )


@router.get(
    "/patient-actors",
    response_model=APIResponse[List[PatientActorResponse]],
    summary="List my patient actors",
)
def list_patient_actors(
    user: UserDB = Depends(get_current_user),
    registry: PatientActorRegistry = Depends(get_registry),
) -> APIResponse[List[PatientActorResponse]]:
    actors = registry.list_mine(user)
    return APIResponse(
        success=True,
        data=[PatientActorResponse.model_validate(actor) for actor in actors],
        message=f"Found {len(actors)} patient actors",
    )


@router.get(
    "/patient-actors/{patient_actor_id}",
    response_model=APIResponse[PatientActorResponse],
    summary="Get patient actor",
)
def get_patient_actor(
    patient_actor_id: str,
    user: UserDB = Depends(get_current_user),
    registry: PatientActorRegistry = Depends(get_registry),
) -> APIResponse[PatientActorResponse]:
    actor = registry.get(patient_actor_id, user)
    return APIResponse(success=True, data=PatientActorResponse.model_validate(actor))


@router.patch(
    "/patient-actors/{patient_actor_id}",
    response_model=APIResponse[PatientActorResponse],
    summary="Update patient actor",
    description="Partial update. The slug never changes, even when the name does.",
)
def update_patient_actor(
    patient_actor_id: str,
    request: PatientActorUpdate,
    user: UserDB = Depends(get_current_user),
    registry: PatientActorRegistry = Depends(get_registry),
) -> APIResponse[PatientActorResponse]:
    changes = request.model_dump(exclude_unset=True)
    actor = registry.update(patient_actor_id, user, **changes)
    return APIResponse(
        success=True,
        data=PatientActorResponse.model_validate(actor),
        message="Patient actor updated",
    )


@router.delete(
    "/patient-actors/{patient_actor_id}",
    response_model=APIResponse[None],
    summary="Delete patient actor",
    description="Deletes the persona and its rubric. Its sessions are kept, detached from it.",
)
def delete_patient_actor(
    patient_actor_id: str,
    user: UserDB = Depends(get_current_user),
    registry: PatientActorRegistry = Depends(get_registry),
) -> APIResponse[None]:
    registry.delete(patient_actor_id, user)
    return APIResponse(success=True, message="Patient actor deleted")


@router.get(
    "/patient-actors/{patient_actor_id}/prompt",
    response_model=APIResponse[PromptPreviewResponse],
    summary="Preview the system prompt",
)
def preview_prompt(
    patient_actor_id: str,
    user: UserDB = Depends(get_current_user),
    registry: PatientActorRegistry = Depends(get_registry),
) -> APIResponse[PromptPreviewResponse]:
    actor = registry.get(patient_actor_id, user)
    source = "legacy" if actor.prompt and actor.prompt.strip() else "structured"
    return APIResponse(
        success=True,
        data=PromptPreviewResponse(
            patient_actor_id=actor.id,
            source=source,
            prompt=registry.effective_prompt(actor.id, user),
        ),
    )


@router.get(
    "/public/patient-actors/{slug}",
    response_model=APIResponse[PublicPatientActorResponse],
    summary="Public patient actor page",
    description="No authentication. Private and unknown slugs both answer 404.",
)
def get_public_patient_actor(
    slug: str,
    registry: PatientActorRegistry = Depends(get_registry),
) -> APIResponse[PublicPatientActorResponse]:
    actor = registry.get_public_by_slug(slug)
    return APIResponse(success=True, data=PublicPatientActorResponse.model_validate(actor))


@router.post(
    "/users/{user_id}/starter",
    response_model=APIResponse[PatientActorResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create the starter patient actor",
)
def create_starter_patient_actor(
    user_id: str,
    user: UserDB = Depends(get_current_user),
    registry: PatientActorRegistry = Depends(get_registry),
) -> APIResponse[PatientActorResponse]:
    if user.id != user_id:
        raise ForbiddenError("Unauthorized: You can only bootstrap your own account")
    actor = registry.create_starter(user_id)
    return APIResponse(
        success=True,
        data=PatientActorResponse.model_validate(actor),
        message="Starter patient actor created",
    )
