"""
Rubric endpoints
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends

from ...database.models import UserDB
from ...services.rubric_manager import RubricManager, rubric_to_dict, standard_template
from ..deps import get_current_user, get_rubric_manager
from ..schemas.common import APIResponse
from ..schemas.rubrics import RubricCategorySchema, RubricResponse, RubricUpsert

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Rubrics"])


@router.get(
    "/rubrics/template",
    response_model=APIResponse[List[RubricCategorySchema]],
    summary="Standard OSCE rubric template",
)
def get_rubric_template() -> APIResponse[List[RubricCategorySchema]]:
    return APIResponse(
        success=True,
        data=[RubricCategorySchema(**category) for category in standard_template()],
    )


@router.get(
    "/patient-actors/{patient_actor_id}/rubric",
    response_model=APIResponse[Optional[RubricResponse]],
    summary="Get the rubric of a patient actor",
)
def get_rubric(
    patient_actor_id: str,
    user: UserDB = Depends(get_current_user),
    manager: RubricManager = Depends(get_rubric_manager),
) -> APIResponse[Optional[RubricResponse]]:
    rubric = manager.get(patient_actor_id, user)
    if rubric is None:
        return APIResponse(success=True, data=None, message="No rubric configured")
    return APIResponse(success=True, data=RubricResponse(**rubric_to_dict(rubric)))


@router.put(
    "/patient-actors/{patient_actor_id}/rubric",
    response_model=APIResponse[RubricResponse],
    summary="Create or replace the rubric",
    description="total_points is computed from the categories; any value sent is ignored.",
)
def upsert_rubric(
    patient_actor_id: str,
    request: RubricUpsert,
    user: UserDB = Depends(get_current_user),
    manager: RubricManager = Depends(get_rubric_manager),
) -> APIResponse[RubricResponse]:
    rubric = manager.upsert(
        patient_actor_id,
        user,
        categories=request.categories,
        passing_threshold=request.passing_threshold,
        auto_grade_enabled=request.auto_grade_enabled,
    )
    return APIResponse(
        success=True,
        data=RubricResponse(**rubric_to_dict(rubric)),
        message="Rubric saved",
    )


@router.delete(
    "/patient-actors/{patient_actor_id}/rubric",
    response_model=APIResponse[None],
    summary="Clear the rubric",
)
def delete_rubric(
    patient_actor_id: str,
    user: UserDB = Depends(get_current_user),
    manager: RubricManager = Depends(get_rubric_manager),
) -> APIResponse[None]:
    manager.delete(patient_actor_id, user)
    return APIResponse(success=True, message="Rubric cleared")
