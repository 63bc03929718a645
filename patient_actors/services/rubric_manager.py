"""
Rubric Manager

One grading rubric per patient actor, owned by the persona's owner. The
total is always recomputed from the categories; a client-supplied total is
ignored. Scoring itself is not implemented, auto_grade_enabled is stored as
configuration only.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError, ValidationFailedError
from ..database.models import GradingRubricDB, UserDB
from ..database.repositories import PatientActorRepository, RubricRepository
from .access import ensure_owner, require_user
from .patient_actor_registry import NOT_OWNER_MESSAGE

logger = logging.getLogger(__name__)


class RubricCategory(BaseModel):
    """A single grading category"""

    name: str
    description: str
    max_points: int = Field(..., strict=True)
    criteria: str = ""


STANDARD_OSCE_RUBRIC: List[Dict[str, Any]] = [
    {
        "name": "History Taking",
        "description": "Gathering relevant patient information",
        "max_points": 10,
        "criteria": "Asked appropriate questions, obtained comprehensive history, followed logical sequence",
    },
    {
        "name": "Communication Skills",
        "description": "Interpersonal and communication abilities",
        "max_points": 10,
        "criteria": "Clear communication, active listening, empathy, appropriate language level",
    },
    {
        "name": "Clinical Reasoning",
        "description": "Diagnostic thinking and problem-solving",
        "max_points": 10,
        "criteria": "Logical differential diagnosis, appropriate follow-up questions, clinical judgment",
    },
    {
        "name": "Professionalism",
        "description": "Professional behavior and ethics",
        "max_points": 10,
        "criteria": "Respectful manner, appropriate boundaries, ethical considerations",
    },
    {
        "name": "Patient Education",
        "description": "Explaining and educating the patient",
        "max_points": 10,
        "criteria": "Clear explanations, checked understanding, provided appropriate guidance",
    },
]


def standard_template() -> List[Dict[str, Any]]:
    """Fresh copy of the OSCE template, safe to mutate"""
    return [dict(category) for category in STANDARD_OSCE_RUBRIC]


def validate_categories(categories: Any) -> List[Dict[str, Any]]:
    """
    Check every category and return them as plain dicts for storage.

    Raises:
        ValidationFailedError: No categories, or a category with a blank
            name/description or max_points that is not an integer >= 1
    """
    if not categories:
        raise ValidationFailedError("Please add at least one category")

    validated = []
    for index, raw in enumerate(categories):
        try:
            category = raw if isinstance(raw, RubricCategory) else RubricCategory.model_validate(raw)
        except ValidationError as e:
            raise ValidationFailedError(
                f"Invalid category at position {index}",
                extra={
                    "position": index,
                    "errors": [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()],
                },
            ) from e

        if not category.name.strip() or not category.description.strip() or category.max_points < 1:
            raise ValidationFailedError(
                "All categories must have a name, description, and points",
                extra={"position": index},
            )
        validated.append(category.model_dump())
    return validated


def total_points_of(categories: List[Dict[str, Any]]) -> int:
    return sum(category["max_points"] for category in categories)


def rubric_to_dict(rubric: GradingRubricDB) -> Dict[str, Any]:
    return {
        "id": rubric.id,
        "patient_actor_id": rubric.patient_actor_id,
        "categories": list(rubric.categories or []),
        "total_points": rubric.total_points,
        "passing_threshold": rubric.passing_threshold,
        "auto_grade_enabled": rubric.auto_grade_enabled,
        "updated_at": rubric.updated_at,
    }


class RubricManager:
    """Owner-gated rubric CRUD keyed on the persona id"""

    def __init__(self, db: Session):
        self.db = db
        self.rubrics = RubricRepository(db)
        self.actors = PatientActorRepository(db)

    def _check_owner(self, patient_actor_id: str, user: Optional[UserDB]) -> UserDB:
        user = require_user(user)
        actor = self.actors.get_by_id(patient_actor_id)
        if not actor:
            raise NotFoundError("Patient actor not found", extra={"patient_actor_id": patient_actor_id})
        ensure_owner(actor.owner_id, user, NOT_OWNER_MESSAGE)
        return user

    def get(self, patient_actor_id: str, user: Optional[UserDB]) -> Optional[GradingRubricDB]:
        """The persona's rubric, or None when none was saved yet"""
        self._check_owner(patient_actor_id, user)
        return self.rubrics.get_by_patient_actor(patient_actor_id)

    def upsert(
        self,
        patient_actor_id: str,
        user: Optional[UserDB],
        categories: Any,
        passing_threshold: Optional[int] = None,
        auto_grade_enabled: bool = False,
    ) -> GradingRubricDB:
        """
        Create or overwrite the persona's rubric.

        Raises:
            NotFoundError: Persona absent
            ForbiddenError: Caller does not own the persona
            ValidationFailedError: Invalid categories or threshold
        """
        user = self._check_owner(patient_actor_id, user)
        validated = validate_categories(categories)
        total_points = total_points_of(validated)

        if passing_threshold is not None:
            if isinstance(passing_threshold, bool) or not isinstance(passing_threshold, int):
                raise ValidationFailedError("Passing threshold must be a whole number")
            if not 0 <= passing_threshold <= total_points:
                raise ValidationFailedError(
                    f"Passing threshold must be between 0 and {total_points}",
                    extra={"passing_threshold": passing_threshold, "total_points": total_points},
                )

        rubric = self.rubrics.upsert(
            patient_actor_id,
            categories=validated,
            total_points=total_points,
            passing_threshold=passing_threshold,
            auto_grade_enabled=bool(auto_grade_enabled),
        )
        logger.info(
            "Rubric saved",
            extra={
                "patient_actor_id": patient_actor_id,
                "categories": len(validated),
                "total_points": total_points,
            },
        )
        return rubric

    def delete(self, patient_actor_id: str, user: Optional[UserDB]) -> None:
        """Clear the persona's rubric; no error when there is none"""
        self._check_owner(patient_actor_id, user)
        deleted = self.rubrics.delete_by_patient_actor(patient_actor_id)
        logger.info(
            "Rubric cleared",
            extra={"patient_actor_id": patient_actor_id, "deleted": deleted},
        )
