"""
Editor handles for the persona workspace.

The workspace has a tab per editor (configure, rubric) and drives whichever
one is active through the same small capability interface: save, delete,
preview. Editors keep their own draft state; the workspace never reaches into
it.
"""
import logging
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..core.errors import PatientActorError, ValidationFailedError
from ..core.prompt_compiler import STRUCTURED_FIELDS, StructuredPrompt, generate_prompt
from ..database.models import UserDB
from .patient_actor_registry import PatientActorRegistry
from .rubric_manager import RubricManager, standard_template, total_points_of

logger = logging.getLogger(__name__)

SAVE_IDLE = "idle"
SAVE_SUCCESS = "success"
SAVE_ERROR = "error"

TAB_CONFIGURE = "configure"
TAB_RUBRIC = "rubric"


@runtime_checkable
class EditorHandle(Protocol):
    """Capability interface an editor exposes to its orchestrator"""

    save_status: str

    def save(self) -> Any:
        ...

    def delete(self) -> None:
        ...

    def preview(self) -> Any:
        ...


class PatientActorEditor:
    """Draft edits of one persona's fields, applied on save"""

    def __init__(self, registry: PatientActorRegistry, user: Optional[UserDB], patient_actor_id: str):
        self.registry = registry
        self.user = user
        self.actor = registry.get(patient_actor_id, user)
        self.draft: Dict[str, Any] = {}
        self.save_status = SAVE_IDLE

    @property
    def patient_actor_id(self) -> str:
        return self.actor.id

    @property
    def dirty(self) -> bool:
        return bool(self.draft)

    def set(self, **fields) -> None:
        self.draft.update(fields)

    def _current(self, field: str) -> Any:
        if field in self.draft:
            return self.draft[field]
        return getattr(self.actor, field)

    def save(self):
        try:
            self.actor = self.registry.update(self.actor.id, self.user, **self.draft)
        except PatientActorError:
            self.save_status = SAVE_ERROR
            raise
        self.draft = {}
        self.save_status = SAVE_SUCCESS
        return self.actor

    def delete(self) -> None:
        self.registry.delete(self.actor.id, self.user)
        self.draft = {}

    def preview(self) -> str:
        """System prompt the draft would produce, without saving it"""
        legacy = self._current("prompt") or ""
        if legacy.strip():
            return legacy
        profile = {
            field: self._current(field)
            for field in STRUCTURED_FIELDS
            if self._current(field) is not None
        }
        return generate_prompt(StructuredPrompt(**profile))


class RubricEditor:
    """Draft rubric categories of one persona, saved as a whole"""

    def __init__(self, manager: RubricManager, user: Optional[UserDB], patient_actor_id: str):
        self.manager = manager
        self.user = user
        self.patient_actor_id = patient_actor_id
        self.save_status = SAVE_IDLE

        rubric = manager.get(patient_actor_id, user)
        self.categories: List[Dict[str, Any]] = list(rubric.categories) if rubric else []
        self.passing_threshold: Optional[int] = rubric.passing_threshold if rubric else None
        self.auto_grade_enabled: bool = rubric.auto_grade_enabled if rubric else False

    @property
    def has_categories(self) -> bool:
        return len(self.categories) > 0

    @property
    def total_points(self) -> int:
        return total_points_of(
            [{"max_points": c.get("max_points") or 0} for c in self.categories]
        )

    def use_template(self) -> None:
        self.categories = standard_template()

    def add_category(self) -> None:
        self.categories.append({"name": "", "description": "", "max_points": 10, "criteria": ""})

    def update_category(self, index: int, **changes) -> None:
        points = changes.get("max_points")
        if "max_points" in changes and (isinstance(points, bool) or not isinstance(points, int)):
            raise ValidationFailedError(
                "Points must be a whole number",
                extra={"index": index, "max_points": points},
            )
        self.categories[index] = {**self.categories[index], **changes}

    def remove_category(self, index: int) -> None:
        del self.categories[index]

    def save(self):
        if not self.has_categories:
            self.save_status = SAVE_ERROR
            raise ValidationFailedError("Please add at least one category")
        try:
            rubric = self.manager.upsert(
                self.patient_actor_id,
                self.user,
                categories=self.categories,
                passing_threshold=self.passing_threshold,
                auto_grade_enabled=self.auto_grade_enabled,
            )
        except PatientActorError:
            self.save_status = SAVE_ERROR
            raise
        self.categories = list(rubric.categories)
        self.save_status = SAVE_SUCCESS
        return rubric

    def delete(self) -> None:
        self.manager.delete(self.patient_actor_id, self.user)
        self.categories = []
        self.passing_threshold = None
        self.auto_grade_enabled = False
        self.save_status = SAVE_IDLE

    def preview(self) -> Dict[str, Any]:
        return {
            "categories": [dict(c) for c in self.categories],
            "total_points": self.total_points,
            "passing_threshold": self.passing_threshold,
            "auto_grade_enabled": self.auto_grade_enabled,
        }


class PatientWorkspace:
    """
    Tabbed workspace over one persona.

    Actions go to the editor of the active tab through EditorHandle only.
    The test tab has no editor; it only exposes the shareable path.
    """

    def __init__(self, editors: Dict[str, EditorHandle], slug: Optional[str] = None):
        for tab, editor in editors.items():
            if not isinstance(editor, EditorHandle):
                raise TypeError(f"Editor for tab '{tab}' does not implement save/delete/preview")
        self.editors = editors
        self.slug = slug
        self.active_tab = next(iter(editors), None)

    @classmethod
    def for_patient_actor(
        cls,
        registry: PatientActorRegistry,
        manager: RubricManager,
        user: Optional[UserDB],
        patient_actor_id: str,
    ) -> "PatientWorkspace":
        persona = PatientActorEditor(registry, user, patient_actor_id)
        rubric = RubricEditor(manager, user, patient_actor_id)
        return cls({TAB_CONFIGURE: persona, TAB_RUBRIC: rubric}, slug=persona.actor.slug)

    def select(self, tab: str) -> EditorHandle:
        if tab not in self.editors:
            raise ValidationFailedError(f"Unknown tab: {tab}")
        self.active_tab = tab
        return self.editors[tab]

    @property
    def active(self) -> EditorHandle:
        return self.editors[self.active_tab]

    def save(self):
        result = self.active.save()
        logger.info("Workspace saved", extra={"tab": self.active_tab})
        return result

    def delete(self) -> None:
        self.active.delete()
        logger.info("Workspace delete", extra={"tab": self.active_tab})

    def preview(self):
        return self.active.preview()

    def shareable_path(self) -> Optional[str]:
        if not self.slug:
            return None
        return f"/public/patient-actors/{self.slug}"


__all__ = [
    "EditorHandle",
    "PatientActorEditor",
    "RubricEditor",
    "PatientWorkspace",
]
