import pytest

from patient_actors.core.errors import ForbiddenError, NotFoundError, ValidationFailedError
from patient_actors.services.editors import (
    TAB_CONFIGURE,
    TAB_RUBRIC,
    EditorHandle,
    PatientActorEditor,
    PatientWorkspace,
    RubricEditor,
)
from patient_actors.services.rubric_manager import RubricManager


@pytest.fixture()
def workspace(db, registry, users, actor):
    return PatientWorkspace.for_patient_actor(registry, RubricManager(db), users["student"], actor.id)


def test_editors_implement_the_handle(workspace):
    assert isinstance(workspace.editors[TAB_CONFIGURE], EditorHandle)
    assert isinstance(workspace.editors[TAB_RUBRIC], EditorHandle)


def test_workspace_rejects_objects_without_handle():
    with pytest.raises(TypeError):
        PatientWorkspace({"broken": object()})


def test_configure_tab_preview_and_save(workspace, registry, users, actor):
    editor = workspace.select(TAB_CONFIGURE)
    editor.set(personality="Irritable", revelation_level="reserved")

    preview = workspace.preview()
    assert "**Personality:** Irritable" in preview
    # Draft is not persisted by a preview
    assert registry.get(actor.id, users["student"]).personality == "Anxious"

    saved = workspace.save()
    assert saved.personality == "Irritable"
    assert editor.save_status == "success"
    assert not editor.dirty


def test_configure_tab_preview_prefers_legacy_draft(workspace):
    editor = workspace.select(TAB_CONFIGURE)
    editor.set(prompt="Legacy text wins")
    assert workspace.preview() == "Legacy text wins"


def test_failed_save_sets_error_status(workspace):
    editor = workspace.select(TAB_CONFIGURE)
    editor.set(age=500)
    with pytest.raises(ValidationFailedError):
        workspace.save()
    assert editor.save_status == "error"


def test_rubric_tab_template_save_and_clear(workspace, db, users, actor):
    editor = workspace.select(TAB_RUBRIC)
    assert not editor.has_categories
    with pytest.raises(ValidationFailedError):
        workspace.save()

    editor.use_template()
    editor.update_category(0, max_points=20)
    editor.passing_threshold = 40
    assert workspace.preview()["total_points"] == 60

    rubric = workspace.save()
    assert rubric.total_points == 60
    assert editor.save_status == "success"

    workspace.delete()
    assert not editor.has_categories
    assert RubricManager(db).get(actor.id, users["student"]) is None


@pytest.mark.parametrize("points", ["15", 7.5, True, None])
def test_rubric_tab_rejects_non_integer_points(workspace, points):
    editor = workspace.select(TAB_RUBRIC)
    editor.use_template()

    with pytest.raises(ValidationFailedError):
        editor.update_category(0, max_points=points)
    assert editor.categories[0]["max_points"] == 10
    assert workspace.preview()["total_points"] == 50


def test_rubric_editor_loads_existing(db, users, actor):
    manager = RubricManager(db)
    manager.upsert(
        actor.id,
        users["student"],
        categories=[{"name": "Empathy", "description": "Shows empathy", "max_points": 5}],
        passing_threshold=3,
    )
    editor = RubricEditor(manager, users["student"], actor.id)
    assert [c["name"] for c in editor.categories] == ["Empathy"]
    assert editor.passing_threshold == 3


def test_configure_tab_delete_removes_persona(workspace, registry, users, actor):
    workspace.select(TAB_CONFIGURE)
    workspace.delete()
    with pytest.raises(NotFoundError):
        registry.get(actor.id, users["student"])


def test_editor_requires_ownership(registry, users, actor):
    with pytest.raises(ForbiddenError):
        PatientActorEditor(registry, users["other_student"], actor.id)


def test_shareable_path_and_unknown_tab(workspace, actor):
    assert workspace.shareable_path() == f"/public/patient-actors/{actor.slug}"
    with pytest.raises(ValidationFailedError):
        workspace.select("test")
