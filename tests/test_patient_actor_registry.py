import pytest
from sqlalchemy.exc import IntegrityError

from patient_actors.core.errors import (
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    ValidationFailedError,
)
from patient_actors.data.loader import load_starter_prompt
from patient_actors.database.repositories import ChatSessionRepository, RubricRepository
from patient_actors.services.patient_actor_registry import slugify


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Maria Gomez", "maria-gomez"),
        ("Dr. Smith!!", "dr-smith"),
        ("  Lots   of   space  ", "lots-of-space"),
        ("already-hyphen--ated", "already-hyphen-ated"),
        ("-edge-", "edge"),
        ("Dr. Smith !!", "dr-smith"),
        ("José Ñúñez", "jos-ez"),
        ("!!!", ""),
    ],
)
def test_slugify(name, expected):
    assert slugify(name) == expected


def test_create_assigns_slug_and_owner(registry, users):
    actor = registry.create(users["student"], name="Maria Gomez", age=47)

    assert actor.slug == "maria-gomez"
    assert actor.owner_id == users["student"].id
    assert actor.is_public is False
    assert actor.revelation_level == "moderate"


def test_slug_collisions_get_numeric_suffix(registry, users):
    first = registry.create(users["student"], name="Maria Gomez", age=47)
    second = registry.create(users["student"], name="Maria Gomez", age=48)
    third = registry.create(users["other_student"], name="Maria  Gomez!", age=49)

    assert [first.slug, second.slug, third.slug] == ["maria-gomez", "maria-gomez-1", "maria-gomez-2"]


def test_unsluggable_name_falls_back(registry, users):
    actor = registry.create(users["student"], name="???", age=30)
    assert actor.slug == "patient"


@pytest.mark.parametrize(
    "name, age",
    [("", 30), ("   ", 30), ("x" * 201, 30), ("Valid", -1), ("Valid", 131), ("Valid", "30"), ("Valid", True)],
)
def test_create_validates_name_and_age(registry, users, name, age):
    with pytest.raises(ValidationFailedError):
        registry.create(users["student"], name=name, age=age)


def test_create_rejects_unknown_profile_fields(registry, users):
    with pytest.raises(ValidationFailedError):
        registry.create(users["student"], name="A", age=1, profile={"favourite_colour": "blue"})


def test_create_rejects_invalid_revelation_level(registry, users):
    with pytest.raises(ValidationFailedError):
        registry.create(users["student"], name="A", age=1, profile={"revelation_level": "chatty"})


def test_create_rejects_wrongly_typed_profile_values(registry, users):
    with pytest.raises(ValidationFailedError) as excinfo:
        registry.create(users["student"], name="Nora", age=40, profile={"stay_in_character": "no"})
    assert excinfo.value.extra == {"field": "stay_in_character"}

    with pytest.raises(ValidationFailedError):
        registry.create(users["student"], name="Nora", age=40, profile={"medications": None})
    assert registry.list_mine(users["student"]) == []


def test_create_retries_when_slug_is_taken_concurrently(registry, users, monkeypatch):
    real_create = registry.actors.create
    attempts = []

    def racing_create(**fields):
        attempts.append(fields["slug"])
        if len(attempts) == 1:
            # Another request wins the slug between the check and the insert
            real_create(**{**fields, "owner_id": users["other_student"].id})
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: patient_actors.slug"))
        return real_create(**fields)

    monkeypatch.setattr(registry.actors, "create", racing_create)
    actor = registry.create(users["student"], name="Nora", age=40)

    assert attempts == ["nora", "nora-1"]
    assert actor.slug == "nora-1"


def test_create_reraises_constraint_failures_unrelated_to_slug(registry, users, monkeypatch):
    attempts = []

    def failing_create(**fields):
        attempts.append(fields["slug"])
        raise IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed: patient_actors.name"))

    monkeypatch.setattr(registry.actors, "create", failing_create)
    with pytest.raises(IntegrityError):
        registry.create(users["student"], name="Nora", age=40)
    assert attempts == ["nora"]


def test_create_requires_user(registry):
    with pytest.raises(UnauthenticatedError):
        registry.create(None, name="A", age=1)


def test_get_distinguishes_missing_from_foreign(registry, users, actor):
    assert registry.get(actor.id, users["student"]).id == actor.id

    with pytest.raises(NotFoundError):
        registry.get("does-not-exist", users["student"])
    with pytest.raises(ForbiddenError):
        registry.get(actor.id, users["other_student"])


def test_public_lookup_hides_private_personas(registry, actor, public_actor):
    assert registry.get_public_by_slug(public_actor.slug).id == public_actor.id

    with pytest.raises(NotFoundError) as private_exc:
        registry.get_public_by_slug(actor.slug)
    with pytest.raises(NotFoundError) as missing_exc:
        registry.get_public_by_slug("nobody-here")
    assert private_exc.value.detail == missing_exc.value.detail


def test_list_mine_only_returns_owned(registry, users, actor, public_actor):
    mine = registry.list_mine(users["student"])
    assert [a.id for a in mine] == [actor.id]


def test_update_never_touches_slug(registry, users, actor):
    updated = registry.update(actor.id, users["student"], name="Maria Lopez", is_public=True)

    assert updated.name == "Maria Lopez"
    assert updated.is_public is True
    assert updated.slug == "maria-gomez"


def test_update_rejects_slug_and_owner_changes(registry, users, actor):
    with pytest.raises(ValidationFailedError):
        registry.update(actor.id, users["student"], slug="new-slug")
    with pytest.raises(ValidationFailedError):
        registry.update(actor.id, users["student"], owner_id=users["other_student"].id)


def test_update_type_errors_become_validation_failures(registry, users, actor):
    with pytest.raises(ValidationFailedError):
        registry.update(actor.id, users["student"], stay_in_character="yes")


def test_update_by_non_owner_is_forbidden(registry, users, actor):
    with pytest.raises(ForbiddenError):
        registry.update(actor.id, users["other_student"], name="Hijacked")


def test_delete_cascades_rubric_and_detaches_sessions(db, registry, users, actor):
    RubricRepository(db).upsert(
        actor.id,
        categories=[{"name": "History", "description": "d", "max_points": 5, "criteria": ""}],
        total_points=5,
        passing_threshold=None,
        auto_grade_enabled=False,
    )
    session = ChatSessionRepository(db).create(
        users["student"].id, actor.id, [{"role": "user", "content": "Hello"}]
    )

    registry.delete(actor.id, users["student"])
    db.expire_all()

    assert RubricRepository(db).get_by_patient_actor(actor.id) is None
    kept = ChatSessionRepository(db).get_by_id(session.id)
    assert kept is not None
    assert kept.patient_actor_id is None
    with pytest.raises(NotFoundError):
        registry.get(actor.id, users["student"])


def test_delete_by_non_owner_is_forbidden(registry, users, actor):
    with pytest.raises(ForbiddenError):
        registry.delete(actor.id, users["other_student"])


def test_effective_prompt_prefers_legacy(registry, users):
    legacy = registry.create(users["student"], name="Legacy", age=40, prompt="You are a legacy patient.")
    structured = registry.create(
        users["student"], name="Structured", age=40, profile={"demographics": "40-year-old nurse"}
    )

    assert registry.effective_prompt(legacy.id, users["student"]) == "You are a legacy patient."
    assert registry.effective_prompt(structured.id, users["student"]).startswith(
        "**Demographics:** 40-year-old nurse"
    )


def test_migrate_legacy_prompt_fills_structured_fields(registry, users):
    actor = registry.create(
        users["student"],
        name="Old",
        age=70,
        prompt="**Chief Complaint:** \"I feel dizzy\"\n\n**Medications:** Warfarin",
    )

    migrated = registry.migrate_legacy_prompt(actor)
    assert migrated.chief_complaint == "I feel dizzy"
    assert migrated.medications == "Warfarin"
    assert migrated.prompt.startswith("**Chief Complaint:**")

    cleared = registry.create(users["student"], name="Older", age=80, prompt="**Personality:** Grumpy")
    cleared = registry.migrate_legacy_prompt(cleared, clear_legacy=True)
    assert cleared.personality == "Grumpy"
    assert cleared.prompt == ""


def test_migrate_skips_personas_with_structured_content(registry, users):
    actor = registry.create(
        users["student"],
        name="Both",
        age=50,
        prompt="**Personality:** Cheerful",
        profile={"personality": "Gloomy"},
    )
    assert registry.migrate_legacy_prompt(actor).personality == "Gloomy"


def test_create_starter(registry, users):
    student = users["student"]
    starter = registry.create_starter(student.id)

    assert starter.name == "Philip Walters"
    assert starter.age == 55
    assert starter.is_public is True
    assert starter.owner_id == student.id
    assert starter.slug == f"philip-walters-{student.id[-6:]}".lower()
    assert starter.prompt == load_starter_prompt()

    again = registry.create_starter(student.id)
    assert again.slug == f"{starter.slug}-1"


def test_create_starter_unknown_user(registry):
    with pytest.raises(NotFoundError):
        registry.create_starter("missing-user")
