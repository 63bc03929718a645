import asyncio

import pytest

from patient_actors.core.errors import (
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    UpstreamFailureError,
    ValidationFailedError,
)
from patient_actors.core.prompt_compiler import generate_prompt
from patient_actors.core.response_generator import (
    ResponseGenerator,
    build_system_prompt,
    structured_profile_of,
)
from patient_actors.database.repositories import PatientActorRepository
from patient_actors.llm.base import LLMRole
from patient_actors.llm.mock import MockLLMProvider

HISTORY = [
    {"role": "user", "content": "What brings you in?"},
    {"role": "assistant", "content": "Chest pain."},
    {"role": "user", "content": "When did it start?"},
]


@pytest.fixture()
def generator(db, llm):
    return ResponseGenerator(llm, actor_repo=PatientActorRepository(db))


def test_structured_prompt_used_without_legacy(actor):
    assert build_system_prompt(actor) == generate_prompt(structured_profile_of(actor))
    assert '**Chief Complaint:** "Chest pain for two days"' in build_system_prompt(actor)


def test_legacy_prompt_takes_precedence(registry, users):
    actor = registry.create(
        users["student"],
        name="Legacy",
        age=60,
        prompt="You are an old-style patient.",
        profile={"chief_complaint": "Ignored"},
    )
    assert build_system_prompt(actor) == "You are an old-style patient."


def test_blank_legacy_prompt_is_ignored(registry, users):
    actor = registry.create(users["student"], name="Blank", age=60, prompt="   ", profile={"personality": "Calm"})
    assert build_system_prompt(actor).startswith("**Personality:** Calm")


def test_build_messages_prepends_system_prompt():
    messages = ResponseGenerator.build_messages("SYSTEM", HISTORY)

    assert [m.role for m in messages] == [LLMRole.SYSTEM, LLMRole.USER, LLMRole.ASSISTANT, LLMRole.USER]
    assert messages[0].content == "SYSTEM"
    assert [m.content for m in messages[1:]] == [m["content"] for m in HISTORY]


def test_respond_returns_model_text(generator, actor, llm):
    reply = asyncio.run(generator.respond(actor, HISTORY))

    assert reply == "My chest hurts when I climb stairs."
    sent = llm.calls[0]
    assert sent[0].role == LLMRole.SYSTEM
    assert sent[0].content == build_system_prompt(actor)
    assert len(sent) == len(HISTORY) + 1


def test_respond_rejects_empty_history(generator, actor):
    with pytest.raises(ValidationFailedError):
        asyncio.run(generator.respond(actor, []))


def test_model_failure_is_upstream_failure(db, actor):
    failing = ResponseGenerator(MockLLMProvider({"fail": True}), actor_repo=PatientActorRepository(db))
    with pytest.raises(UpstreamFailureError):
        asyncio.run(failing.respond(actor, HISTORY))


def test_respond_as_owner(generator, users, actor):
    assert asyncio.run(generator.respond_as_owner(actor.id, users["student"], HISTORY))

    with pytest.raises(UnauthenticatedError):
        asyncio.run(generator.respond_as_owner(actor.id, None, HISTORY))
    with pytest.raises(ForbiddenError):
        asyncio.run(generator.respond_as_owner(actor.id, users["other_student"], HISTORY))
    with pytest.raises(NotFoundError):
        asyncio.run(generator.respond_as_owner("missing", users["student"], HISTORY))


def test_respond_public(generator, actor, public_actor, llm):
    assert asyncio.run(generator.respond_public(public_actor.id, HISTORY))

    calls_before = len(llm.calls)
    with pytest.raises(ForbiddenError):
        asyncio.run(generator.respond_public(actor.id, HISTORY))
    assert len(llm.calls) == calls_before
