import pytest

from patient_actors.core.conversation import ChatMessage
from patient_actors.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    ValidationFailedError,
)
from patient_actors.services.session_manager import SessionManager
from patient_actors.services.submission_workflow import SubmissionWorkflow

HELLO = [{"role": "user", "content": "Hello, what brings you in today?"}]
TURN = HELLO + [{"role": "assistant", "content": "My chest has been hurting."}]


@pytest.fixture()
def manager(db):
    return SessionManager(db)


def test_start_session_persists_first_messages(manager, users, actor):
    session = manager.start_session(users["student"], actor.id, HELLO)

    assert session.user_id == users["student"].id
    assert session.patient_actor_id == actor.id
    assert session.messages == HELLO
    assert session.message_count == 1
    assert session.started_at is not None


def test_start_session_accepts_chat_message_models(manager, users, actor):
    session = manager.start_session(users["student"], actor.id, [ChatMessage(role="user", content="Hi")])
    assert session.messages == [{"role": "user", "content": "Hi"}]


def test_guests_cannot_start_sessions(manager, actor):
    with pytest.raises(UnauthenticatedError):
        manager.start_session(None, actor.id, HELLO)


def test_start_session_requires_a_message(manager, users, actor):
    with pytest.raises(ValidationFailedError):
        manager.start_session(users["student"], actor.id, [])


def test_start_session_rejects_malformed_messages(manager, users, actor):
    with pytest.raises(ValidationFailedError) as exc:
        manager.start_session(users["student"], actor.id, HELLO + [{"role": "system", "content": "x"}])
    assert exc.value.extra["position"] == 1


def test_start_session_on_public_persona_of_someone_else(manager, users, public_actor):
    session = manager.start_session(users["student"], public_actor.id, HELLO)
    assert session.patient_actor_id == public_actor.id


def test_start_session_on_private_persona_of_someone_else(manager, users, actor):
    with pytest.raises(NotFoundError):
        manager.start_session(users["other_student"], actor.id, HELLO)


def test_append_replaces_transcript(manager, users, actor):
    session = manager.start_session(users["student"], actor.id, HELLO)
    first_saved_at = session.last_message_at

    updated = manager.append_messages(session.id, users["student"], TURN)
    assert updated.messages == TURN
    assert updated.message_count == 2
    assert updated.last_message_at >= first_saved_at

    # A shorter list is stored as-is: the caller always sends the full transcript
    shorter = manager.append_messages(session.id, users["student"], HELLO)
    assert shorter.messages == HELLO
    assert shorter.message_count == 1


def test_append_by_another_user_is_forbidden(manager, users, actor):
    session = manager.start_session(users["student"], actor.id, HELLO)
    with pytest.raises(ForbiddenError):
        manager.append_messages(session.id, users["other_student"], TURN)


def test_append_unknown_session(manager, users):
    with pytest.raises(NotFoundError):
        manager.append_messages("missing", users["student"], TURN)


def test_transcript_frozen_after_submission(db, manager, users, actor):
    session = manager.start_session(users["student"], actor.id, HELLO)
    SubmissionWorkflow(db).submit(session.id, users["student"], users["instructor"].id)

    with pytest.raises(ConflictError):
        manager.append_messages(session.id, users["student"], TURN)


def test_get_session_permissions(db, manager, users, actor):
    session = manager.start_session(users["student"], actor.id, HELLO)

    assert manager.get_session(session.id, users["student"]).id == session.id
    with pytest.raises(ForbiddenError):
        manager.get_session(session.id, users["instructor"])

    SubmissionWorkflow(db).submit(session.id, users["student"], users["instructor"].id)

    assert manager.get_session(session.id, users["instructor"]).id == session.id
    with pytest.raises(ForbiddenError):
        manager.get_session(session.id, users["second_instructor"])
    with pytest.raises(ForbiddenError):
        manager.get_session(session.id, users["other_student"])


def test_list_student_sessions_includes_submission(db, manager, users, actor, public_actor):
    first = manager.start_session(users["student"], actor.id, HELLO)
    second = manager.start_session(users["student"], public_actor.id, HELLO)
    manager.start_session(users["other_student"], public_actor.id, HELLO)
    SubmissionWorkflow(db).submit(first.id, users["student"], users["instructor"].id)

    # Saving the second session again keeps it the most recently active
    manager.append_messages(second.id, users["student"], TURN)

    listing = manager.list_student_sessions(users["student"])
    assert [item["id"] for item in listing] == [second.id, first.id]

    by_id = {item["id"]: item for item in listing}
    assert by_id[first.id]["submission"]["status"] == "pending"
    assert by_id[first.id]["patient_actor"] == {"id": actor.id, "name": actor.name, "age": actor.age}
    assert by_id[second.id]["submission"] is None
    assert by_id[second.id]["message_count"] == 2
