import pytest

from patient_actors.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from patient_actors.services.session_manager import SessionManager
from patient_actors.services.submission_workflow import SubmissionWorkflow, status_for_grade

HELLO = [{"role": "user", "content": "Hello, what brings you in today?"}]


@pytest.fixture()
def workflow(db):
    return SubmissionWorkflow(db)


@pytest.fixture()
def session(db, users, actor):
    return SessionManager(db).start_session(users["student"], actor.id, HELLO)


@pytest.fixture()
def submission(workflow, session, users):
    return workflow.submit(session.id, users["student"], users["instructor"].id)


def test_status_for_grade():
    assert status_for_grade("A-") == "graded"
    assert status_for_grade(None) == "reviewed"
    assert status_for_grade("") == "reviewed"


def test_list_instructors_ordered_by_name(workflow, users):
    names = [item["name"] for item in workflow.list_instructors(users["student"])]
    # Instructors and admins, never students
    assert names == ["Ada Admin", "Dr. Abel Kim", "Dr. Ines Lee"]


def test_submit_creates_pending_submission(submission, session, users):
    assert submission.status == "pending"
    assert submission.chat_session_id == session.id
    assert submission.instructor_id == users["instructor"].id
    assert submission.submitted_at is not None
    assert submission.feedback is None and submission.grade is None


def test_submit_to_admin_is_allowed(workflow, session, users):
    submission = workflow.submit(session.id, users["student"], users["admin"].id)
    assert submission.instructor_id == users["admin"].id


def test_session_can_only_be_submitted_once(workflow, submission, session, users):
    with pytest.raises(ConflictError):
        workflow.submit(session.id, users["student"], users["second_instructor"].id)


def test_submit_someone_elses_session(workflow, session, users):
    with pytest.raises(ForbiddenError):
        workflow.submit(session.id, users["other_student"], users["instructor"].id)


def test_submit_unknown_session(workflow, users):
    with pytest.raises(NotFoundError):
        workflow.submit("missing", users["student"], users["instructor"].id)


def test_submit_to_unknown_instructor(workflow, session, users):
    with pytest.raises(NotFoundError):
        workflow.submit(session.id, users["student"], "missing")


def test_submit_to_a_student(workflow, session, users):
    with pytest.raises(ValidationFailedError):
        workflow.submit(session.id, users["student"], users["other_student"].id)


def test_feedback_with_grade_marks_graded(workflow, submission, users):
    reviewed = workflow.save_feedback(submission.id, users["instructor"], "Thorough history.", "  A  ")

    assert reviewed.status == "graded"
    assert reviewed.grade == "A"
    assert reviewed.feedback == "Thorough history."
    assert reviewed.reviewed_at is not None


def test_feedback_without_grade_marks_reviewed(workflow, submission, users):
    reviewed = workflow.save_feedback(submission.id, users["instructor"], "Ask about allergies.", "   ")
    assert reviewed.status == "reviewed"
    assert reviewed.grade is None


def test_status_follows_latest_save(workflow, submission, users):
    workflow.save_feedback(submission.id, users["instructor"], "Good", "B")
    again = workflow.save_feedback(submission.id, users["instructor"], "Revised: see notes")

    assert again.status == "reviewed"
    assert again.grade is None


def test_feedback_is_required(workflow, submission, users):
    with pytest.raises(ValidationFailedError):
        workflow.save_feedback(submission.id, users["instructor"], "   ", "A")


def test_grade_length_is_limited(workflow, submission, users):
    with pytest.raises(ValidationFailedError):
        workflow.save_feedback(submission.id, users["instructor"], "Thorough history", "x" * 51)
    assert workflow.get_submission(submission.id, users["instructor"]).status == "pending"

    # Surrounding whitespace does not count against the limit
    graded = workflow.save_feedback(submission.id, users["instructor"], "Thorough history", "  " + "x" * 50 + "  ")
    assert graded.grade == "x" * 50


def test_only_assigned_instructor_can_review(workflow, submission, users):
    with pytest.raises(ForbiddenError):
        workflow.save_feedback(submission.id, users["second_instructor"], "Nice", "A")
    with pytest.raises(ForbiddenError):
        workflow.save_feedback(submission.id, users["student"], "Nice", "A")


def test_review_unknown_submission(workflow, users):
    with pytest.raises(NotFoundError):
        workflow.save_feedback("missing", users["instructor"], "Nice")


def test_list_assigned(workflow, submission, users, actor, public_actor, db):
    other = SessionManager(db).start_session(users["student"], public_actor.id, HELLO)
    workflow.submit(other.id, users["student"], users["instructor"].id)

    assigned = workflow.list_assigned(users["instructor"])
    assert len(assigned) == 2
    first = assigned[-1]
    assert first["id"] == submission.id
    assert first["student"]["email"] == "sam@example.edu"
    assert first["patient_actor"]["name"] == actor.name

    filtered = workflow.list_assigned(users["instructor"], patient_actor_id=public_actor.id)
    assert [item["chat_session_id"] for item in filtered] == [other.id]

    assert workflow.list_assigned(users["second_instructor"]) == []


def test_students_cannot_list_submissions(workflow, users):
    with pytest.raises(ForbiddenError):
        workflow.list_assigned(users["student"])


def test_get_submission_visibility(workflow, submission, users):
    assert workflow.get_submission(submission.id, users["student"]).id == submission.id
    assert workflow.get_submission(submission.id, users["instructor"]).id == submission.id

    with pytest.raises(ForbiddenError):
        workflow.get_submission(submission.id, users["second_instructor"])
    with pytest.raises(NotFoundError):
        workflow.get_submission("missing", users["student"])
