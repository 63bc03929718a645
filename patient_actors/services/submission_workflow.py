"""
Submission & Review Workflow

    none --submit--> pending --feedback, no grade--> reviewed
                             --feedback + grade---> graded

Status is recomputed from the presence of a grade on every review save, so
graded -> reviewed is reachable by saving again without a grade. Only the
assigned instructor may review; a session can be submitted once.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.constants import MAX_GRADE_LENGTH, SUBMISSION_GRADED, SUBMISSION_REVIEWED
from ..core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from ..core.metrics import submission_transitions_total
from ..database.models import SubmittedSessionDB, UserDB
from ..database.repositories import (
    ChatSessionRepository,
    SubmissionRepository,
    UserRepository,
)
from .access import ensure_owner, is_reviewer, require_reviewer, require_user
from .session_manager import NOT_SESSION_OWNER_MESSAGE, patient_actor_summary

logger = logging.getLogger(__name__)

ALREADY_SUBMITTED_MESSAGE = "This session has already been submitted"


def status_for_grade(grade: Optional[str]) -> str:
    """A non-empty grade means graded, otherwise reviewed"""
    return SUBMISSION_GRADED if grade else SUBMISSION_REVIEWED


def user_summary(user) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email}


def submission_detail(submission: SubmittedSessionDB) -> Dict[str, Any]:
    session = submission.chat_session
    return {
        "id": submission.id,
        "status": submission.status,
        "feedback": submission.feedback,
        "grade": submission.grade,
        "submitted_at": submission.submitted_at,
        "reviewed_at": submission.reviewed_at,
        "instructor": user_summary(submission.instructor),
        "chat_session_id": submission.chat_session_id,
        "patient_actor": patient_actor_summary(session.patient_actor) if session else None,
        "student": user_summary(session.user) if session else None,
        "message_count": session.message_count if session else 0,
    }


class SubmissionWorkflow:
    """Submit sessions to instructors and record their reviews"""

    def __init__(self, db: Session):
        self.db = db
        self.sessions = ChatSessionRepository(db)
        self.submissions = SubmissionRepository(db)
        self.users = UserRepository(db)

    def list_instructors(self, user: Optional[UserDB]) -> List[Dict[str, Any]]:
        """Instructor directory: instructors and admins ordered by name"""
        require_user(user)
        return [user_summary(instructor) for instructor in self.users.get_instructors()]

    def submit(
        self,
        session_id: str,
        user: Optional[UserDB],
        instructor_id: str,
    ) -> SubmittedSessionDB:
        """
        Route an owned session to an instructor.

        Raises:
            NotFoundError: Session or instructor absent
            ForbiddenError: Caller does not own the session
            ConflictError: Session already submitted
            ValidationFailedError: Target user is not an instructor/admin
        """
        user = require_user(user)
        session = self.sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError("Session not found", extra={"session_id": session_id})
        ensure_owner(session.user_id, user, NOT_SESSION_OWNER_MESSAGE)

        if session.submitted_session is not None:
            raise ConflictError(ALREADY_SUBMITTED_MESSAGE, extra={"session_id": session_id})

        instructor = self.users.get_by_id(instructor_id)
        if not instructor:
            raise NotFoundError("Instructor not found", extra={"instructor_id": instructor_id})
        if not is_reviewer(instructor):
            raise ValidationFailedError(
                "The specified user is not an instructor",
                extra={"instructor_id": instructor_id},
            )

        try:
            submission = self.submissions.create(session.id, instructor.id)
        except IntegrityError as e:
            # Lost a race against a concurrent submit of the same session
            raise ConflictError(ALREADY_SUBMITTED_MESSAGE, extra={"session_id": session_id}) from e

        submission_transitions_total.labels(to_status=submission.status).inc()
        logger.info(
            "Session submitted",
            extra={
                "submission_id": submission.id,
                "session_id": session.id,
                "instructor_id": instructor.id,
            },
        )
        return submission

    def list_assigned(
        self,
        user: Optional[UserDB],
        patient_actor_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Submissions assigned to the calling instructor, optionally for one persona"""
        user = require_reviewer(user, "view submitted sessions")
        return [
            submission_detail(submission)
            for submission in self.submissions.get_by_instructor(user.id, patient_actor_id)
        ]

    def get_submission(self, submission_id: str, user: Optional[UserDB]) -> SubmittedSessionDB:
        """Readable by the submitting student and the assigned instructor"""
        user = require_user(user)
        submission = self.submissions.get_by_id(submission_id)
        if not submission:
            raise NotFoundError("Submission not found", extra={"submission_id": submission_id})

        student_id = submission.chat_session.user_id if submission.chat_session else None
        if user.id not in (submission.instructor_id, student_id):
            raise ForbiddenError("Unauthorized: You cannot view this submission")
        return submission

    def save_feedback(
        self,
        submission_id: str,
        user: Optional[UserDB],
        feedback: str,
        grade: Optional[str] = None,
    ) -> SubmittedSessionDB:
        """
        Record the instructor's review.

        Raises:
            ForbiddenError: Caller is not an instructor, or not the assigned one
            NotFoundError: Submission absent
            ValidationFailedError: Blank feedback or overlong grade
        """
        user = require_reviewer(user, "provide feedback")

        submission = self.submissions.get_by_id(submission_id)
        if not submission:
            raise NotFoundError("Submission not found", extra={"submission_id": submission_id})

        if submission.instructor_id != user.id:
            logger.warning(
                "Review denied: submission assigned to another instructor",
                extra={"submission_id": submission_id, "user_id": user.id},
            )
            raise ForbiddenError("Unauthorized: This submission is not assigned to you")

        if not isinstance(feedback, str) or not feedback.strip():
            raise ValidationFailedError("Feedback is required")

        grade = grade.strip() if isinstance(grade, str) else None
        grade = grade or None
        if grade is not None and len(grade) > MAX_GRADE_LENGTH:
            raise ValidationFailedError(
                f"Grade must be at most {MAX_GRADE_LENGTH} characters",
                extra={"max_length": MAX_GRADE_LENGTH},
            )
        status = status_for_grade(grade)

        previous_status = submission.status
        updated = self.submissions.update_review(submission.id, feedback, grade, status)

        submission_transitions_total.labels(to_status=status).inc()
        logger.info(
            "Submission reviewed",
            extra={
                "submission_id": submission.id,
                "from_status": previous_status,
                "to_status": status,
            },
        )
        return updated
