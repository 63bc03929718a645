"""
Conversation Session Manager

Lifecycle of a persisted conversation:

    uninitialized --first message (authenticated)--> active --submit--> submitted

Guests never reach this component: public chat is stateless.

While active, append_messages() REPLACES the stored transcript with the full
cumulative list supplied by the caller (last write wins, no concurrency
token). Callers are expected to debounce saves (see core/autosave.py).
Once a submission references the session the transcript is frozen.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.conversation import normalize_messages
from ..core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from ..core.metrics import sessions_created_total
from ..database.models import ChatSessionDB, UserDB
from ..database.repositories import ChatSessionRepository, PatientActorRepository
from .access import ensure_owner, require_user

logger = logging.getLogger(__name__)

NOT_SESSION_OWNER_MESSAGE = "Unauthorized: This session does not belong to you"


class SessionManager:
    """Create, save and read chat sessions"""

    def __init__(self, db: Session):
        self.db = db
        self.sessions = ChatSessionRepository(db)
        self.actors = PatientActorRepository(db)

    def start_session(
        self,
        user: Optional[UserDB],
        patient_actor_id: str,
        messages: Iterable[Any],
    ) -> ChatSessionDB:
        """
        Persist a new session on the student's first message.

        The persona must be owned by the caller or public; a private persona
        of someone else is reported as absent.

        Raises:
            UnauthenticatedError: Guest caller
            NotFoundError: Persona absent or not reachable by the caller
            ValidationFailedError: Empty or malformed transcript
        """
        user = require_user(user)
        transcript = normalize_messages(messages)
        if not transcript:
            raise ValidationFailedError("A session starts with at least one message")

        actor = self.actors.get_by_id(patient_actor_id)
        if not actor or (actor.owner_id != user.id and not actor.is_public):
            raise NotFoundError("Patient actor not found", extra={"patient_actor_id": patient_actor_id})

        session = self.sessions.create(user.id, actor.id, transcript)
        sessions_created_total.inc()
        logger.info(
            "Chat session created",
            extra={"session_id": session.id, "user_id": user.id, "patient_actor_id": actor.id},
        )
        return session

    def _get_owned(self, session_id: str, user: UserDB) -> ChatSessionDB:
        session = self.sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError("Session not found", extra={"session_id": session_id})
        ensure_owner(session.user_id, user, NOT_SESSION_OWNER_MESSAGE)
        return session

    def append_messages(
        self,
        session_id: str,
        user: Optional[UserDB],
        messages: Iterable[Any],
    ) -> ChatSessionDB:
        """
        Overwrite the transcript with the full cumulative message list.

        Raises:
            NotFoundError: Session absent
            ForbiddenError: Caller is not the session owner
            ConflictError: Session already submitted (transcript frozen)
            ValidationFailedError: Malformed transcript
        """
        user = require_user(user)
        transcript = normalize_messages(messages)
        session = self._get_owned(session_id, user)

        if session.submitted_session is not None:
            raise ConflictError(
                "This session has already been submitted and can no longer change",
                extra={"session_id": session_id},
            )

        updated = self.sessions.replace_messages(session.id, transcript)
        logger.debug(
            "Chat session saved",
            extra={"session_id": session_id, "message_count": updated.message_count},
        )
        return updated

    def get_session(self, session_id: str, user: Optional[UserDB]) -> ChatSessionDB:
        """
        Read a session: its student, or the instructor its submission is
        assigned to.
        """
        user = require_user(user)
        session = self.sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError("Session not found", extra={"session_id": session_id})

        submission = session.submitted_session
        if session.user_id != user.id and (
            submission is None or submission.instructor_id != user.id
        ):
            logger.warning(
                "Session read denied",
                extra={"session_id": session_id, "user_id": user.id},
            )
            raise ForbiddenError("Unauthorized: You cannot view this session")
        return session

    def list_student_sessions(self, user: Optional[UserDB]) -> List[Dict[str, Any]]:
        """The caller's sessions joined with submission status, most recent first"""
        user = require_user(user)
        return [session_summary(session) for session in self.sessions.get_by_user(user.id)]


def patient_actor_summary(actor) -> Optional[Dict[str, Any]]:
    if actor is None:
        return None
    return {"id": actor.id, "name": actor.name, "age": actor.age}


def submission_summary(submission) -> Optional[Dict[str, Any]]:
    if submission is None:
        return None
    return {
        "id": submission.id,
        "status": submission.status,
        "submitted_at": submission.submitted_at,
        "grade": submission.grade,
        "feedback": submission.feedback,
    }


def session_summary(session: ChatSessionDB) -> Dict[str, Any]:
    return {
        "id": session.id,
        "patient_actor": patient_actor_summary(session.patient_actor),
        "message_count": session.message_count,
        "started_at": session.started_at,
        "last_message_at": session.last_message_at,
        "submission": submission_summary(session.submitted_session),
    }
