"""
Repository pattern for database operations

Provides:
- UserRepository: Accounts and the instructor directory
- PatientActorRepository: Patient actor personas
- RubricRepository: Grading rubrics (keyed 1:1 on patient actor)
- ChatSessionRepository: Persisted student conversations
- SubmissionRepository: Sessions submitted for instructor review

TRANSACTION MANAGEMENT:
----------------------
Individual repository methods commit immediately after each operation and
roll back + re-raise on failure. Ownership and state rules live in the
services layer; repositories only read and write records.
"""
import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import desc
from sqlalchemy.orm import Session, joinedload

from ..core.constants import REVIEWER_ROLES, SUBMISSION_PENDING, utc_now
from .models import (
    ChatSessionDB,
    GradingRubricDB,
    PatientActorDB,
    SubmittedSessionDB,
    UserDB,
)
from .transaction import transaction

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for accounts and the instructor directory"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, name: str, email: str, role: str = "student") -> UserDB:
        """
        Create a new user

        Args:
            name: Display name
            email: Email (unique, normalized to lowercase)
            role: student, instructor or admin

        Returns:
            Created UserDB instance
        """
        try:
            user = UserDB(
                id=str(uuid4()),
                name=name,
                email=email.lower(),
                role=role,
            )
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)

            logger.info("User created", extra={"user_id": user.id, "role": user.role})
            return user
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create user: {e}", extra={"role": role})
            raise

    def get_by_id(self, user_id: str) -> Optional[UserDB]:
        """Get user by ID"""
        return self.db.query(UserDB).filter(UserDB.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[UserDB]:
        """Get user by email (case-insensitive)"""
        return self.db.query(UserDB).filter(UserDB.email == email.lower()).first()

    def get_instructors(self) -> List[UserDB]:
        """Users whose role is instructor or admin, ordered by name"""
        return (
            self.db.query(UserDB)
            .filter(UserDB.role.in_(REVIEWER_ROLES))
            .order_by(UserDB.name.asc())
            .all()
        )


class PatientActorRepository:
    """Repository for patient actor personas"""

    # Fields that may be patched after creation. slug and owner_id are
    # deliberately absent: both are fixed once the persona exists.
    UPDATEABLE_FIELDS = {
        "name": str,
        "age": int,
        "is_public": bool,
        "prompt": str,
        "demographics": str,
        "chief_complaint": str,
        "medical_history": str,
        "medications": str,
        "social_history": str,
        "personality": str,
        "physical_findings": str,
        "additional_symptoms": str,
        "revelation_level": str,
        "stay_in_character": bool,
        "avoid_medical_jargon": bool,
        "provide_feedback": bool,
        "custom_instructions": str,
    }

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(
        self,
        owner_id: str,
        name: str,
        age: int,
        slug: str,
        is_public: bool = False,
        prompt: str = "",
        profile: Optional[Dict[str, Any]] = None,
    ) -> PatientActorDB:
        """
        Create a new patient actor

        Args:
            owner_id: Owning user
            name: Display name
            age: Patient age
            slug: Unique URL slug (already resolved by the caller)
            is_public: Reachable through the public slug page
            prompt: Legacy raw system prompt
            profile: Structured profile columns

        Returns:
            Created PatientActorDB instance
        """
        try:
            actor = PatientActorDB(
                id=str(uuid4()),
                owner_id=owner_id,
                name=name,
                age=age,
                slug=slug,
                is_public=is_public,
                prompt=prompt or "",
                **(profile or {}),
            )
            self.db.add(actor)
            self.db.commit()
            self.db.refresh(actor)
            return actor
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create patient actor: {e}", extra={"owner_id": owner_id, "slug": slug})
            raise

    def get_by_id(self, actor_id: str) -> Optional[PatientActorDB]:
        """Get patient actor by ID"""
        return self.db.query(PatientActorDB).filter(PatientActorDB.id == actor_id).first()

    def get_by_slug(self, slug: str) -> Optional[PatientActorDB]:
        """Get patient actor by its unique slug"""
        return self.db.query(PatientActorDB).filter(PatientActorDB.slug == slug).first()

    def slug_exists(self, slug: str) -> bool:
        return (
            self.db.query(PatientActorDB.id).filter(PatientActorDB.slug == slug).first()
            is not None
        )

    def get_by_owner(self, owner_id: str) -> List[PatientActorDB]:
        """All personas owned by a user, newest first"""
        return (
            self.db.query(PatientActorDB)
            .filter(PatientActorDB.owner_id == owner_id)
            .order_by(desc(PatientActorDB.created_at))
            .all()
        )

    def get_all(self) -> List[PatientActorDB]:
        return self.db.query(PatientActorDB).order_by(PatientActorDB.created_at.asc()).all()

    def get_without_slug(self) -> List[PatientActorDB]:
        """Personas whose slug is empty or a temporary placeholder"""
        return (
            self.db.query(PatientActorDB)
            .filter((PatientActorDB.slug == "") | (PatientActorDB.slug.startswith("temp-")))
            .order_by(PatientActorDB.created_at.asc())
            .all()
        )

    def update(self, actor_id: str, **kwargs) -> Optional[PatientActorDB]:
        """
        Patch patient actor fields.

        Only whitelisted fields may be updated.

        Raises:
            ValueError: If attempting to update a protected field
            TypeError: If field value has incorrect type
        """
        actor = self.get_by_id(actor_id)
        if not actor:
            return None

        for key, value in kwargs.items():
            if key not in self.UPDATEABLE_FIELDS:
                raise ValueError(
                    f"Cannot update field '{key}'. "
                    f"Allowed fields: {', '.join(self.UPDATEABLE_FIELDS.keys())}"
                )
            expected_type = self.UPDATEABLE_FIELDS[key]
            # bool is a subclass of int; reject it for integer fields
            if not isinstance(value, expected_type) or (
                expected_type is int and isinstance(value, bool)
            ):
                raise TypeError(
                    f"Invalid type for field '{key}': "
                    f"expected {expected_type.__name__}, got {type(value).__name__}"
                )

        try:
            for key, value in kwargs.items():
                setattr(actor, key, value)
            actor.updated_at = utc_now()
            self.db.commit()
            self.db.refresh(actor)
            return actor
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update patient actor {actor_id}: {e}")
            raise

    def set_slug(self, actor_id: str, slug: str) -> Optional[PatientActorDB]:
        """Assign a slug (slug migration only; normal updates never touch it)"""
        actor = self.get_by_id(actor_id)
        if not actor:
            return None
        try:
            actor.slug = slug
            self.db.commit()
            self.db.refresh(actor)
            return actor
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to set slug for patient actor {actor_id}: {e}")
            raise

    def delete(self, actor_id: str) -> bool:
        """
        Delete a patient actor together with its rubric.

        Chat sessions keep their transcript with patient_actor_id set to NULL.
        """
        actor = self.get_by_id(actor_id)
        if not actor:
            return False
        with transaction(self.db, f"Delete patient actor {actor_id} with rubric"):
            (
                self.db.query(GradingRubricDB)
                .filter(GradingRubricDB.patient_actor_id == actor_id)
                .delete(synchronize_session="fetch")
            )
            self.db.delete(actor)
        return True


class RubricRepository:
    """Repository for grading rubrics"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def get_by_patient_actor(self, patient_actor_id: str) -> Optional[GradingRubricDB]:
        return (
            self.db.query(GradingRubricDB)
            .filter(GradingRubricDB.patient_actor_id == patient_actor_id)
            .first()
        )

    def upsert(
        self,
        patient_actor_id: str,
        categories: List[Dict[str, Any]],
        total_points: int,
        passing_threshold: Optional[int],
        auto_grade_enabled: bool,
    ) -> GradingRubricDB:
        """Create the rubric for a persona, or overwrite the existing one"""
        try:
            rubric = self.get_by_patient_actor(patient_actor_id)
            if rubric is None:
                rubric = GradingRubricDB(id=str(uuid4()), patient_actor_id=patient_actor_id)
                self.db.add(rubric)

            rubric.categories = categories
            rubric.total_points = total_points
            rubric.passing_threshold = passing_threshold
            rubric.auto_grade_enabled = auto_grade_enabled
            rubric.updated_at = utc_now()

            self.db.commit()
            self.db.refresh(rubric)
            return rubric
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to upsert rubric: {e}", extra={"patient_actor_id": patient_actor_id})
            raise

    def delete_by_patient_actor(self, patient_actor_id: str) -> int:
        """Delete the rubric rows for a persona; returns how many were removed"""
        try:
            deleted = (
                self.db.query(GradingRubricDB)
                .filter(GradingRubricDB.patient_actor_id == patient_actor_id)
                .delete(synchronize_session="fetch")
            )
            self.db.commit()
            return deleted
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete rubric: {e}", extra={"patient_actor_id": patient_actor_id})
            raise


class ChatSessionRepository:
    """Repository for persisted chat sessions"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(
        self,
        user_id: str,
        patient_actor_id: str,
        messages: Optional[List[Dict[str, str]]] = None,
    ) -> ChatSessionDB:
        """
        Create a chat session, optionally with its first messages

        Args:
            user_id: Owning student
            patient_actor_id: Persona the student is talking to
            messages: Initial transcript

        Returns:
            Created ChatSessionDB instance
        """
        messages = list(messages or [])
        now = utc_now()
        try:
            session = ChatSessionDB(
                id=str(uuid4()),
                user_id=user_id,
                patient_actor_id=patient_actor_id,
                messages=messages,
                message_count=len(messages),
                started_at=now,
                last_message_at=now,
            )
            self.db.add(session)
            self.db.commit()
            self.db.refresh(session)
            return session
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create chat session: {e}", extra={
                "user_id": user_id,
                "patient_actor_id": patient_actor_id,
            })
            raise

    def get_by_id(self, session_id: str) -> Optional[ChatSessionDB]:
        """Get chat session by ID with persona and submission loaded"""
        return (
            self.db.query(ChatSessionDB)
            .options(
                joinedload(ChatSessionDB.patient_actor),
                joinedload(ChatSessionDB.submitted_session),
            )
            .filter(ChatSessionDB.id == session_id)
            .first()
        )

    def get_by_user(self, user_id: str) -> List[ChatSessionDB]:
        """A student's sessions, most recently active first"""
        return (
            self.db.query(ChatSessionDB)
            .options(
                joinedload(ChatSessionDB.patient_actor),
                joinedload(ChatSessionDB.submitted_session),
            )
            .filter(ChatSessionDB.user_id == user_id)
            .order_by(desc(ChatSessionDB.last_message_at))
            .all()
        )

    def replace_messages(self, session_id: str, messages: List[Dict[str, str]]) -> Optional[ChatSessionDB]:
        """
        Overwrite the stored transcript with the full cumulative list.

        Last write wins; there is no concurrency token.
        """
        session = self.get_by_id(session_id)
        if not session:
            return None
        try:
            session.messages = list(messages)
            session.message_count = len(messages)
            session.last_message_at = utc_now()
            self.db.commit()
            self.db.refresh(session)
            return session
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update chat session {session_id}: {e}")
            raise


class SubmissionRepository:
    """Repository for submitted sessions"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create(self, chat_session_id: str, instructor_id: str) -> SubmittedSessionDB:
        """
        Create a pending submission.

        Raises:
            sqlalchemy.exc.IntegrityError: If the session was already submitted
        """
        try:
            submission = SubmittedSessionDB(
                id=str(uuid4()),
                chat_session_id=chat_session_id,
                instructor_id=instructor_id,
                status=SUBMISSION_PENDING,
                submitted_at=utc_now(),
            )
            self.db.add(submission)
            self.db.commit()
            self.db.refresh(submission)
            return submission
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create submission: {e}", extra={
                "chat_session_id": chat_session_id,
                "instructor_id": instructor_id,
            })
            raise

    def get_by_id(self, submission_id: str) -> Optional[SubmittedSessionDB]:
        return (
            self.db.query(SubmittedSessionDB)
            .options(
                joinedload(SubmittedSessionDB.chat_session).joinedload(ChatSessionDB.patient_actor),
                joinedload(SubmittedSessionDB.chat_session).joinedload(ChatSessionDB.user),
                joinedload(SubmittedSessionDB.instructor),
            )
            .filter(SubmittedSessionDB.id == submission_id)
            .first()
        )

    def get_by_chat_session(self, chat_session_id: str) -> Optional[SubmittedSessionDB]:
        return (
            self.db.query(SubmittedSessionDB)
            .filter(SubmittedSessionDB.chat_session_id == chat_session_id)
            .first()
        )

    def get_by_instructor(
        self,
        instructor_id: str,
        patient_actor_id: Optional[str] = None,
    ) -> List[SubmittedSessionDB]:
        """Submissions assigned to an instructor, newest first"""
        query = (
            self.db.query(SubmittedSessionDB)
            .join(SubmittedSessionDB.chat_session)
            .options(
                joinedload(SubmittedSessionDB.chat_session).joinedload(ChatSessionDB.patient_actor),
                joinedload(SubmittedSessionDB.chat_session).joinedload(ChatSessionDB.user),
            )
            .filter(SubmittedSessionDB.instructor_id == instructor_id)
        )
        if patient_actor_id:
            query = query.filter(ChatSessionDB.patient_actor_id == patient_actor_id)
        return query.order_by(desc(SubmittedSessionDB.submitted_at)).all()

    def update_review(
        self,
        submission_id: str,
        feedback: str,
        grade: Optional[str],
        status: str,
    ) -> Optional[SubmittedSessionDB]:
        """Store feedback/grade, set status and stamp the review time"""
        submission = self.get_by_id(submission_id)
        if not submission:
            return None
        try:
            submission.feedback = feedback
            submission.grade = grade
            submission.status = status
            submission.reviewed_at = utc_now()
            self.db.commit()
            self.db.refresh(submission)
            return submission
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update submission {submission_id}: {e}")
            raise
