"""
SQLAlchemy ORM models for persistence

Models:
- UserDB: Accounts (students, instructors, admins)
- PatientActorDB: Patient actor personas with their structured clinical profile
- GradingRubricDB: Grading categories, one per patient actor
- ChatSessionDB: One persisted conversation between a student and a persona
- SubmittedSessionDB: A chat session routed to an instructor for review
"""
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator

from ..core.constants import MAX_GRADE_LENGTH, utc_now
from .base import Base, BaseModel


class JSONBCompatible(TypeDecorator):
    """
    A JSON type that uses JSONB on PostgreSQL and JSON on other databases (e.g., SQLite).
    This allows tests to run with SQLite while production uses PostgreSQL with JSONB.
    """
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


class UserDB(Base, BaseModel):
    """
    Account known to the identity provider.

    role is a single value: student (default), instructor or admin.
    Instructors and admins form the instructor directory used for submissions.
    """

    __tablename__ = "users"

    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(String(20), nullable=False, default="student", server_default="student")

    patient_actors = relationship(
        "PatientActorDB", back_populates="owner", cascade="all, delete-orphan"
    )
    chat_sessions = relationship(
        "ChatSessionDB", back_populates="user", cascade="all, delete-orphan"
    )
    assigned_submissions = relationship(
        "SubmittedSessionDB", back_populates="instructor", foreign_keys="SubmittedSessionDB.instructor_id"
    )

    __table_args__ = (
        Index("idx_user_role_name", "role", "name"),
        CheckConstraint(
            "role IN ('student', 'instructor', 'admin')",
            name="ck_user_role_valid"
        ),
    )


class PatientActorDB(Base, BaseModel):
    """
    Patient actor persona.

    prompt is the legacy raw system prompt. When non-empty it takes
    precedence over the structured profile columns at generation time.

    slug is assigned once at creation and never recomputed.
    """

    __tablename__ = "patient_actors"

    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    age = Column(Integer, nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    is_public = Column(Boolean, nullable=False, default=False, server_default="false")

    # Legacy free-text prompt
    prompt = Column(Text, nullable=False, default="")

    # Structured profile
    demographics = Column(Text, nullable=False, default="")
    chief_complaint = Column(Text, nullable=False, default="")
    medical_history = Column(Text, nullable=False, default="")
    medications = Column(Text, nullable=False, default="")
    social_history = Column(Text, nullable=False, default="")
    personality = Column(Text, nullable=False, default="")
    physical_findings = Column(Text, nullable=False, default="")
    additional_symptoms = Column(Text, nullable=False, default="")
    revelation_level = Column(String(20), nullable=False, default="moderate")
    stay_in_character = Column(Boolean, nullable=False, default=True)
    avoid_medical_jargon = Column(Boolean, nullable=False, default=True)
    provide_feedback = Column(Boolean, nullable=False, default=True)
    custom_instructions = Column(Text, nullable=False, default="")

    owner = relationship("UserDB", back_populates="patient_actors")
    grading_rubric = relationship(
        "GradingRubricDB",
        back_populates="patient_actor",
        uselist=False,
        cascade="all, delete-orphan",
    )
    # No delete cascade: sessions outlive a deleted persona (patient_actor_id -> NULL)
    chat_sessions = relationship("ChatSessionDB", back_populates="patient_actor")

    __table_args__ = (
        Index("idx_patient_actor_owner_created", "owner_id", "created_at"),
        CheckConstraint("age >= 0", name="ck_patient_actor_age_positive"),
    )


class GradingRubricDB(Base, BaseModel):
    """
    Grading rubric for a patient actor (at most one per persona).

    categories: [{"name", "description", "max_points", "criteria"}, ...]
    total_points is always computed server-side from the categories.
    """

    __tablename__ = "grading_rubrics"

    patient_actor_id = Column(
        String(36),
        ForeignKey("patient_actors.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    categories = Column(JSONBCompatible, nullable=False, default=list)
    total_points = Column(Integer, nullable=False, default=0)
    passing_threshold = Column(Integer, nullable=True)
    auto_grade_enabled = Column(Boolean, nullable=False, default=False)

    patient_actor = relationship("PatientActorDB", back_populates="grading_rubric")


class ChatSessionDB(Base, BaseModel):
    """
    Persisted conversation of one student with one persona.

    messages holds the full ordered transcript as [{"role", "content"}, ...];
    it is replaced wholesale on every save (last write wins).

    patient_actor_id is nullable so transcripts survive deletion of the
    persona (ondelete SET NULL) and remain gradable.
    """

    __tablename__ = "chat_sessions"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_actor_id = Column(
        String(36),
        ForeignKey("patient_actors.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    messages = Column(JSONBCompatible, nullable=False, default=list)
    message_count = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    last_message_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    user = relationship("UserDB", back_populates="chat_sessions")
    patient_actor = relationship("PatientActorDB", back_populates="chat_sessions")
    submitted_session = relationship(
        "SubmittedSessionDB",
        back_populates="chat_session",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_chat_session_user_last_message", "user_id", "last_message_at"),
        CheckConstraint("message_count >= 0", name="ck_chat_session_message_count"),
    )


class SubmittedSessionDB(Base, BaseModel):
    """
    Submission of a chat session to an instructor.

    chat_session_id is unique: a session can be submitted at most once.
    status is recomputed on every review save from the presence of a grade.
    """

    __tablename__ = "submitted_sessions"

    chat_session_id = Column(
        String(36),
        ForeignKey("chat_sessions.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    instructor_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending", server_default="pending")
    feedback = Column(Text, nullable=True)
    grade = Column(String(MAX_GRADE_LENGTH), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    chat_session = relationship("ChatSessionDB", back_populates="submitted_session")
    instructor = relationship("UserDB", back_populates="assigned_submissions", foreign_keys=[instructor_id])

    __table_args__ = (
        Index("idx_submission_instructor_submitted", "instructor_id", "submitted_at"),
        CheckConstraint(
            "status IN ('pending', 'reviewed', 'graded')",
            name="ck_submission_status_valid"
        ),
    )
