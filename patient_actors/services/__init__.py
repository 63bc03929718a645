"""
Domain services.

Each service takes a SQLAlchemy session and the calling user and raises the
typed errors of core.errors.
"""
from .patient_actor_registry import PatientActorRegistry, slugify
from .rubric_manager import STANDARD_OSCE_RUBRIC, RubricManager
from .session_manager import SessionManager
from .submission_workflow import SubmissionWorkflow

__all__ = [
    "PatientActorRegistry",
    "slugify",
    "SessionManager",
    "SubmissionWorkflow",
    "RubricManager",
    "STANDARD_OSCE_RUBRIC",
]
