"""
FastAPI dependencies

Identity: the caller is resolved from the X-User-Id header against the users
table. Deployments with a real identity provider replace get_current_user /
get_optional_user through app.dependency_overrides.
"""
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from ..core.errors import UnauthenticatedError
from ..core.response_generator import ResponseGenerator
from ..database.config import get_db
from ..database.models import UserDB
from ..database.repositories import PatientActorRepository, UserRepository
from ..llm.base import LLMProvider
from ..llm.factory import LLMProviderFactory
from ..services.patient_actor_registry import PatientActorRegistry
from ..services.rubric_manager import RubricManager
from ..services.session_manager import SessionManager
from ..services.submission_workflow import SubmissionWorkflow

logger = logging.getLogger(__name__)

__all__ = [
    "get_db",
    "get_optional_user",
    "get_current_user",
    "get_llm_provider",
    "get_response_generator",
    "get_registry",
    "get_session_manager",
    "get_submission_workflow",
    "get_rubric_manager",
]


def get_optional_user(
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> Optional[UserDB]:
    """Caller identity, or None for guests and unknown ids"""
    if not x_user_id:
        return None
    user = UserRepository(db).get_by_id(x_user_id)
    if user is None:
        logger.warning("Unknown user id in request header", extra={"user_id": x_user_id})
    return user


def get_current_user(user: Optional[UserDB] = Depends(get_optional_user)) -> UserDB:
    if user is None:
        raise UnauthenticatedError()
    return user


@lru_cache(maxsize=1)
def _llm_provider_from_env() -> LLMProvider:
    return LLMProviderFactory.create_from_env()


def get_llm_provider() -> LLMProvider:
    """Process-wide provider built from LLM_PROVIDER and friends"""
    return _llm_provider_from_env()


def get_response_generator(
    db: Session = Depends(get_db),
    llm_provider: LLMProvider = Depends(get_llm_provider),
) -> ResponseGenerator:
    return ResponseGenerator(llm_provider, actor_repo=PatientActorRepository(db))


def get_registry(db: Session = Depends(get_db)) -> PatientActorRegistry:
    return PatientActorRegistry(db)


def get_session_manager(db: Session = Depends(get_db)) -> SessionManager:
    return SessionManager(db)


def get_submission_workflow(db: Session = Depends(get_db)) -> SubmissionWorkflow:
    return SubmissionWorkflow(db)


def get_rubric_manager(db: Session = Depends(get_db)) -> RubricManager:
    return RubricManager(db)
