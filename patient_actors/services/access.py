"""
Ownership and role checks shared by the services.
"""
import logging
from typing import Optional

from ..core.constants import REVIEWER_ROLES
from ..core.errors import ForbiddenError, UnauthenticatedError
from ..database.models import UserDB

logger = logging.getLogger(__name__)


def require_user(user: Optional[UserDB]) -> UserDB:
    """Raise UnauthenticatedError when there is no caller identity"""
    if user is None:
        raise UnauthenticatedError()
    return user


def is_reviewer(user: UserDB) -> bool:
    return user.role in REVIEWER_ROLES


def require_reviewer(user: Optional[UserDB], action: str = "perform this action") -> UserDB:
    """Caller must be an instructor or admin"""
    user = require_user(user)
    if not is_reviewer(user):
        logger.warning("Reviewer role required", extra={"user_id": user.id, "role": user.role})
        raise ForbiddenError(f"Only instructors can {action}")
    return user


def ensure_owner(resource_owner_id: str, user: UserDB, message: str) -> None:
    """Caller must be the owner of the resource"""
    if resource_owner_id != user.id:
        logger.warning("Ownership check failed", extra={"user_id": user.id})
        raise ForbiddenError(message)
