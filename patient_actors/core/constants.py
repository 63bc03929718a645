"""
Shared constants for the patient actor backend.
"""
import os
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware UTC timestamp (use instead of datetime.utcnow())"""
    return datetime.now(timezone.utc)


# Roles
ROLE_STUDENT = "student"
ROLE_INSTRUCTOR = "instructor"
ROLE_ADMIN = "admin"
VALID_ROLES = (ROLE_STUDENT, ROLE_INSTRUCTOR, ROLE_ADMIN)
REVIEWER_ROLES = (ROLE_INSTRUCTOR, ROLE_ADMIN)

# Submission status
SUBMISSION_PENDING = "pending"
SUBMISSION_REVIEWED = "reviewed"
SUBMISSION_GRADED = "graded"
VALID_SUBMISSION_STATUSES = (SUBMISSION_PENDING, SUBMISSION_REVIEWED, SUBMISSION_GRADED)

# Message roles inside a chat session
MESSAGE_ROLE_USER = "user"
MESSAGE_ROLE_ASSISTANT = "assistant"

# Persona validation limits
MAX_NAME_LENGTH = 200
MIN_AGE = 0
MAX_AGE = 130
DEFAULT_SLUG = "patient"

# Free-text grade stored on a reviewed submission
MAX_GRADE_LENGTH = 50

# Shown in place of the patient's answer when the model call fails
FALLBACK_PATIENT_MESSAGE = (
    "I'm sorry, I'm not feeling well enough to respond right now. "
    "Could we continue this later?"
)

# Quiescence window before a changed message list is persisted
DEFAULT_AUTOSAVE_DEBOUNCE_SECONDS = float(os.getenv("AUTOSAVE_DEBOUNCE_SECONDS", "1.0"))

# LLM generation defaults for patient role-play
PATIENT_TEMPERATURE = 0.7
PATIENT_MAX_TOKENS = 500
