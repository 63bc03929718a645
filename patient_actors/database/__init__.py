"""
Database package for the patient actor backend

Provides:
- SQLAlchemy database configuration
- Database session management
- Base model for ORM
- ORM models (UserDB, PatientActorDB, ChatSessionDB, ...)
- Repository pattern implementations
- Transaction management utility
"""
from .config import (
    DatabaseConfig,
    close_database,
    get_db,
    get_db_config,
    get_db_session,
    init_database,
)
from .base import Base
from .transaction import transaction

# ORM Models
from .models import (
    UserDB,
    PatientActorDB,
    GradingRubricDB,
    ChatSessionDB,
    SubmittedSessionDB,
)

# Repositories
from .repositories import (
    UserRepository,
    PatientActorRepository,
    RubricRepository,
    ChatSessionRepository,
    SubmissionRepository,
)

__all__ = [
    # Configuration
    "DatabaseConfig",
    "close_database",
    "get_db",
    "get_db_config",
    "get_db_session",
    "init_database",
    "Base",
    # Transaction management
    "transaction",
    # ORM Models
    "UserDB",
    "PatientActorDB",
    "GradingRubricDB",
    "ChatSessionDB",
    "SubmittedSessionDB",
    # Repositories
    "UserRepository",
    "PatientActorRepository",
    "RubricRepository",
    "ChatSessionRepository",
    "SubmissionRepository",
]
