"""
Transaction helper for multi-record operations.

Repository methods commit after each call. When several writes must land
together (e.g. deleting a persona together with its rubric) wrap them in
transaction() and use the session directly:

    with transaction(db, "Delete patient actor with rubric"):
        db.query(GradingRubricDB).filter(...).delete()
        db.delete(actor)
"""
import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@contextmanager
def transaction(db: Session, description: str = "transaction") -> Generator[Session, None, None]:
    """Commit on success, roll back and re-raise on any error"""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Transaction rolled back: {description}", exc_info=True)
        raise
