"""
Declarative base and common columns for ORM models
"""
from uuid import uuid4

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import declarative_base

from ..core.constants import utc_now

Base = declarative_base()


class BaseModel:
    """Mixin providing id and audit timestamps"""

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)
