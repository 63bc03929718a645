"""
Schemas for grading rubrics
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class RubricCategorySchema(BaseModel):
    name: str
    description: str
    max_points: int
    criteria: str = ""


class RubricUpsert(BaseModel):
    # Categories stay loose here; the rubric manager validates them
    categories: List[Dict[str, Any]]
    passing_threshold: Optional[int] = None
    auto_grade_enabled: bool = False
    # Accepted for compatibility, always recomputed server-side
    total_points: Optional[int] = None


class RubricResponse(BaseModel):
    id: str
    patient_actor_id: str
    categories: List[RubricCategorySchema]
    total_points: int
    passing_threshold: Optional[int] = None
    auto_grade_enabled: bool = False
    updated_at: Optional[datetime] = None
