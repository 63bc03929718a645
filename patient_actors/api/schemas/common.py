"""
Common response envelope shared by every endpoint
"""
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard envelope: {success, data, message}"""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    """Body rendered for domain errors"""

    success: bool = False
    error_code: str
    detail: str
    extra: dict = {}
