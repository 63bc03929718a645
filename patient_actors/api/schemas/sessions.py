"""
Schemas for chat, sessions and submissions
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...core.conversation import ChatMessage


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(..., min_length=1)


class ChatResponse(BaseModel):
    patient_actor_id: str
    message: ChatMessage
    fallback: bool = False


class SessionCreate(BaseModel):
    patient_actor_id: str
    messages: List[ChatMessage] = Field(..., min_length=1)


class SessionMessagesUpdate(BaseModel):
    messages: List[ChatMessage]


class SessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    patient_actor_id: Optional[str] = None
    messages: List[ChatMessage] = []
    message_count: int = 0
    started_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None


class PatientActorSummary(BaseModel):
    id: str
    name: str
    age: int


class UserSummary(BaseModel):
    id: str
    name: str
    email: str


class SubmissionSummary(BaseModel):
    id: str
    status: str
    submitted_at: Optional[datetime] = None
    grade: Optional[str] = None
    feedback: Optional[str] = None


class SessionListItem(BaseModel):
    id: str
    patient_actor: Optional[PatientActorSummary] = None
    message_count: int
    started_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    submission: Optional[SubmissionSummary] = None


class SubmitRequest(BaseModel):
    instructor_id: str


class SubmissionDetail(BaseModel):
    id: str
    status: str
    feedback: Optional[str] = None
    grade: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    instructor: Optional[UserSummary] = None
    chat_session_id: str
    patient_actor: Optional[PatientActorSummary] = None
    student: Optional[UserSummary] = None
    message_count: int = 0
    messages: Optional[List[Dict[str, Any]]] = None


class FeedbackRequest(BaseModel):
    feedback: str
    grade: Optional[str] = None
