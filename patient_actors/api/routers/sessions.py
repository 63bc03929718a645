"""
Session endpoints (authenticated students)

A session is created with the first message, then its transcript is replaced
wholesale by each debounced save until it is submitted to an instructor.
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status

from ...database.models import UserDB
from ...services.session_manager import SessionManager
from ...services.submission_workflow import SubmissionWorkflow, submission_detail
from ..deps import get_current_user, get_session_manager, get_submission_workflow
from ..schemas.common import APIResponse
from ..schemas.sessions import (
    SessionCreate,
    SessionListItem,
    SessionMessagesUpdate,
    SessionResponse,
    SubmissionDetail,
    SubmitRequest,
    UserSummary,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sessions"])


@router.post(
    "/sessions",
    response_model=APIResponse[SessionResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Start a session",
)
def create_session(
    request: SessionCreate,
    user: UserDB = Depends(get_current_user),
    manager: SessionManager = Depends(get_session_manager),
) -> APIResponse[SessionResponse]:
    session = manager.start_session(user, request.patient_actor_id, request.messages)
    return APIResponse(
        success=True,
        data=SessionResponse.model_validate(session),
        message="Session started",
    )


@router.put(
    "/sessions/{session_id}/messages",
    response_model=APIResponse[SessionResponse],
    summary="Save the full transcript",
    description="Replaces the stored messages with the cumulative list sent (last write wins).",
)
def save_messages(
    session_id: str,
    request: SessionMessagesUpdate,
    user: UserDB = Depends(get_current_user),
    manager: SessionManager = Depends(get_session_manager),
) -> APIResponse[SessionResponse]:
    session = manager.append_messages(session_id, user, request.messages)
    return APIResponse(success=True, data=SessionResponse.model_validate(session))


@router.get(
    "/sessions",
    response_model=APIResponse[List[SessionListItem]],
    summary="List my sessions",
)
def list_sessions(
    user: UserDB = Depends(get_current_user),
    manager: SessionManager = Depends(get_session_manager),
) -> APIResponse[List[SessionListItem]]:
    sessions = manager.list_student_sessions(user)
    return APIResponse(
        success=True,
        data=[SessionListItem(**item) for item in sessions],
        message=f"Found {len(sessions)} sessions",
    )


@router.get(
    "/sessions/{session_id}",
    response_model=APIResponse[SessionResponse],
    summary="Get a session",
)
def get_session(
    session_id: str,
    user: UserDB = Depends(get_current_user),
    manager: SessionManager = Depends(get_session_manager),
) -> APIResponse[SessionResponse]:
    session = manager.get_session(session_id, user)
    return APIResponse(success=True, data=SessionResponse.model_validate(session))


@router.post(
    "/sessions/{session_id}/submit",
    response_model=APIResponse[SubmissionDetail],
    status_code=status.HTTP_201_CREATED,
    summary="Submit a session for review",
)
def submit_session(
    session_id: str,
    request: SubmitRequest,
    user: UserDB = Depends(get_current_user),
    workflow: SubmissionWorkflow = Depends(get_submission_workflow),
) -> APIResponse[SubmissionDetail]:
    submission = workflow.submit(session_id, user, request.instructor_id)
    return APIResponse(
        success=True,
        data=SubmissionDetail(**submission_detail(submission)),
        message="Session submitted",
    )


@router.get(
    "/instructors",
    response_model=APIResponse[List[UserSummary]],
    summary="Instructor directory",
)
def list_instructors(
    user: UserDB = Depends(get_current_user),
    workflow: SubmissionWorkflow = Depends(get_submission_workflow),
) -> APIResponse[List[UserSummary]]:
    instructors: List[Dict[str, Any]] = workflow.list_instructors(user)
    return APIResponse(success=True, data=[UserSummary(**item) for item in instructors])
