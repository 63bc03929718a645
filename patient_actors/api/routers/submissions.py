"""
Submission endpoints (instructor review)
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...database.models import UserDB
from ...services.submission_workflow import SubmissionWorkflow, submission_detail
from ..deps import get_current_user, get_submission_workflow
from ..schemas.common import APIResponse
from ..schemas.sessions import FeedbackRequest, SubmissionDetail

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["Submissions"])


@router.get(
    "",
    response_model=APIResponse[List[SubmissionDetail]],
    summary="Submissions assigned to me",
)
def list_submissions(
    patient_actor_id: Optional[str] = Query(default=None),
    user: UserDB = Depends(get_current_user),
    workflow: SubmissionWorkflow = Depends(get_submission_workflow),
) -> APIResponse[List[SubmissionDetail]]:
    submissions = workflow.list_assigned(user, patient_actor_id)
    return APIResponse(
        success=True,
        data=[SubmissionDetail(**item) for item in submissions],
        message=f"Found {len(submissions)} submissions",
    )


@router.get(
    "/{submission_id}",
    response_model=APIResponse[SubmissionDetail],
    summary="Get a submission with its transcript",
)
def get_submission(
    submission_id: str,
    user: UserDB = Depends(get_current_user),
    workflow: SubmissionWorkflow = Depends(get_submission_workflow),
) -> APIResponse[SubmissionDetail]:
    submission = workflow.get_submission(submission_id, user)
    detail = submission_detail(submission)
    detail["messages"] = list(submission.chat_session.messages or []) if submission.chat_session else []
    return APIResponse(success=True, data=SubmissionDetail(**detail))


@router.put(
    "/{submission_id}/feedback",
    response_model=APIResponse[SubmissionDetail],
    summary="Save review feedback",
    description="Status becomes 'graded' when a grade is given, 'reviewed' otherwise.",
)
def save_feedback(
    submission_id: str,
    request: FeedbackRequest,
    user: UserDB = Depends(get_current_user),
    workflow: SubmissionWorkflow = Depends(get_submission_workflow),
) -> APIResponse[SubmissionDetail]:
    submission = workflow.save_feedback(submission_id, user, request.feedback, request.grade)
    return APIResponse(
        success=True,
        data=SubmissionDetail(**submission_detail(submission)),
        message="Feedback saved",
    )
