"""In-app feedback endpoint; rate limited per user by ``RateLimitMiddleware``."""

from fastapi import APIRouter, Depends, status

from api.dependencies import require_user
from api.schemas.common import error_responses
from api.schemas.feedback import FeedbackCreate, FeedbackCreated
from api.services.feedback import create_feedback_issue
from core.security import SessionContext

router = APIRouter(prefix="/feedback", tags=["feedback"])


@router.post(
    "",
    response_model=FeedbackCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Feedback",
    description="File a bug report or feature request as a GitHub issue.",
    responses=error_responses(401, 413, 429, 502, 503),
)
async def submit_feedback(
    feedback: FeedbackCreate,
    session: SessionContext = Depends(require_user),
):
    issue_url = await create_feedback_issue(feedback, session)
    return FeedbackCreated(issue_url=issue_url)
