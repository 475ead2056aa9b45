import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from lecture_summary.container import AppContainer
from lecture_summary.schemas.common import ErrorResponse, MessageResponse
from lecture_summary.schemas.summary import SummaryJob, SummaryRequest, SummaryResponse
from lecture_summary.utils.errors import (
    JobQueueClosedError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)


router = APIRouter(
    prefix="/lectures",
    tags=["summary"],
)


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


@router.get(
    "/{lecture_id}/summary",
    response_model=SummaryResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_summary(lecture_id: str, container: AppContainer = Depends(get_container)):
    """Returns the most recent summary for a lecture."""
    try:
        summary_text = await container.store.latest(lecture_id)
    except PersistenceError as e:
        logging.error(f"[{lecture_id}]: Failed to fetch summary: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch summary",
        )

    if summary_text is None:
        raise NotFoundError("Summary not found")
    return SummaryResponse(summary=summary_text)


@router.post(
    "/{lecture_id}/summary",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def start_summary(
    lecture_id: str,
    request: SummaryRequest,
    container: AppContainer = Depends(get_container),
):
    """Starts summary generation for a lecture; the work happens in the background."""
    if not request.transcription and not request.transcription_json_url:
        raise ValidationError(
            "Missing transcription or transcriptionJsonUrl in request body"
        )

    try:
        await container.queue.enqueue(
            SummaryJob(
                lecture_id=lecture_id,
                transcription=request.transcription,
                transcription_json_url=request.transcription_json_url,
                trigger="http",
            )
        )
    except JobQueueClosedError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is shutting down",
        )
    return MessageResponse(message="Summary generation started")
