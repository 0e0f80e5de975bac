"""
Summary job API endpoints.
Provides REST API endpoints to submit, poll, list, read, and delete summary jobs.
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pydantic import BaseModel, Field, validator

from ..config import settings
from ..database.models import SummaryFormat, SummaryLanguage
from ..services.credits_service import QuotaExceededError
from ..services.job_service import JobService, JobNotFoundError
from ..services.orchestrator import JobOrchestrator
from .auth import get_current_user_id
from .dependencies import get_orchestrator, get_job_service

logger = logging.getLogger(__name__)


# Request/Response Models
class CreateSummaryRequest(BaseModel):
    """Summary submission request model."""
    source_reference: str = Field(
        ...,
        alias='sourceReference',
        description="YouTube video URL or identifier",
        examples=["https://www.youtube.com/watch?v=dQw4w9WgXcQ"]
    )
    format: Optional[str] = Field(None, description="paragraph, bullets or timestamped")
    language: Optional[str] = Field(None, description="en, es or fr")

    class Config:
        populate_by_name = True

    @validator('source_reference')
    def validate_source_reference(cls, v):
        if not v or not v.strip():
            raise ValueError("Source reference is required")
        return v.strip()

    @validator('format')
    def validate_format(cls, v):
        if v is None:
            return v
        try:
            return SummaryFormat(v).value
        except ValueError:
            raise ValueError(f"Invalid format: {v}")

    @validator('language')
    def validate_language(cls, v):
        if v is None:
            return v
        try:
            return SummaryLanguage(v).value
        except ValueError:
            raise ValueError(f"Invalid language: {v}")


class CreateSummaryResponse(BaseModel):
    """Summary submission response model."""
    job_id: str
    status: str


class JobStatusResponse(BaseModel):
    """Polling payload for a summary job."""
    job_id: str
    status: str
    error: Optional[str] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None


class SummaryJobResponse(BaseModel):
    """Full summary job record."""
    id: str
    source_reference: str
    format: str
    language: str
    status: str
    content: Optional[str] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    video_title: Optional[str] = None
    video_duration_seconds: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_job(cls, job) -> 'SummaryJobResponse':
        return cls(
            id=job.id,
            source_reference=job.source_reference,
            format=job.summary_format.value,
            language=job.language.value,
            status=job.status.value,
            content=job.content,
            error=job.error_message,
            created_at=job.created_at,
            updated_at=job.updated_at,
            video_title=job.video_title,
            video_duration_seconds=job.video_duration_seconds,
            metadata=job.video_metadata,
        )


class DeleteSummaryResponse(BaseModel):
    success: bool
    job_id: str


router = APIRouter(prefix="/api/v1/summaries", tags=["summaries"])


@router.post(
    "",
    response_model=CreateSummaryResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        401: {"description": "Unauthorized"},
        402: {"description": "No summaries left on the current plan"},
        422: {"description": "Validation Error"},
    }
)
def create_summary(
    request: CreateSummaryRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: JobOrchestrator = Depends(get_orchestrator)
):
    """
    Submit a video for summarization.

    Returns immediately with the new job id; poll the status endpoint until
    the job is completed or failed.
    """
    try:
        job_id = orchestrator.submit(
            user_id,
            request.source_reference,
            request.format or settings.default_summary_format,
            request.language or settings.default_summary_language,
        )
    except QuotaExceededError as e:
        raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(e))

    return CreateSummaryResponse(job_id=job_id, status="pending")


@router.get("", response_model=List[SummaryJobResponse])
def list_summaries(
    limit: Optional[int] = Query(None, ge=1, le=500, description="Maximum number of jobs to return"),
    user_id: str = Depends(get_current_user_id),
    job_service: JobService = Depends(get_job_service)
):
    """List the caller's summary jobs, newest first."""
    jobs = job_service.list_jobs(user_id, limit=limit)
    return [SummaryJobResponse.from_job(job) for job in jobs]


@router.get("/recent", response_model=List[SummaryJobResponse])
def recent_summaries(
    user_id: str = Depends(get_current_user_id),
    job_service: JobService = Depends(get_job_service)
):
    """The caller's five newest summary jobs."""
    return [SummaryJobResponse.from_job(job) for job in job_service.recent_jobs(user_id)]


@router.get(
    "/{job_id}/status",
    response_model=JobStatusResponse,
    response_model_exclude_none=True,
    responses={404: {"description": "Job not found"}}
)
def get_summary_status(
    job_id: str = Path(..., description="Summary job ID"),
    user_id: str = Depends(get_current_user_id),
    job_service: JobService = Depends(get_job_service)
):
    """
    Poll a summary job.

    ``error`` is only present for failed jobs and ``completed_at`` only for
    completed ones.
    """
    try:
        return job_service.get_status(job_id, user_id)
    except JobNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")


@router.get(
    "/{job_id}",
    response_model=SummaryJobResponse,
    responses={404: {"description": "Summary not found"}}
)
def get_summary(
    job_id: str = Path(..., description="Summary job ID"),
    user_id: str = Depends(get_current_user_id),
    job_service: JobService = Depends(get_job_service)
):
    """Get a summary job including its content."""
    try:
        return SummaryJobResponse.from_job(job_service.get_job(job_id, user_id))
    except JobNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Summary not found")


@router.delete(
    "/{job_id}",
    response_model=DeleteSummaryResponse,
    responses={404: {"description": "Summary not found"}}
)
def delete_summary(
    job_id: str = Path(..., description="Summary job ID"),
    user_id: str = Depends(get_current_user_id),
    job_service: JobService = Depends(get_job_service)
):
    """Permanently delete one of the caller's summary jobs."""
    try:
        job_service.delete_job(job_id, user_id)
    except JobNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Summary not found")
    return DeleteSummaryResponse(success=True, job_id=job_id)
