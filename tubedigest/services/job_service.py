"""
Summary job persistence service.

This service owns every read and write of the ``summary_jobs`` table. State
transitions are conditional updates so that a job is claimed by at most one
worker and receives at most one terminal write.
"""

import logging
from datetime import timedelta
from typing import Optional, Dict, Any, List

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import SQLAlchemyError

from ..database.models import (
    SummaryJob, JobStatus, SummaryFormat, SummaryLanguage, utcnow
)
from ..database.connection import get_database_session
from ..database.exceptions import classify_database_error

logger = logging.getLogger(__name__)

STALE_JOB_MESSAGE = "Processing timed out"


class JobServiceError(Exception):
    """Custom exception for job service operations."""
    pass


class JobNotFoundError(JobServiceError):
    """The job does not exist or is not visible to the caller."""

    def __init__(self, job_id: str):
        super().__init__(f"Summary job {job_id} not found")
        self.job_id = job_id


class JobService:
    """
    Service class for summary job records.

    Reads that take an ``owner_id`` only ever see that owner's jobs; a job
    owned by someone else is reported as not found.
    """

    def __init__(self):
        self._logger = logging.getLogger(f"{__name__}.JobService")

    def create_job(
        self,
        owner_id: str,
        source_reference: str,
        summary_format: str = SummaryFormat.PARAGRAPH.value,
        language: str = SummaryLanguage.EN.value
    ) -> SummaryJob:
        """
        Insert a new pending job.

        Args:
            owner_id: Submitting user
            source_reference: Video URL or identifier
            summary_format: Requested output format
            language: Requested output language

        Returns:
            The persisted SummaryJob
        """
        try:
            with get_database_session() as session:
                job = SummaryJob(
                    owner_id=owner_id,
                    source_reference=source_reference,
                    summary_format=SummaryFormat(summary_format),
                    language=SummaryLanguage(language),
                    status=JobStatus.PENDING,
                )
                session.add(job)
                session.flush()
                session.refresh(job)

            self._logger.info(f"Created summary job {job.id} for owner {owner_id}")
            return job

        except SQLAlchemyError as e:
            raise classify_database_error(e, 'create_job') from e

    def get_job(self, job_id: str, owner_id: str) -> SummaryJob:
        """
        Get a job owned by ``owner_id``.

        Raises:
            JobNotFoundError: If the job is missing or owned by someone else
        """
        try:
            with get_database_session() as session:
                stmt = select(SummaryJob).where(
                    SummaryJob.id == job_id,
                    SummaryJob.owner_id == owner_id
                )
                job = session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise classify_database_error(e, 'get_job') from e

        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def get_job_for_processing(self, job_id: str) -> Optional[SummaryJob]:
        """Get a job by id regardless of owner. Used by workers only."""
        try:
            with get_database_session() as session:
                return session.get(SummaryJob, job_id)
        except SQLAlchemyError as e:
            raise classify_database_error(e, 'get_job_for_processing') from e

    def list_jobs(self, owner_id: str, limit: Optional[int] = None) -> List[SummaryJob]:
        """List an owner's jobs, newest first."""
        try:
            with get_database_session() as session:
                stmt = (
                    select(SummaryJob)
                    .where(SummaryJob.owner_id == owner_id)
                    .order_by(SummaryJob.created_at.desc())
                )
                if limit is not None:
                    stmt = stmt.limit(limit)
                return list(session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            raise classify_database_error(e, 'list_jobs') from e

    def recent_jobs(self, owner_id: str, limit: int = 5) -> List[SummaryJob]:
        return self.list_jobs(owner_id, limit=limit)

    def delete_job(self, job_id: str, owner_id: str) -> None:
        """
        Hard delete a job owned by ``owner_id``.

        Deleting a job that is still processing is allowed; the worker's
        terminal write will then match no row and be dropped.

        Raises:
            JobNotFoundError: If the job is missing or owned by someone else
        """
        try:
            with get_database_session() as session:
                result = session.execute(
                    delete(SummaryJob).where(
                        SummaryJob.id == job_id,
                        SummaryJob.owner_id == owner_id
                    )
                )
                deleted = result.rowcount
        except SQLAlchemyError as e:
            raise classify_database_error(e, 'delete_job') from e

        if not deleted:
            raise JobNotFoundError(job_id)
        self._logger.info(f"Deleted summary job {job_id} for owner {owner_id}")

    def mark_processing(self, job_id: str) -> bool:
        """
        Claim a pending job.

        Returns:
            True if this call moved the job from pending to processing
        """
        now = utcnow()
        return self._transition(
            job_id,
            JobStatus.PENDING,
            status=JobStatus.PROCESSING,
            started_at=now,
            updated_at=now,
        )

    def complete_job(
        self,
        job_id: str,
        content: str,
        video_title: Optional[str] = None,
        video_duration_seconds: Optional[int] = None,
        video_metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Write the completed terminal state. Returns False if the write was dropped.

        Video details are stored when the pipeline fetched them.
        """
        return self._transition(
            job_id,
            JobStatus.PROCESSING,
            status=JobStatus.COMPLETED,
            content=content,
            error_message=None,
            video_title=video_title,
            video_duration_seconds=video_duration_seconds,
            video_metadata=video_metadata,
            updated_at=utcnow(),
        )

    def fail_job(self, job_id: str, error_message: str) -> bool:
        """Write the failed terminal state. Returns False if the write was dropped."""
        return self._transition(
            job_id,
            JobStatus.PROCESSING,
            status=JobStatus.FAILED,
            content=None,
            error_message=error_message,
            updated_at=utcnow(),
        )

    def _transition(self, job_id: str, expected: JobStatus, **values) -> bool:
        try:
            with get_database_session() as session:
                result = session.execute(
                    update(SummaryJob)
                    .where(SummaryJob.id == job_id, SummaryJob.status == expected)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                changed = result.rowcount == 1
        except SQLAlchemyError as e:
            raise classify_database_error(e, f'transition from {expected.value}') from e

        if changed:
            self._logger.info(f"Summary job {job_id} moved to {values['status'].value}")
        else:
            self._logger.warning(
                f"Summary job {job_id} was not {expected.value}; "
                f"dropped transition to {values['status'].value}"
            )
        return changed

    def get_status(self, job_id: str, owner_id: str) -> Dict[str, Any]:
        """
        Build the status payload for a job.

        ``error`` is present only for failed jobs and ``completed_at`` only
        for completed ones, where it carries the creation time.
        """
        job = self.get_job(job_id, owner_id)
        created_at = job.created_at.isoformat() if job.created_at else None

        payload: Dict[str, Any] = {
            'job_id': job.id,
            'status': job.status.value,
            'created_at': created_at,
        }
        if job.status == JobStatus.FAILED:
            payload['error'] = job.error_message
        if job.status == JobStatus.COMPLETED:
            payload['completed_at'] = created_at
        return payload

    def fail_stale_jobs(self, timeout_seconds: int) -> int:
        """
        Fail jobs that have been processing for longer than ``timeout_seconds``.

        Returns:
            Number of jobs failed
        """
        cutoff = utcnow() - timedelta(seconds=timeout_seconds)
        try:
            with get_database_session() as session:
                result = session.execute(
                    update(SummaryJob)
                    .where(
                        SummaryJob.status == JobStatus.PROCESSING,
                        SummaryJob.started_at < cutoff
                    )
                    .values(
                        status=JobStatus.FAILED,
                        error_message=STALE_JOB_MESSAGE,
                        updated_at=utcnow(),
                    )
                    .execution_options(synchronize_session=False)
                )
                count = result.rowcount or 0
        except SQLAlchemyError as e:
            raise classify_database_error(e, 'fail_stale_jobs') from e

        if count:
            self._logger.warning(f"Failed {count} stale summary job(s) older than {timeout_seconds}s")
        return count

    def pending_job_ids(self) -> List[str]:
        """Ids of all jobs still waiting for a worker, oldest first."""
        try:
            with get_database_session() as session:
                stmt = (
                    select(SummaryJob.id)
                    .where(SummaryJob.status == JobStatus.PENDING)
                    .order_by(SummaryJob.created_at.asc())
                )
                return list(session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            raise classify_database_error(e, 'pending_job_ids') from e

    def get_statistics(self) -> Dict[str, int]:
        """Job counts per status."""
        try:
            with get_database_session() as session:
                rows = session.execute(
                    select(SummaryJob.status, func.count(SummaryJob.id)).group_by(SummaryJob.status)
                ).all()
        except SQLAlchemyError as e:
            raise classify_database_error(e, 'get_statistics') from e

        stats = {status.value: 0 for status in JobStatus}
        for status, count in rows:
            stats[status.value] = count
        stats['total'] = sum(stats.values())
        return stats
