"""
Summary job orchestration.

Submission creates the job record synchronously and hands processing to a
bounded worker pool. Each job runs through the configured summary pipeline
exactly once and ends either completed or failed. A supervisor thread fails
jobs left processing for too long and re-queues jobs that were never picked
up because the host stopped.
"""

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Dict, Any

from ..database.models import SummaryJob, SummaryFormat, SummaryLanguage, PlanType
from ..utils.youtube_metadata import YouTubeMetadataFetcher, extract_video_id
from ..utils.summarizer import SummarizationClient
from ..utils.webhook_client import SummaryWebhookClient, SummaryWebhookConfig
from ..utils.call_llm import create_llm_client
from .job_service import JobService
from .credits_service import CreditsService

logger = logging.getLogger(__name__)


class VideoTooLongError(Exception):
    """The video exceeds the duration allowed on the user's plan."""

    def __init__(self, max_duration_seconds: int):
        minutes = max_duration_seconds // 60
        super().__init__(f"Free users can only summarize videos up to {minutes} minutes long")
        self.max_duration_seconds = max_duration_seconds


@dataclass
class SummaryResult:
    """Summary text plus any video details the pipeline looked up."""
    content: str
    video_title: Optional[str] = None
    video_duration_seconds: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class SummaryPipeline:
    """Turns a job's source reference into a summary result."""

    name = 'base'

    def run(self, job: SummaryJob) -> SummaryResult:
        raise NotImplementedError


class WebhookSummaryPipeline(SummaryPipeline):
    """Delegates the whole summary to the external summarization webhook."""

    name = 'webhook'

    def __init__(self, webhook_client: SummaryWebhookClient):
        self.webhook_client = webhook_client

    def run(self, job: SummaryJob) -> SummaryResult:
        return SummaryResult(self.webhook_client.generate_summary(job.source_reference))


class DirectSummaryPipeline(SummaryPipeline):
    """Fetches metadata and summarizes the video description with an LLM."""

    name = 'direct'

    def __init__(
        self,
        metadata_fetcher: YouTubeMetadataFetcher,
        summarizer: SummarizationClient,
        credits_service: Optional[CreditsService] = None,
        free_plan_max_duration: int = 900
    ):
        self.metadata_fetcher = metadata_fetcher
        self.summarizer = summarizer
        self.credits_service = credits_service
        self.free_plan_max_duration = free_plan_max_duration

    def run(self, job: SummaryJob) -> SummaryResult:
        video_id = extract_video_id(job.source_reference)
        metadata = self.metadata_fetcher.fetch(video_id)

        if (self.credits_service is not None
                and self.credits_service.get_plan(job.owner_id) == PlanType.FREE
                and metadata.duration_seconds > self.free_plan_max_duration):
            raise VideoTooLongError(self.free_plan_max_duration)

        content = self.summarizer.summarize(
            video_id,
            job.summary_format.value,
            job.language.value,
            metadata.description,
        )
        return SummaryResult(
            content=content,
            video_title=metadata.title,
            video_duration_seconds=metadata.duration_seconds,
            metadata=metadata.to_dict(),
        )


class JobOrchestrator:
    """
    Drives summary jobs from submission to a terminal state.

    Args:
        job_service: Persistence for job records
        pipeline: Pipeline producing summary text for a job
        credits_service: Quota gate consulted before a job is created
        executor: Worker pool; a ThreadPoolExecutor is created when omitted
        worker_count: Size of the created worker pool
        processing_timeout: Seconds after which a processing job is failed
        supervisor_interval: Seconds between supervisor passes, 0 disables the thread
    """

    def __init__(
        self,
        job_service: JobService,
        pipeline: SummaryPipeline,
        credits_service: Optional[CreditsService] = None,
        executor: Optional[Executor] = None,
        worker_count: int = 4,
        processing_timeout: int = 900,
        supervisor_interval: int = 60
    ):
        self.job_service = job_service
        self.pipeline = pipeline
        self.credits_service = credits_service
        self.processing_timeout = processing_timeout
        self.supervisor_interval = supervisor_interval

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=worker_count,
            thread_name_prefix="summary_job_worker"
        )
        self._shutdown_event = threading.Event()
        self._supervisor_thread: Optional[threading.Thread] = None
        self._logger = logging.getLogger(f"{__name__}.JobOrchestrator")

    def submit(
        self,
        owner_id: str,
        source_reference: str,
        summary_format: str = SummaryFormat.PARAGRAPH.value,
        language: str = SummaryLanguage.EN.value
    ) -> str:
        """
        Create a pending job and schedule it.

        Returns:
            The new job id

        Raises:
            ValueError: If the source reference is blank
            QuotaExceededError: If the owner has no summaries left
        """
        if not source_reference or not source_reference.strip():
            raise ValueError("Source reference is required")

        if self.credits_service is not None:
            self.credits_service.consume_credit(owner_id)

        try:
            job = self.job_service.create_job(owner_id, source_reference.strip(), summary_format, language)
        except Exception:
            if self.credits_service is not None:
                self.credits_service.refund_credit(owner_id)
            raise

        self._dispatch(job.id)
        return job.id

    def _dispatch(self, job_id: str) -> None:
        try:
            self._executor.submit(self.process, job_id)
        except RuntimeError as e:
            # Executor is shutting down; the job stays pending and is re-queued on next start
            self._logger.warning(f"Could not schedule summary job {job_id}: {e}")

    def process(self, job_id: str) -> None:
        """
        Run one job through the pipeline. Never raises.

        The job is skipped when it is no longer pending, which covers jobs
        deleted before a worker picked them up and jobs already claimed.
        """
        try:
            if not self.job_service.mark_processing(job_id):
                self._logger.info(f"Summary job {job_id} is not pending, skipping")
                return

            job = self.job_service.get_job_for_processing(job_id)
            if job is None:
                self._logger.info(f"Summary job {job_id} was deleted before processing")
                return

            self._logger.info(f"Processing summary job {job_id} with {self.pipeline.name} pipeline")
            result = self.pipeline.run(job)
            self.job_service.complete_job(
                job_id,
                result.content,
                video_title=result.video_title,
                video_duration_seconds=result.video_duration_seconds,
                video_metadata=result.metadata,
            )

        except Exception as e:
            message = str(e) or e.__class__.__name__
            self._logger.error(f"Summary job {job_id} failed: {message}", extra={
                'job_id': job_id,
                'error_type': e.__class__.__name__,
            })
            try:
                self.job_service.fail_job(job_id, message)
            except Exception as write_error:
                self._logger.error(f"Could not record failure of summary job {job_id}: {write_error}")

    def requeue_pending(self) -> int:
        """Schedule every job still pending. Returns the number scheduled."""
        job_ids = self.job_service.pending_job_ids()
        for job_id in job_ids:
            self._dispatch(job_id)
        if job_ids:
            self._logger.info(f"Re-queued {len(job_ids)} pending summary job(s)")
        return len(job_ids)

    def supervise_once(self) -> int:
        """Fail jobs stuck in processing. Returns the number failed."""
        return self.job_service.fail_stale_jobs(self.processing_timeout)

    def start(self, requeue_pending: bool = True) -> None:
        """Run a supervisor pass, optionally re-queue pending jobs, and start the supervisor thread."""
        self.supervise_once()
        if requeue_pending:
            self.requeue_pending()

        if self.supervisor_interval > 0 and self._supervisor_thread is None:
            self._supervisor_thread = threading.Thread(
                target=self._supervisor_worker,
                daemon=True,
                name="summary_job_supervisor"
            )
            self._supervisor_thread.start()
            self._logger.info("Started summary job supervisor")

    def _supervisor_worker(self):
        while not self._shutdown_event.wait(self.supervisor_interval):
            try:
                self.supervise_once()
            except Exception as e:
                self._logger.error(f"Error in summary job supervisor: {e}")

    def shutdown(self, wait: bool = True) -> None:
        """Stop the supervisor and the worker pool."""
        self._logger.info("Shutting down job orchestrator...")
        self._shutdown_event.set()

        if self._supervisor_thread:
            self._supervisor_thread.join(timeout=5)
            self._supervisor_thread = None

        if self._owns_executor:
            self._executor.shutdown(wait=wait)

        self._logger.info("Job orchestrator shutdown complete")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()


def create_pipeline(app_settings, credits_service: Optional[CreditsService] = None) -> SummaryPipeline:
    """Build the summary pipeline selected by ``SUMMARY_PIPELINE_MODE``."""
    if app_settings.summary_pipeline_mode == 'direct':
        logger.info("Using direct summary pipeline", extra={'llm': app_settings.llm_config})
        fetcher = YouTubeMetadataFetcher(
            api_key=app_settings.youtube_api_key,
            api_timeout=app_settings.youtube_api_timeout,
            page_timeout=app_settings.youtube_metadata_timeout,
        )
        summarizer = SummarizationClient(
            create_llm_client(app_settings),
            chunk_size=app_settings.chunk_size,
            chunk_overlap=app_settings.chunk_overlap,
        )
        return DirectSummaryPipeline(
            fetcher,
            summarizer,
            credits_service,
            app_settings.free_plan_max_video_duration,
        )

    return WebhookSummaryPipeline(SummaryWebhookClient(SummaryWebhookConfig(
        url=app_settings.summary_webhook_url,
        timeout_seconds=app_settings.summary_webhook_timeout,
        response_fields=list(app_settings.summary_response_fields),
    )))


def create_orchestrator(app_settings=None) -> JobOrchestrator:
    """Build a job orchestrator from application settings."""
    if app_settings is None:
        from ..config import settings as app_settings

    credits_service = CreditsService()
    return JobOrchestrator(
        job_service=JobService(),
        pipeline=create_pipeline(app_settings, credits_service),
        credits_service=credits_service,
        worker_count=app_settings.job_worker_count,
        processing_timeout=app_settings.job_processing_timeout,
        supervisor_interval=app_settings.job_supervisor_interval,
    )
