"""
Client-side status poller for summary jobs.

Polls the status endpoint at a fixed interval until the job reaches a
terminal state, then fetches the full summary record.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class PollingError(Exception):
    """The status endpoint could not be read."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PollingTimeoutError(PollingError):
    """The job did not reach a terminal state within the attempt ceiling."""

    def __init__(self, job_id: str, attempts: int):
        super().__init__(f"Summary job {job_id} did not finish after {attempts} status checks")
        self.job_id = job_id
        self.attempts = attempts


@dataclass
class PollResult:
    """Outcome of polling one job to completion."""
    job_id: str
    status: str
    error: Optional[str] = None
    summary: Optional[Dict[str, Any]] = None
    attempts: int = 0

    @property
    def is_success(self) -> bool:
        return self.status == 'completed'


class SummaryStatusPoller:
    """
    Polls a TubeDigest server for a job's outcome.

    Args:
        base_url: Server root, e.g. ``http://localhost:8000``
        user_id: Identity forwarded in the user id header
        interval_seconds: Delay between status checks
        max_attempts: Status checks before giving up
        user_id_header: Header carrying the caller's identity
        session: Optional requests session
        sleep: Sleep function, replaceable in tests
    """

    def __init__(
        self,
        base_url: str,
        user_id: str,
        interval_seconds: float = 2.0,
        max_attempts: int = 150,
        user_id_header: str = 'X-User-Id',
        timeout_seconds: int = 30,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        if interval_seconds <= 0:
            raise ValueError("Poll interval must be positive")
        if max_attempts < 1:
            raise ValueError("Max attempts must be at least 1")

        self.base_url = base_url.rstrip('/')
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.update({user_id_header: user_id})
        self._sleep = sleep

    @classmethod
    def from_settings(cls, base_url: str, user_id: str, app_settings=None, **kwargs) -> 'SummaryStatusPoller':
        """Build a poller using the configured interval, attempt ceiling and identity header."""
        if app_settings is None:
            from .config import settings as app_settings

        return cls(
            base_url,
            user_id,
            interval_seconds=app_settings.poll_interval_seconds,
            max_attempts=app_settings.poll_max_attempts,
            user_id_header=app_settings.user_id_header,
            **kwargs
        )

    def _get(self, path: str) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, timeout=self.timeout_seconds)
        except requests.exceptions.RequestException as e:
            raise PollingError(f"Error checking summary status: {e}") from e

        if not response.ok:
            raise PollingError(f"Failed to check job status: HTTP {response.status_code}", response.status_code)
        return response.json()

    def submit(self, source_reference: str, summary_format: Optional[str] = None,
               language: Optional[str] = None) -> str:
        """Submit a video and return the new job id."""
        payload: Dict[str, Any] = {'sourceReference': source_reference}
        if summary_format:
            payload['format'] = summary_format
        if language:
            payload['language'] = language

        try:
            response = self.session.post(
                f"{self.base_url}/api/v1/summaries", json=payload, timeout=self.timeout_seconds
            )
        except requests.exceptions.RequestException as e:
            raise PollingError(f"Error submitting summary: {e}") from e

        if not response.ok:
            raise PollingError(f"Failed to submit summary: HTTP {response.status_code}", response.status_code)
        return response.json()['job_id']

    def get_status(self, job_id: str) -> Dict[str, Any]:
        return self._get(f"/api/v1/summaries/{job_id}/status")

    def fetch_summary(self, job_id: str) -> Dict[str, Any]:
        return self._get(f"/api/v1/summaries/{job_id}")

    def wait_for_completion(self, job_id: str) -> PollResult:
        """
        Poll until the job is completed or failed.

        Only ``completed`` and ``failed`` stop polling; any other status,
        including unknown ones, keeps polling.

        Raises:
            PollingError: If the status endpoint answers with an error
            PollingTimeoutError: If ``max_attempts`` checks pass without a terminal state
        """
        for attempt in range(1, self.max_attempts + 1):
            payload = self.get_status(job_id)
            job_status = payload.get('status')
            logger.debug(f"Summary job {job_id} is {job_status} (check {attempt})")

            if job_status == 'completed':
                return PollResult(job_id, job_status, summary=self.fetch_summary(job_id), attempts=attempt)
            if job_status == 'failed':
                return PollResult(
                    job_id, job_status,
                    error=payload.get('error') or 'Failed to generate summary',
                    attempts=attempt
                )

            if attempt < self.max_attempts:
                self._sleep(self.interval_seconds)

        raise PollingTimeoutError(job_id, self.max_attempts)
