"""
Unit tests for database models.
"""

import pytest

from tubedigest.database.models import (
    JobStatus, SummaryJob, UserCredits, generate_job_id, classify_legacy_content,
    JOB_ID_ALPHABET, JOB_ID_LENGTH
)


class TestJobIds:

    def test_generated_ids_are_url_safe(self):
        job_id = generate_job_id()
        assert len(job_id) == JOB_ID_LENGTH
        assert all(ch in JOB_ID_ALPHABET for ch in job_id)

    def test_generated_ids_are_unique(self):
        assert len({generate_job_id() for _ in range(1000)}) == 1000


class TestJobStatus:

    def test_terminal_statuses(self):
        assert JobStatus.COMPLETED.is_terminal
        assert JobStatus.FAILED.is_terminal
        assert not JobStatus.PENDING.is_terminal
        assert not JobStatus.PROCESSING.is_terminal


class TestClassifyLegacyContent:
    """The legacy column overloaded status and content in one field."""

    def test_pending_marker(self):
        assert classify_legacy_content('pending') == (JobStatus.PENDING, None, None)

    def test_missing_value_is_pending(self):
        assert classify_legacy_content(None) == (JobStatus.PENDING, None, None)

    def test_processing_marker(self):
        assert classify_legacy_content('processing') == (JobStatus.PROCESSING, None, None)

    def test_error_prefix(self):
        status, content, error = classify_legacy_content('Error: Failed to generate summary: boom')
        assert status == JobStatus.FAILED
        assert content is None
        assert error == 'Failed to generate summary: boom'

    def test_anything_else_is_completed_content(self):
        html = '<h1>Summary</h1><p>Hello world</p>'
        assert classify_legacy_content(html) == (JobStatus.COMPLETED, html, None)


class TestSummaryJobModel:

    def test_blank_source_reference_rejected(self):
        with pytest.raises(ValueError):
            SummaryJob(owner_id='user_1', source_reference='   ')

    def test_source_reference_is_stripped(self):
        job = SummaryJob(owner_id='user_1', source_reference='  https://youtu.be/dQw4w9WgXcQ ')
        assert job.source_reference == 'https://youtu.be/dQw4w9WgXcQ'

    def test_missing_owner_rejected(self):
        with pytest.raises(ValueError):
            SummaryJob(owner_id='', source_reference='https://youtu.be/dQw4w9WgXcQ')

    def test_status_column_separates_content(self, job_service):
        # Generated text that looks like a legacy marker stays content
        job = job_service.create_job('user_1', 'https://youtu.be/dQw4w9WgXcQ')
        job_service.mark_processing(job.id)
        job_service.complete_job(job.id, 'Error: this is the actual summary text')

        stored = job_service.get_job(job.id, 'user_1')
        assert stored.status == JobStatus.COMPLETED
        assert stored.content == 'Error: this is the actual summary text'
        assert stored.error_message is None


class TestUserCreditsModel:

    def test_negative_quota_rejected(self):
        with pytest.raises(ValueError):
            UserCredits(user_id='user_1', summaries_left=-1)
