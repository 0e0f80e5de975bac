"""
Tests for the client-side summary status poller.
"""

from unittest.mock import MagicMock

import pytest
import requests

from conftest import make_response
from tubedigest.config import AppConfig
from tubedigest.poller import PollingError, PollingTimeoutError, SummaryStatusPoller


def make_poller(status_payloads, summary=None, max_attempts=5):
    session = MagicMock()
    session.headers = {}
    responses = [make_response(200, json_data=payload) for payload in status_payloads]
    if summary is not None:
        responses.append(make_response(200, json_data=summary))
    session.get.side_effect = responses

    sleeps = []
    poller = SummaryStatusPoller(
        'http://localhost:8000/',
        'user_alice',
        interval_seconds=2.0,
        max_attempts=max_attempts,
        session=session,
        sleep=sleeps.append,
    )
    return poller, session, sleeps


class TestSummaryStatusPoller:

    def test_sets_identity_header(self):
        poller, session, _ = make_poller([])
        assert session.headers == {'X-User-Id': 'user_alice'}
        assert poller.base_url == 'http://localhost:8000'

    def test_completed_fetches_summary(self):
        summary = {'id': 'job_1', 'status': 'completed', 'content': 'Hello world'}
        poller, session, sleeps = make_poller(
            [{'status': 'pending'}, {'status': 'processing'}, {'status': 'completed'}],
            summary=summary,
        )

        result = poller.wait_for_completion('job_1')

        assert result.is_success
        assert result.summary == summary
        assert result.attempts == 3
        assert sleeps == [2.0, 2.0]
        urls = [call.args[0] for call in session.get.call_args_list]
        assert urls[0] == 'http://localhost:8000/api/v1/summaries/job_1/status'
        assert urls[-1] == 'http://localhost:8000/api/v1/summaries/job_1'

    def test_failed_reports_error(self):
        poller, _, _ = make_poller([{'status': 'failed', 'error': 'Failed to generate summary: boom'}])

        result = poller.wait_for_completion('job_1')

        assert not result.is_success
        assert result.error == 'Failed to generate summary: boom'

    def test_failed_without_error_gets_default(self):
        poller, _, _ = make_poller([{'status': 'failed'}])
        assert poller.wait_for_completion('job_1').error == 'Failed to generate summary'

    def test_unknown_status_keeps_polling(self):
        poller, _, _ = make_poller([{'status': 'queued'}, {'status': 'completed'}], summary={'id': 'job_1'})
        assert poller.wait_for_completion('job_1').attempts == 2

    def test_gives_up_after_max_attempts(self):
        poller, session, sleeps = make_poller([{'status': 'processing'}] * 3, max_attempts=3)

        with pytest.raises(PollingTimeoutError) as exc_info:
            poller.wait_for_completion('job_1')

        assert exc_info.value.attempts == 3
        assert session.get.call_count == 3
        assert len(sleeps) == 2

    def test_error_status_stops_polling(self):
        poller, session, _ = make_poller([])
        session.get.side_effect = [make_response(404, json_data={'detail': 'Job not found'})]

        with pytest.raises(PollingError) as exc_info:
            poller.wait_for_completion('job_1')

        assert exc_info.value.status_code == 404

    def test_transport_error(self):
        poller, session, _ = make_poller([])
        session.get.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(PollingError):
            poller.get_status('job_1')

    def test_submit(self):
        poller, session, _ = make_poller([])
        session.post.return_value = make_response(202, json_data={'job_id': 'job_1', 'status': 'pending'})

        assert poller.submit('https://youtu.be/dQw4w9WgXcQ', summary_format='bullets') == 'job_1'
        assert session.post.call_args.kwargs['json'] == {
            'sourceReference': 'https://youtu.be/dQw4w9WgXcQ',
            'format': 'bullets',
        }

    def test_submit_transport_error(self):
        poller, session, _ = make_poller([])
        session.post.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(PollingError) as exc_info:
            poller.submit('https://youtu.be/dQw4w9WgXcQ')

        assert "refused" in str(exc_info.value)
        assert exc_info.value.status_code is None

    def test_submit_rejected(self):
        poller, session, _ = make_poller([])
        session.post.return_value = make_response(402)

        with pytest.raises(PollingError) as exc_info:
            poller.submit('https://youtu.be/dQw4w9WgXcQ')

        assert exc_info.value.status_code == 402

    @pytest.mark.parametrize("interval,attempts", [(0, 5), (2.0, 0)])
    def test_invalid_settings(self, interval, attempts):
        with pytest.raises(ValueError):
            SummaryStatusPoller('http://localhost:8000', 'user_alice',
                                interval_seconds=interval, max_attempts=attempts)

    def test_from_settings(self):
        session = MagicMock()
        session.headers = {}
        app_settings = AppConfig(poll_interval_seconds=0.5, poll_max_attempts=10, user_id_header='X-Forwarded-User')

        poller = SummaryStatusPoller.from_settings('http://localhost:8000', 'user_alice', app_settings, session=session)

        assert poller.interval_seconds == 0.5
        assert poller.max_attempts == 10
        assert session.headers == {'X-Forwarded-User': 'user_alice'}
