"""
Tests for the summarization webhook client.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from conftest import make_response
from tubedigest.utils.webhook_client import (
    EmptySummaryError,
    SummaryWebhookClient,
    SummaryWebhookConfig,
    SummaryWebhookError,
    SummaryWebhookTimeoutError,
    UnrecognizedResponseError,
    extract_summary_content,
)

JSON_TYPE = 'application/json; charset=utf-8'


class TestExtractSummaryContent:

    def test_plain_text(self):
        assert extract_summary_content("Hello world", 'text/plain') == "Hello world"

    def test_missing_content_type_is_text(self):
        assert extract_summary_content('{"summary": "x"}', None) == '{"summary": "x"}'

    @pytest.mark.parametrize("field", ['cleanedHtml', 'summary', 'text', 'result', 'content'])
    def test_known_fields(self, field):
        assert extract_summary_content(json.dumps({field: "Hello world"}), JSON_TYPE) == "Hello world"

    def test_field_priority(self):
        body = json.dumps({'content': 'last', 'summary': 'second', 'cleanedHtml': ''})
        assert extract_summary_content(body, JSON_TYPE) == 'second'

    def test_custom_field_order(self):
        body = json.dumps({'summary': 'default', 'output': 'custom'})
        assert extract_summary_content(body, JSON_TYPE, ['output']) == 'custom'

    def test_json_string(self):
        assert extract_summary_content('"Hello world"', JSON_TYPE) == "Hello world"

    def test_json_list_uses_first_element(self):
        body = json.dumps([{'summary': 'first'}, {'summary': 'second'}])
        assert extract_summary_content(body, JSON_TYPE) == 'first'

    def test_unparseable_json_used_raw(self):
        assert extract_summary_content("Hello world", JSON_TYPE) == "Hello world"

    def test_unrecognized_object(self):
        with pytest.raises(UnrecognizedResponseError) as exc_info:
            extract_summary_content(json.dumps({'foo': 'bar', 'baz': 1}), JSON_TYPE)
        assert exc_info.value.keys == ['foo', 'baz']
        assert 'baz, foo' in str(exc_info.value)

    @pytest.mark.parametrize("body,content_type", [
        ("", 'text/plain'),
        ("   \n", 'text/plain'),
        ('"  "', JSON_TYPE),
        ('[]', JSON_TYPE),
    ])
    def test_empty_summary(self, body, content_type):
        with pytest.raises(EmptySummaryError):
            extract_summary_content(body, content_type)


class TestSummaryWebhookClient:

    def _client(self, **session_behaviour):
        session = MagicMock()
        for name, value in session_behaviour.items():
            setattr(session.post, name, value)
        config = SummaryWebhookConfig(url='http://summarizer.test/hook', timeout_seconds=30)
        return SummaryWebhookClient(config, session=session), session

    def test_posts_video_reference(self):
        client, session = self._client(return_value=make_response(200, "Hello world"))

        assert client.generate_summary('https://youtu.be/dQw4w9WgXcQ') == "Hello world"

        args, kwargs = session.post.call_args
        assert args == ('http://summarizer.test/hook',)
        assert kwargs['json'] == {'youtubeUrl': 'https://youtu.be/dQw4w9WgXcQ'}
        assert kwargs['timeout'] == 30

    def test_json_answer(self):
        response = make_response(200, json.dumps({'summary': 'Hello world'}), JSON_TYPE)
        client, _ = self._client(return_value=response)

        assert client.generate_summary('dQw4w9WgXcQ') == "Hello world"

    def test_error_status(self):
        client, _ = self._client(return_value=make_response(500, "boom"))

        with pytest.raises(SummaryWebhookError) as exc_info:
            client.generate_summary('dQw4w9WgXcQ')

        assert str(exc_info.value) == "Failed to generate summary: boom"
        assert exc_info.value.status_code == 500
        assert exc_info.value.timestamp.tzinfo is not None

    def test_timeout(self):
        client, _ = self._client(side_effect=requests.exceptions.Timeout())

        with pytest.raises(SummaryWebhookTimeoutError) as exc_info:
            client.generate_summary('dQw4w9WgXcQ')

        assert exc_info.value.status_code == 408

    def test_connection_error(self):
        client, _ = self._client(side_effect=requests.exceptions.ConnectionError("refused"))

        with pytest.raises(SummaryWebhookError) as exc_info:
            client.generate_summary('dQw4w9WgXcQ')

        assert str(exc_info.value).startswith("Failed to generate summary:")

    def test_url_required(self):
        with pytest.raises(ValueError):
            SummaryWebhookClient(SummaryWebhookConfig(url=''))
