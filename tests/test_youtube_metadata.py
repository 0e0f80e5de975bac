"""
Tests for YouTube metadata fetching and its helpers.
"""

from unittest.mock import MagicMock

import pytest
import requests

from conftest import make_response
from tubedigest.utils.youtube_metadata import (
    FALLBACK_CHANNEL_TITLE,
    FALLBACK_DESCRIPTION,
    InvalidVideoReferenceError,
    MetadataFetchError,
    YouTubeMetadataFetcher,
    extract_video_id,
    parse_iso8601_duration,
)

VIDEO_ID = 'dQw4w9WgXcQ'

API_RESPONSE = {
    'items': [{
        'snippet': {
            'title': 'Never Gonna Give You Up',
            'channelTitle': 'Rick Astley',
            'description': 'The official video.',
        },
        'contentDetails': {'duration': 'PT3M33S'},
    }]
}


class TestParseDuration:

    @pytest.mark.parametrize("duration,expected", [
        ('PT1H2M3S', 3723),
        ('PT45S', 45),
        ('PT10M', 600),
        ('PT2H', 7200),
        ('P1D', 0),
        ('', 0),
        (None, 0),
    ])
    def test_durations(self, duration, expected):
        assert parse_iso8601_duration(duration) == expected


class TestExtractVideoId:

    @pytest.mark.parametrize("reference", [
        VIDEO_ID,
        f'https://www.youtube.com/watch?v={VIDEO_ID}',
        f'https://www.youtube.com/watch?feature=share&v={VIDEO_ID}',
        f'https://youtu.be/{VIDEO_ID}',
        f'https://m.youtube.com/watch?v={VIDEO_ID}',
        f'https://www.youtube.com/embed/{VIDEO_ID}',
        f'https://www.youtube.com/shorts/{VIDEO_ID}',
        f'  {VIDEO_ID}  ',
    ])
    def test_recognized(self, reference):
        assert extract_video_id(reference) == VIDEO_ID

    @pytest.mark.parametrize("reference", ['', 'not a video', 'https://example.com/watch?v=short'])
    def test_rejected(self, reference):
        with pytest.raises(InvalidVideoReferenceError):
            extract_video_id(reference)


class TestYouTubeMetadataFetcher:

    def test_api_metadata(self):
        session = MagicMock()
        session.get.return_value = make_response(200, json_data=API_RESPONSE)
        fetcher = YouTubeMetadataFetcher(api_key='key', session=session)

        metadata = fetcher.fetch(VIDEO_ID)

        assert metadata.title == 'Never Gonna Give You Up'
        assert metadata.duration_seconds == 213
        assert metadata.channel_title == 'Rick Astley'
        assert metadata.description == 'The official video.'
        assert session.get.call_args.kwargs['params']['id'] == VIDEO_ID

    def test_without_key_uses_watch_page(self):
        session = MagicMock()
        session.get.return_value = make_response(
            200, text='<html><head><title>Rick &amp; Roll - YouTube</title></head></html>'
        )
        fetcher = YouTubeMetadataFetcher(session=session)

        metadata = fetcher.fetch(VIDEO_ID)

        assert metadata.title == 'Rick & Roll'
        assert metadata.duration_seconds == 0
        assert metadata.channel_title == FALLBACK_CHANNEL_TITLE
        assert metadata.description == FALLBACK_DESCRIPTION
        assert session.get.call_count == 1

    def test_api_error_falls_back(self):
        session = MagicMock()
        session.get.side_effect = [
            make_response(403, text='quota exceeded'),
            make_response(200, text='<title>Fallback Title - YouTube</title>'),
        ]
        fetcher = YouTubeMetadataFetcher(api_key='key', session=session)

        assert fetcher.fetch(VIDEO_ID).title == 'Fallback Title'

    def test_unknown_video_falls_back(self):
        session = MagicMock()
        session.get.side_effect = [
            make_response(200, json_data={'items': []}),
            make_response(200, text='<html></html>'),
        ]
        fetcher = YouTubeMetadataFetcher(api_key='key', session=session)

        assert fetcher.fetch(VIDEO_ID).title == f'Video {VIDEO_ID}'

    def test_both_sources_fail(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("network down")
        fetcher = YouTubeMetadataFetcher(api_key='key', session=session)

        with pytest.raises(MetadataFetchError) as exc_info:
            fetcher.fetch(VIDEO_ID)

        assert str(exc_info.value) == "Failed to fetch video metadata"
        assert exc_info.value.video_id == VIDEO_ID
