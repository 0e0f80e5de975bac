"""
YouTube video metadata fetching.

Metadata comes from the YouTube Data API when a key is configured. When the
API is unavailable or errors, a degraded record is built from the public
watch page title.
"""

import html
import logging
import re
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional

import requests

logger = logging.getLogger(__name__)

YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3/videos"
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

ISO8601_DURATION_PATTERN = re.compile(r'PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?')
TITLE_PATTERN = re.compile(r'<title>(.*?)</title>', re.IGNORECASE | re.DOTALL)
VIDEO_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]{11}$')

YOUTUBE_URL_PATTERNS = [
    r'(?:https?://)?(?:www\.|m\.)?youtube\.com/watch\?.*?v=([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?(?:www\.)?youtube\.com/embed/([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?(?:www\.)?youtube\.com/v/([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?youtu\.be/([a-zA-Z0-9_-]{11})',
    r'(?:https?://)?(?:www\.)?youtube\.com/shorts/([a-zA-Z0-9_-]{11})',
]

FALLBACK_CHANNEL_TITLE = "Unknown Channel"
FALLBACK_DESCRIPTION = "Video description unavailable"


class MetadataFetchError(Exception):
    """Raised when neither the API nor the watch page yields metadata."""

    def __init__(self, message: str = "Failed to fetch video metadata", video_id: Optional[str] = None):
        super().__init__(message)
        self.video_id = video_id


class InvalidVideoReferenceError(ValueError):
    """Raised when no video id can be extracted from a reference."""

    def __init__(self, reference: str):
        super().__init__(f"Could not extract a YouTube video id from: {reference}")
        self.reference = reference


@dataclass
class VideoMetadata:
    """Metadata needed to summarize a video."""
    title: str
    duration_seconds: int
    channel_title: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_iso8601_duration(duration: Optional[str]) -> int:
    """
    Convert an ISO-8601 ``PT#H#M#S`` duration to seconds.

    Missing components count as zero; a value that does not match yields 0.
    """
    if not duration:
        return 0
    match = ISO8601_DURATION_PATTERN.search(duration)
    if not match:
        return 0
    hours, minutes, seconds = (int(part) if part else 0 for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def extract_video_id(reference: str) -> str:
    """
    Extract the 11-character video id from a YouTube URL or bare id.

    Raises:
        InvalidVideoReferenceError: If the reference is not recognized
    """
    reference = (reference or '').strip()
    if VIDEO_ID_PATTERN.match(reference):
        return reference

    for pattern in YOUTUBE_URL_PATTERNS:
        match = re.search(pattern, reference, re.IGNORECASE)
        if match:
            return match.group(1)

    raise InvalidVideoReferenceError(reference)


class YouTubeMetadataFetcher:
    """Fetches video metadata with an API-first, page-title fallback strategy."""

    def __init__(self, api_key: Optional[str] = None, api_timeout: int = 30,
                 page_timeout: int = 15, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.api_timeout = api_timeout
        self.page_timeout = page_timeout
        self.session = session or requests.Session()
        self.user_agent = (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
        )

    def fetch(self, video_id: str) -> VideoMetadata:
        """
        Fetch metadata for a video.

        Args:
            video_id: YouTube video ID

        Returns:
            VideoMetadata from the API, or a degraded record from the watch page

        Raises:
            MetadataFetchError: If both the API and the fallback fail
        """
        try:
            return self._fetch_from_api(video_id)
        except Exception as e:
            logger.warning(f"YouTube API lookup failed for {video_id}: {e}")

        try:
            return self._fetch_from_watch_page(video_id)
        except Exception as e:
            logger.error(f"Watch page fallback failed for {video_id}: {e}")
            raise MetadataFetchError(video_id=video_id) from e

    def _fetch_from_api(self, video_id: str) -> VideoMetadata:
        if not self.api_key:
            raise MetadataFetchError("YouTube API key not configured", video_id)

        response = self.session.get(
            YOUTUBE_API_URL,
            params={
                'id': video_id,
                'part': 'snippet,contentDetails',
                'key': self.api_key,
            },
            timeout=self.api_timeout,
        )
        if not response.ok:
            raise MetadataFetchError(f"YouTube API error: {response.status_code}", video_id)

        items = response.json().get('items') or []
        if not items:
            raise MetadataFetchError("Video not found", video_id)

        video = items[0]
        snippet = video.get('snippet', {})
        content_details = video.get('contentDetails', {})

        logger.info(f"Fetched metadata for {video_id} from the YouTube API")
        return VideoMetadata(
            title=snippet.get('title', f"Video {video_id}"),
            duration_seconds=parse_iso8601_duration(content_details.get('duration')),
            channel_title=snippet.get('channelTitle', FALLBACK_CHANNEL_TITLE),
            description=snippet.get('description', ''),
        )

    def _fetch_from_watch_page(self, video_id: str) -> VideoMetadata:
        response = self.session.get(
            YOUTUBE_WATCH_URL.format(video_id=video_id),
            headers={
                'User-Agent': self.user_agent,
                'Accept-Language': 'en-US,en;q=0.5',
            },
            timeout=self.page_timeout,
        )
        title = self._extract_title(response.text) or f"Video {video_id}"

        logger.info(f"Using watch page fallback metadata for {video_id}")
        return VideoMetadata(
            title=title,
            duration_seconds=0,
            channel_title=FALLBACK_CHANNEL_TITLE,
            description=FALLBACK_DESCRIPTION,
        )

    def _extract_title(self, page_content: str) -> Optional[str]:
        match = TITLE_PATTERN.search(page_content or '')
        if not match:
            return None
        title = html.unescape(match.group(1)).replace(' - YouTube', '').strip()
        return title or None
