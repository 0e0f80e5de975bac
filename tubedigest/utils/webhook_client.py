"""
Client for the all-in-one summarization webhook.

The webhook receives the raw video reference and answers with the generated
summary, either as JSON carrying the text in one of several known fields or
as a plain text body.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

import requests

logger = logging.getLogger(__name__)

DEFAULT_RESPONSE_FIELDS = ('cleanedHtml', 'summary', 'text', 'result', 'content')


class SummaryWebhookError(Exception):
    """Base exception for summarization webhook calls."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.timestamp = datetime.now(timezone.utc)


class SummaryWebhookTimeoutError(SummaryWebhookError):
    """The webhook did not answer within the configured timeout."""

    def __init__(self, timeout_seconds: int):
        super().__init__(f"Failed to generate summary: webhook timed out after {timeout_seconds} seconds", 408)


class UnrecognizedResponseError(SummaryWebhookError):
    """A JSON object response carried none of the known summary fields."""

    def __init__(self, keys: Sequence[str]):
        super().__init__(f"Unrecognized webhook response, keys: {', '.join(sorted(keys)) or '(none)'}")
        self.keys = list(keys)


class EmptySummaryError(SummaryWebhookError):
    """The webhook answered with an empty or whitespace-only summary."""

    def __init__(self):
        super().__init__("Received empty summary from webhook")


@dataclass
class SummaryWebhookConfig:
    """Configuration for the summarization webhook client."""
    url: str
    timeout_seconds: int = 300
    response_fields: List[str] = field(default_factory=lambda: list(DEFAULT_RESPONSE_FIELDS))
    user_agent: str = "TubeDigest-Webhook/1.0"


def _value_from_object(data: dict, response_fields: Sequence[str]) -> str:
    for name in response_fields:
        value = data.get(name)
        if isinstance(value, str) and value.strip():
            return value
    raise UnrecognizedResponseError(list(data.keys()))


def extract_summary_content(body: str, content_type: Optional[str],
                            response_fields: Sequence[str] = DEFAULT_RESPONSE_FIELDS) -> str:
    """
    Extract the generated summary from a webhook response body.

    JSON bodies are searched for the first non-empty known field; a JSON
    string is used as-is and a list contributes its first element. Any other
    body, including JSON that fails to parse, is used as raw text.

    Raises:
        UnrecognizedResponseError: A JSON object has none of the known fields
        EmptySummaryError: The extracted content is blank
    """
    content: Any = body
    if content_type and 'json' in content_type.lower():
        try:
            data = json.loads(body)
        except ValueError:
            logger.warning("Webhook declared JSON but body did not parse, using raw text")
            data = body

        if isinstance(data, list):
            data = data[0] if data else ''
        if isinstance(data, dict):
            content = _value_from_object(data, response_fields)
        elif isinstance(data, str):
            content = data
        else:
            content = '' if data is None else str(data)

    if not content or not content.strip():
        raise EmptySummaryError()
    return content


class SummaryWebhookClient:
    """Posts video references to the summarization webhook."""

    def __init__(self, config: SummaryWebhookConfig, session: Optional[requests.Session] = None):
        if not config.url:
            raise ValueError("Summary webhook URL is required")
        self.config = config
        self.session = session or requests.Session()
        self._logger = logging.getLogger(f"{__name__}.SummaryWebhookClient")

    def generate_summary(self, source_reference: str) -> str:
        """
        Request a summary for a video reference.

        Raises:
            SummaryWebhookError: On transport failure or a non-2xx answer
            UnrecognizedResponseError: If a JSON answer has no known field
            EmptySummaryError: If the answer is blank
        """
        start_time = time.time()
        try:
            response = self.session.post(
                self.config.url,
                json={'youtubeUrl': source_reference},
                headers={'User-Agent': self.config.user_agent},
                timeout=self.config.timeout_seconds,
            )
        except requests.exceptions.Timeout as e:
            raise SummaryWebhookTimeoutError(self.config.timeout_seconds) from e
        except requests.exceptions.RequestException as e:
            raise SummaryWebhookError(f"Failed to generate summary: {e}") from e

        elapsed_ms = int((time.time() - start_time) * 1000)
        self._logger.info(
            f"Summary webhook answered {response.status_code} in {elapsed_ms}ms",
            extra={'status_code': response.status_code, 'response_time_ms': elapsed_ms}
        )

        if not response.ok:
            self._logger.error(f"Summary webhook error {response.status_code}: {response.text}")
            raise SummaryWebhookError(f"Failed to generate summary: {response.text}", response.status_code)

        try:
            return extract_summary_content(
                response.text,
                response.headers.get('content-type'),
                self.config.response_fields,
            )
        except UnrecognizedResponseError as e:
            self._logger.error(f"Summary webhook response not recognized: {e}")
            raise
