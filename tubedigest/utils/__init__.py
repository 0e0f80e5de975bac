"""
Utilities package for the TubeDigest summary service.

This package provides the outbound clients used by the summary pipelines:
the summarization webhook, YouTube metadata, and LLM providers.
"""

from .youtube_metadata import (
    YouTubeMetadataFetcher,
    VideoMetadata,
    MetadataFetchError,
    InvalidVideoReferenceError,
    extract_video_id,
    parse_iso8601_duration,
)
from .webhook_client import (
    SummaryWebhookClient,
    SummaryWebhookConfig,
    SummaryWebhookError,
    extract_summary_content,
)
from .summarizer import SummarizationClient, SummaryGenerationError, chunk_text
from .call_llm import LLMClient, LLMConfig, LLMProvider, LLMError, create_llm_client

__all__ = [
    # YouTube metadata
    'YouTubeMetadataFetcher',
    'VideoMetadata',
    'MetadataFetchError',
    'InvalidVideoReferenceError',
    'extract_video_id',
    'parse_iso8601_duration',

    # Summarization webhook
    'SummaryWebhookClient',
    'SummaryWebhookConfig',
    'SummaryWebhookError',
    'extract_summary_content',

    # Direct summarization
    'SummarizationClient',
    'SummaryGenerationError',
    'chunk_text',
    'LLMClient',
    'LLMConfig',
    'LLMProvider',
    'LLMError',
    'create_llm_client',
]
