"""
Summarization client for video descriptions.

Long text is split into overlapping chunks sized for the model's context
window. Each chunk is sent to the LLM in order with a shared instruction
prompt and the per-chunk outputs are concatenated.
"""

import logging
from typing import List, Optional

from langchain_text_splitters import RecursiveCharacterTextSplitter

from .call_llm import LLMClient

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 2000
DEFAULT_CHUNK_OVERLAP = 200
EMPTY_TEXT_PLACEHOLDER = "No content available."

BULLET_MARKERS = ("-", "*", "•")

LANGUAGE_NAMES = {
    'en': 'English',
    'es': 'Spanish',
    'fr': 'French',
}

FORMAT_INSTRUCTIONS = {
    'paragraph': (
        "Create a comprehensive paragraph summary that captures the main ideas and key insights "
        "from the video. Focus on the most important points while maintaining a clear narrative flow."
    ),
    'bullets': (
        "Create a structured bullet-point summary with:\n"
        "- Main topic and overall theme\n"
        "- Key points and major takeaways\n"
        "- Important details and examples\n"
        "- Conclusions or final thoughts"
    ),
    'timestamped': (
        "Create a chronological summary that highlights key moments and transitions in the video:\n"
        "- Start with a brief overview\n"
        "- List major points with estimated timestamps\n"
        "- Include transitions between main topics\n"
        "- End with key takeaways"
    ),
}


class SummaryGenerationError(Exception):
    """Raised when any part of summary generation fails."""

    def __init__(self, message: str, video_id: Optional[str] = None):
        super().__init__(f"Failed to generate summary: {message}")
        self.video_id = video_id


def chunk_text(text: str, size: int = DEFAULT_CHUNK_SIZE,
               overlap: int = DEFAULT_CHUNK_OVERLAP) -> List[str]:
    """
    Split text into overlapping chunks on paragraph, line and word breaks.

    Empty input yields a single placeholder chunk so callers always have
    something to send to the model.
    """
    if size <= 0:
        raise ValueError("Chunk size must be positive")
    if overlap < 0 or overlap >= size:
        raise ValueError("Chunk overlap must be between 0 and chunk size")
    if not text or not text.strip():
        return [EMPTY_TEXT_PLACEHOLDER]

    splitter = RecursiveCharacterTextSplitter(chunk_size=size, chunk_overlap=overlap)
    return splitter.split_text(text)


def build_prompt(summary_format: str, language: str) -> str:
    """Build the shared instruction prompt for a format and language."""
    instructions = FORMAT_INSTRUCTIONS.get(summary_format, FORMAT_INSTRUCTIONS['paragraph'])
    language_name = LANGUAGE_NAMES.get(language, LANGUAGE_NAMES['en'])

    return f"""You are an expert content summarizer.

Task: {instructions}

Language: Please provide the summary in {language_name}.

Guidelines:
- Maintain accuracy and objectivity
- Focus on key information and main ideas
- Use clear and concise language
- Ensure the summary is self-contained and understandable
- Length should be appropriate to cover all key points"""


def format_bullets(text: str) -> str:
    """Drop blank lines and prefix every line that is not already a bullet."""
    lines = []
    for line in text.split('\n'):
        if not line.strip():
            continue
        if line.lstrip().startswith(BULLET_MARKERS):
            lines.append(line)
        else:
            lines.append(f"- {line}")
    return '\n'.join(lines)


class SummarizationClient:
    """Generates summaries by prompting an LLM chunk by chunk."""

    def __init__(self, llm_client: LLMClient, chunk_size: int = DEFAULT_CHUNK_SIZE,
                 chunk_overlap: int = DEFAULT_CHUNK_OVERLAP):
        self.llm_client = llm_client
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self._logger = logging.getLogger(f"{__name__}.SummarizationClient")

    def summarize(self, video_id: str, summary_format: str, language: str, description: str) -> str:
        """
        Summarize a video description.

        Chunks are processed sequentially; a failure on any chunk discards
        the partial output.

        Raises:
            SummaryGenerationError: If prompting the model fails for any chunk
        """
        prompt = build_prompt(summary_format, language)
        chunks = chunk_text(description, self.chunk_size, self.chunk_overlap)
        self._logger.info(f"Summarizing video {video_id} in {len(chunks)} chunk(s)")

        outputs = []
        try:
            for index, chunk in enumerate(chunks):
                result = self.llm_client.generate_text(
                    prompt=f"Content to summarize:\n{chunk}",
                    system_prompt=prompt,
                )
                outputs.append(result['text'].strip())
                self._logger.debug(f"Chunk {index + 1}/{len(chunks)} summarized for {video_id}")
        except Exception as e:
            self._logger.error(f"Summary generation failed for {video_id}: {e}")
            raise SummaryGenerationError(str(e), video_id) from e

        combined = '\n\n'.join(outputs)
        if summary_format == 'bullets':
            return format_bullets(combined)
        return combined.strip()
