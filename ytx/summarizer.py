"""LLM summaries of finished transcripts (OpenAI or Anthropic)."""

import logging
import time
from typing import Any, Optional

import anthropic
from openai import OpenAI
from openai import APIConnectionError, APIStatusError, RateLimitError

from ytx.config import Config
from ytx.models import Transcript

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant that summarizes video transcripts. "
    "Provide a clear, structured summary that captures the key points, main arguments, "
    "and important details. Use bullet points for key takeaways."
)

MAX_TOKENS = 4096

# 529 is Anthropic's "overloaded"
ANTHROPIC_RETRY_STATUSES = (429, 500, 529)


class SummaryError(Exception):
    """The summarization API failed or returned something unexpected."""


def is_anthropic_model(model: str) -> bool:
    return model.startswith("claude")


def build_user_message(transcript: Transcript) -> str:
    transcript_text = " ".join(segment.text for segment in transcript.segments)
    return f"Summarize this transcript from the video \"{transcript.title}\":\n\n{transcript_text}"


def extract_anthropic_text(message: Any) -> str:
    """Join the text blocks of an Anthropic ``Message``."""
    content = getattr(message, "content", None)
    if isinstance(content, list):
        text = "".join(
            getattr(block, "text", "") or ""
            for block in content
            if getattr(block, "type", None) == "text"
        )
        if text:
            return text
    raise SummaryError("unexpected Anthropic API response format")


def extract_openai_text(data: Any) -> str:
    try:
        text = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise SummaryError("unexpected OpenAI API response format") from e
    if not isinstance(text, str) or not text:
        raise SummaryError("unexpected OpenAI API response format")
    return text


def summarize(
    transcript: Transcript,
    model: Optional[str] = None,
    client: Optional[OpenAI] = None,
    anthropic_client: Optional[anthropic.Anthropic] = None,
) -> str:
    """
    Summarize a transcript with an LLM.

    Args:
        transcript: Finished transcript
        model: ``claude-*`` models use Anthropic, everything else OpenAI
        client: OpenAI client (testing)
        anthropic_client: Anthropic client (testing)

    Returns:
        Summary text

    Raises:
        ValueError: the API key for the chosen provider is not set
        SummaryError: the API call failed or returned an unexpected shape
    """
    model = model or Config.SUMMARY_MODEL
    user_message = build_user_message(transcript)
    if is_anthropic_model(model):
        return _summarize_anthropic(user_message, model, anthropic_client)
    return _summarize_openai(user_message, model, client)


def _summarize_anthropic(user_message: str, model: str, client: Optional[anthropic.Anthropic]) -> str:
    if client is None:
        Config.validate_anthropic()
        client = anthropic.Anthropic(api_key=Config.ANTHROPIC_API_KEY, timeout=300.0, max_retries=0)
    logger.debug("Summarizing via Anthropic API with model %s", model)

    attempts = Config.MAX_RETRIES + 1
    for attempt in range(attempts):
        try:
            message = client.messages.create(
                model=model,
                max_tokens=MAX_TOKENS,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": user_message}],
            )
            return extract_anthropic_text(message)

        except anthropic.APIConnectionError as e:
            if attempt < Config.MAX_RETRIES:
                _backoff(attempt, type(e).__name__)
                continue
            raise SummaryError(f"{type(e).__name__} after {attempts} attempts: {e}") from e

        except anthropic.APIStatusError as e:
            if e.status_code in ANTHROPIC_RETRY_STATUSES and attempt < Config.MAX_RETRIES:
                _backoff(attempt, f"Anthropic API {e.status_code}")
                continue
            raise SummaryError(f"Anthropic API returned {e.status_code}: {e}") from e

    raise SummaryError(f"Failed to summarize after {attempts} attempts")


def _summarize_openai(user_message: str, model: str, client: Optional[OpenAI]) -> str:
    if client is None:
        Config.validate_openai()
        client = OpenAI(api_key=Config.OPENAI_API_KEY, timeout=300.0)
    logger.debug("Summarizing via OpenAI API with model %s", model)

    attempts = Config.MAX_RETRIES + 1
    for attempt in range(attempts):
        try:
            response = client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_message},
                ],
            )
            return extract_openai_text(response.model_dump())

        except (RateLimitError, APIConnectionError) as e:
            if attempt < Config.MAX_RETRIES:
                _backoff(attempt, type(e).__name__)
                continue
            raise SummaryError(f"{type(e).__name__} after {attempts} attempts: {e}") from e

        except APIStatusError as e:
            raise SummaryError(f"OpenAI API returned {e.status_code}: {e}") from e

    raise SummaryError(f"Failed to summarize after {attempts} attempts")


def _backoff(attempt: int, reason: str) -> None:
    wait_time = 2 ** attempt  # Exponential backoff
    logger.warning("%s. Waiting %d seconds before retry...", reason, wait_time)
    time.sleep(wait_time)
