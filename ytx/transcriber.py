"""OpenAI Whisper API integration for transcription."""

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional
from openai import OpenAI
from openai import APIConnectionError, APIStatusError, APITimeoutError, RateLimitError

from ytx.config import Config
from ytx.errors import TranscriptionApiError
from ytx.models import Segment

logger = logging.getLogger(__name__)

WHISPER_MODELS = ("whisper-1", "gpt-4o-transcribe", "gpt-4o-mini-transcribe")


def response_format(model: str) -> str:
    # Newer transcribe models only support "json" or "text"
    return "verbose_json" if model == "whisper-1" else "json"


def _as_dict(response: Any) -> Dict[str, Any]:
    if isinstance(response, dict):
        return response
    if hasattr(response, 'model_dump'):
        return response.model_dump()
    return {
        'text': getattr(response, 'text', None),
        'segments': getattr(response, 'segments', None),
    }


def parse_transcription(response: Any) -> List[Segment]:
    """
    Convert a transcription response into chunk-local segments.

    verbose_json responses carry a ``segments`` array; plain json responses
    only carry ``text``, which becomes one segment at 0.

    Raises:
        TranscriptionApiError: response has neither segments nor text
    """
    data = _as_dict(response)
    raw_segments = data.get('segments')

    if raw_segments:
        segments = []
        for seg in raw_segments:
            if not isinstance(seg, dict):
                seg = _as_dict(seg) if hasattr(seg, 'model_dump') else {
                    'text': getattr(seg, 'text', None),
                    'start': getattr(seg, 'start', None),
                    'end': getattr(seg, 'end', None),
                }
            text = (seg.get('text') or "").strip()
            if not text or seg.get('start') is None or seg.get('end') is None:
                continue
            try:
                start = float(seg['start'])
                end = float(seg['end'])
            except (TypeError, ValueError) as e:
                raise TranscriptionApiError(
                    "unexpected Whisper API response format", body=repr(seg)[:500], cause=e,
                ) from e
            segments.append(Segment(text=text, start=start, duration=max(0.0, end - start)))
        return segments

    text = data.get('text')
    if isinstance(text, str):
        text = text.strip()
        return [Segment(text=text, start=0.0, duration=0.0)] if text else []

    raise TranscriptionApiError("unexpected Whisper API response format", body=repr(data)[:500])


class WhisperTranscriber:
    """Upload one audio file at a time to the OpenAI transcription endpoint."""

    def __init__(
        self,
        model: Optional[str] = None,
        client: Optional[OpenAI] = None,
        max_retries: Optional[int] = None,
        sleep=time.sleep,
    ):
        self.model = model or Config.WHISPER_MODEL
        if self.model not in WHISPER_MODELS:
            raise ValueError(f"Unknown Whisper model {self.model!r}; choose one of {', '.join(WHISPER_MODELS)}")
        self._client = client
        self.max_retries = Config.MAX_RETRIES if max_retries is None else max_retries
        self.sleep = sleep

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            try:
                Config.validate_openai()
            except ValueError as e:
                raise TranscriptionApiError(str(e), hint="Set OPENAI_API_KEY in your environment or .env file.") from e
            # Retries are handled below so the backoff policy stays in one place
            self._client = OpenAI(api_key=Config.OPENAI_API_KEY, timeout=600.0, max_retries=0)
        return self._client

    def transcribe(self, audio_path: Path, language: Optional[str] = None) -> List[Segment]:
        """
        Transcribe one audio file.

        Args:
            audio_path: Path to an audio file under the upload limit
            language: ISO language hint passed to the API

        Returns:
            Segments with timestamps relative to the start of this file

        Raises:
            TranscriptionApiError: upload failed after retries or was rejected
        """
        request_params = {
            "model": self.model,
            "response_format": response_format(self.model),
        }
        if language:
            request_params["language"] = language
        if self.model == "whisper-1":
            request_params["timestamp_granularities"] = ["segment"]

        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                if attempt > 0:
                    logger.info("Transcribing %s (attempt %d/%d)", audio_path.name, attempt + 1, attempts)
                with open(audio_path, 'rb') as audio_file:
                    response = self.client.audio.transcriptions.create(file=audio_file, **request_params)
                return parse_transcription(response)

            except (RateLimitError, APIConnectionError, APITimeoutError) as e:
                if attempt < self.max_retries:
                    self._backoff(attempt, type(e).__name__)
                    continue
                raise TranscriptionApiError(
                    f"{type(e).__name__} after {attempts} attempts: {e}",
                    status=getattr(e, 'status_code', None),
                    body=_body(e),
                    cause=e,
                ) from e

            except APIStatusError as e:
                if e.status_code >= 500 and attempt < self.max_retries:
                    self._backoff(attempt, f"server error {e.status_code}")
                    continue
                raise TranscriptionApiError(
                    f"OpenAI API returned {e.status_code}",
                    status=e.status_code,
                    body=_body(e),
                    cause=e,
                ) from e

        # Loop always returns or raises
        raise TranscriptionApiError(f"failed to transcribe {audio_path.name}")

    def _backoff(self, attempt: int, reason: str) -> None:
        wait_time = 2 ** attempt
        logger.warning("%s. Waiting %d seconds before retry...", reason, wait_time)
        self.sleep(wait_time)


def _body(error: Exception) -> str:
    response = getattr(error, 'response', None)
    if response is not None:
        return response.text
    body = getattr(error, 'body', None)
    return "" if body is None else str(body)
