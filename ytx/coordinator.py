"""Tier sequencing: captions first, Whisper fallback second."""

import logging
import threading
from enum import Enum
from typing import List, Optional

from ytx.captions import CaptionClient
from ytx.errors import AcquisitionError, BothTiersFailed
from ytx.fallback import AudioFallbackClient
from ytx.models import Transcript

logger = logging.getLogger(__name__)


class State(Enum):
    START = "start"
    TRY_CAPTION = "try_caption"
    TRY_AUDIO = "try_audio"
    DONE = "done"
    FAILED = "failed"


class AcquisitionCoordinator:
    """
    Drive the acquisition state machine::

        START -> TRY_CAPTION -> DONE
                     |
                     +-> TRY_AUDIO -> DONE | FAILED
                     +-> FAILED            (no_fallback)

    ``whisper_only`` goes straight from START to TRY_AUDIO. The coordinator
    never retries; both clients handle their own transient failures.
    ``history`` holds the states visited by the calling thread's most recent
    ``acquire``, so one coordinator can serve parallel acquisitions.
    """

    def __init__(
        self,
        caption_client: Optional[CaptionClient] = None,
        audio_client: Optional[AudioFallbackClient] = None,
    ):
        self._caption_client = caption_client
        self._audio_client = audio_client
        self._local = threading.local()

    # Built lazily so a caption-only run never needs OpenAI or yt-dlp configured
    @property
    def caption_client(self) -> CaptionClient:
        if self._caption_client is None:
            self._caption_client = CaptionClient()
        return self._caption_client

    @property
    def audio_client(self) -> AudioFallbackClient:
        if self._audio_client is None:
            self._audio_client = AudioFallbackClient()
        return self._audio_client

    @property
    def history(self) -> List[State]:
        return getattr(self._local, "history", [])

    def acquire(
        self,
        video_id: str,
        language: str = "en",
        whisper_only: bool = False,
        no_fallback: bool = False,
    ) -> Transcript:
        """
        Acquire a transcript, falling back between tiers per the flags.

        Raises:
            AcquisitionError: the caption error (no_fallback), the audio error
                (whisper_only) or BothTiersFailed
        """
        history: List[State] = []
        self._local.history = history
        state = State.START
        caption_error: Optional[AcquisitionError] = None
        audio_error: Optional[AcquisitionError] = None
        transcript: Optional[Transcript] = None

        while True:
            self._enter(history, state, video_id)

            if state is State.START:
                state = State.TRY_AUDIO if whisper_only else State.TRY_CAPTION

            elif state is State.TRY_CAPTION:
                try:
                    transcript = self.caption_client.fetch(video_id, language)
                    state = State.DONE
                except AcquisitionError as e:
                    caption_error = e
                    logger.info("Caption extraction failed for %s: %s", video_id, e)
                    state = State.FAILED if no_fallback else State.TRY_AUDIO

            elif state is State.TRY_AUDIO:
                try:
                    transcript = self.audio_client.acquire(video_id, language)
                    state = State.DONE
                except AcquisitionError as e:
                    audio_error = e
                    logger.info("Whisper fallback failed for %s: %s", video_id, e)
                    state = State.FAILED

            elif state is State.DONE:
                return transcript

            else:
                if caption_error is not None and audio_error is not None:
                    raise BothTiersFailed(caption_error, audio_error)
                raise audio_error or caption_error

    def _enter(self, history: List[State], state: State, video_id: str) -> None:
        history.append(state)
        logger.debug("%s: -> %s", video_id, state.value)
