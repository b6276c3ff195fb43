"""Error taxonomy for transcript acquisition.

Every failure the engine reports is an ``AcquisitionError`` subclass. Each one
knows which tier produced it, a short ``kind`` tag, the underlying cause (if
any) and a hint the CLI can show the user instead of a stack trace.
"""

from typing import Optional

TIER_INPUT = "input"
TIER_CAPTION = "caption"
TIER_AUDIO = "audio"
TIER_COORDINATOR = "coordinator"


class AcquisitionError(Exception):
    """Base class for all acquisition failures."""

    kind = "acquisition_error"
    default_tier = TIER_COORDINATOR
    default_hint = ""

    def __init__(
        self,
        message: str,
        tier: Optional[str] = None,
        cause: Optional[BaseException] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.tier = tier or self.default_tier
        self.cause = cause
        self.hint = hint if hint is not None else self.default_hint

    @property
    def exit_code(self) -> int:
        if self.tier == TIER_INPUT:
            return 2
        if self.tier == TIER_CAPTION:
            return 3
        return 4

    def describe(self) -> str:
        """Format a user-facing diagnostic: tier, kind, message and hint."""
        text = f"[{self.tier}] {self.kind}: {self.message}"
        if self.cause is not None and str(self.cause) and str(self.cause) not in self.message:
            text += f" ({self.cause})"
        if self.hint:
            text += f"\n  hint: {self.hint}"
        return text


class InvalidInput(AcquisitionError):
    kind = "invalid_input"
    default_tier = TIER_INPUT
    default_hint = (
        "Pass a YouTube watch/short/embed/shorts URL or a bare 11-character video ID."
    )


class NetworkError(AcquisitionError):
    kind = "network_error"
    default_tier = TIER_CAPTION

    def __init__(self, message: str, transient: bool, status: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.transient = transient
        self.status = status
        if not kwargs.get("hint"):
            self.hint = (
                "The service kept failing; try again later." if transient
                else "The request was rejected; the video may be private or removed."
            )


class ApiKeyExtractionFailed(AcquisitionError):
    kind = "api_key_extraction_failed"
    default_tier = TIER_CAPTION
    default_hint = "YouTube's page format may have changed; try --whisper-only."


class NoCaptionsAvailable(AcquisitionError):
    kind = "no_captions_available"
    default_tier = TIER_CAPTION
    default_hint = "Drop --no-fallback to transcribe the audio with Whisper instead."


class AuthRequired(AcquisitionError):
    kind = "auth_required"
    default_tier = TIER_CAPTION
    default_hint = "The video is age-restricted or requires sign-in."


class CaptionParseError(AcquisitionError):
    kind = "caption_parse_error"
    default_tier = TIER_CAPTION
    default_hint = "The caption data had an unexpected shape; try --whisper-only."


class ExternalToolMissing(AcquisitionError):
    kind = "external_tool_missing"
    default_tier = TIER_AUDIO

    def __init__(self, tool: str, **kwargs):
        kwargs.setdefault(
            "hint",
            f"Install {tool} to enable the Whisper fallback: pip install yt-dlp "
            f"(or: brew install yt-dlp). ffmpeg must be installed as well.",
        )
        super().__init__(f"{tool} not found on PATH", **kwargs)
        self.tool = tool


class ExternalToolFailed(AcquisitionError):
    kind = "external_tool_failed"
    default_tier = TIER_AUDIO
    default_hint = "Run with --verbose and check the yt-dlp output above; updating yt-dlp often helps."

    def __init__(self, message: str, diagnostics: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.diagnostics = diagnostics

    def describe(self) -> str:
        text = super().describe()
        if self.diagnostics:
            tail = "\n".join(self.diagnostics.strip().splitlines()[-5:])
            text += f"\n  output:\n{tail}"
        return text


class TranscriptionApiError(AcquisitionError):
    kind = "transcription_api_error"
    default_tier = TIER_AUDIO
    default_hint = "Check OPENAI_API_KEY and your OpenAI account quota."

    def __init__(self, message: str, status: Optional[int] = None, body: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.status = status
        self.body = body


class ChunkPlanningError(AcquisitionError):
    kind = "chunk_planning_error"
    default_tier = TIER_AUDIO
    default_hint = "ffprobe could not read the audio duration; make sure ffmpeg is installed."


class BothTiersFailed(AcquisitionError):
    kind = "both_tiers_failed"
    default_tier = TIER_COORDINATOR

    def __init__(self, caption_error: AcquisitionError, audio_error: AcquisitionError):
        super().__init__(
            "caption extraction and Whisper fallback both failed",
            cause=audio_error,
            hint=audio_error.hint,
        )
        self.caption_error = caption_error
        self.audio_error = audio_error

    def describe(self) -> str:
        return (
            f"[{self.tier}] {self.kind}: {self.message}\n"
            f"  caption tier: {self.caption_error.describe()}\n"
            f"  audio tier:   {self.audio_error.describe()}"
        )
