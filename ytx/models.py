"""Data models for transcripts, segments and transient acquisition records."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Tuple


class TranscriptSource(str, Enum):
    """Which tier produced a transcript."""
    CAPTION = "caption"
    WHISPER = "whisper"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Segment:
    """A single segment of text with timing information."""
    text: str
    start: float     # Start time in seconds
    duration: float  # Length in seconds

    @property
    def end(self) -> float:
        return self.start + self.duration

    def shifted(self, offset: float) -> "Segment":
        """Return a copy of this segment moved later by ``offset`` seconds."""
        return Segment(text=self.text, start=self.start + offset, duration=self.duration)


@dataclass(frozen=True)
class Transcript:
    """Complete transcript with metadata."""
    video_id: str
    title: str
    language: str
    source: TranscriptSource
    segments: Tuple[Segment, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept any iterable but always store an immutable tuple
        if not isinstance(self.segments, tuple):
            object.__setattr__(self, "segments", tuple(self.segments))

    @property
    def text(self) -> str:
        """Plain transcript text, one segment per line."""
        return "\n".join(segment.text for segment in self.segments)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'video_id': self.video_id,
            'title': self.title,
            'language': self.language,
            'source': self.source.value,
            'segments': [
                {
                    'text': segment.text,
                    'start': segment.start,
                    'duration': segment.duration,
                }
                for segment in self.segments
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transcript":
        """
        Rebuild a transcript from ``to_dict`` output.

        Raises:
            KeyError, ValueError, TypeError: if the document has the wrong shape
        """
        segments = tuple(
            Segment(text=str(s['text']), start=float(s['start']), duration=float(s['duration']))
            for s in data['segments']
        )
        return cls(
            video_id=str(data['video_id']),
            title=str(data.get('title') or ""),
            language=str(data['language']),
            source=TranscriptSource(data['source']),
            segments=segments,
        )


@dataclass(frozen=True)
class CaptionTrack:
    """One caption track offered by the platform for a video."""
    language_code: str
    is_auto_generated: bool
    fetch_url: str


@dataclass(frozen=True)
class AudioChunk:
    """A time-ranged slice of a video's audio, stored in an acquisition's temp dir."""
    index: int
    file_path: Path
    start_offset_seconds: float
    duration_seconds: float
    size_bytes: int = 0
