"""Writers for plain text, with and without timestamps."""

from ytx.models import Transcript


def format_seconds(seconds: float) -> str:
    """Format seconds as HH:MM:SS."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def render_text(transcript: Transcript) -> str:
    """Render transcript as plain text (one segment per line, no timestamps)."""
    return transcript.text


def render_txt_timestamps(transcript: Transcript) -> str:
    """
    Render transcript with timestamps.

    Format: [HH:MM:SS - HH:MM:SS] text
    """
    return "".join(
        f"[{format_seconds(segment.start)} - {format_seconds(segment.end)}] {segment.text}\n"
        for segment in transcript.segments
    )
