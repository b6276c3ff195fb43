"""Writer for SRT subtitle format."""

from ytx.models import Transcript


def format_timestamp(seconds: float) -> str:
    """Format seconds as SRT timestamp: HH:MM:SS,mmm."""
    total_millis = int(round(seconds * 1000))
    hours, rest = divmod(total_millis, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def render_srt(transcript: Transcript) -> str:
    """Render transcript as SRT subtitles."""
    blocks = []
    for index, segment in enumerate(transcript.segments, start=1):
        start_time = format_timestamp(segment.start)
        end_time = format_timestamp(segment.end)
        # SRT format: index, timestamps, text, blank line
        blocks.append(f"{index}\n{start_time} --> {end_time}\n{segment.text}\n")
    return "\n".join(blocks)
