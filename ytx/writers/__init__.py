"""Renderers that turn a Transcript into text, JSON or subtitles."""

from pathlib import Path

from ytx.writers.json_writer import render_json
from ytx.writers.srt_writer import render_srt
from ytx.writers.txt_writer import render_text, render_txt_timestamps

RENDERERS = {
    'text': render_text,
    'txt': render_txt_timestamps,
    'json': render_json,
    'srt': render_srt,
}


def write_output(content: str, output_path: Path) -> None:
    """Write rendered output to a file."""
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(content)


__all__ = ['RENDERERS', 'render_json', 'render_srt', 'render_text', 'render_txt_timestamps', 'write_output']
