"""Normalize YouTube URLs and bare IDs into a canonical video ID."""

import re
from typing import Optional

from ytx.errors import InvalidInput

_ID = r'([A-Za-z0-9_-]{11})'
_END = r'(?=$|[&?#/])'

# Checked in priority order; the first shape that matches wins
PATTERNS = [
    re.compile(r'^(?:https?://)?(?:[\w-]+\.)?youtube\.com/watch/?\?(?:.*?&)?v=' + _ID + _END),
    re.compile(r'^(?:https?://)?youtu\.be/' + _ID + _END),
    re.compile(r'^(?:https?://)?(?:[\w-]+\.)?youtube(?:-nocookie)?\.com/embed/' + _ID + _END),
    re.compile(r'^(?:https?://)?(?:[\w-]+\.)?youtube\.com/shorts/' + _ID + _END),
    re.compile(r'^' + _ID + r'$'),
]


class VideoId(str):
    """A validated 11-character YouTube video ID. Build it with ``resolve``."""

    @property
    def watch_url(self) -> str:
        return f"https://www.youtube.com/watch?v={self}"


def resolve(value: Optional[str]) -> VideoId:
    """
    Extract the video ID from a URL or bare ID.

    Args:
        value: watch, short, embed or shorts URL, or an 11-character ID

    Returns:
        The canonical VideoId

    Raises:
        InvalidInput: if no known shape matches
    """
    text = (value or "").strip()
    if text:
        for pattern in PATTERNS:
            match = pattern.search(text)
            if match:
                return VideoId(match.group(1))

    raise InvalidInput(f"could not extract a video ID from {value!r}")
