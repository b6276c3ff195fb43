"""Pytest configuration and shared fakes for the acquisition engine."""

import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple
from unittest.mock import Mock

import pytest

# Add the project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from ytx.config import Config
from ytx.errors import ExternalToolMissing
from ytx.models import Segment, Transcript, TranscriptSource

VIDEO_ID = "dQw4w9WgXcQ"

WATCH_PAGE = (
    '<html><script>ytcfg.set({"INNERTUBE_API_KEY":"AIzaSyTestKey_123",'
    '"INNERTUBE_CONTEXT_CLIENT_VERSION":"2.20250101.00.00"});</script></html>'
)

CAPTION_XML = """<?xml version="1.0" encoding="utf-8" ?>
<transcript>
    <text start="0.21" dur="2.34">Hello world</text>
    <text start="2.55" dur="1.50">This is a test</text>
    <text start="4.05" dur="2.0">it&amp;#39;s working</text>
</transcript>"""


def player_response(tracks=None, title="Test Video", playability=None):
    data = {"videoDetails": {"title": title}}
    if tracks is not None:
        data["captions"] = {"playerCaptionsTracklistRenderer": {"captionTracks": tracks}}
    if playability is not None:
        data["playabilityStatus"] = playability
    return data


def make_response(status_code=200, text="", json_data=None):
    response = Mock()
    response.status_code = status_code
    response.text = text
    if json_data is None:
        response.json = Mock(side_effect=ValueError("not json"))
    else:
        response.json = Mock(return_value=json_data)
    return response


class FakeSession:
    """Stand-in for requests.Session that replays canned responses in order."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class FakeAcquirer:
    """Writes sparse files of the requested size instead of running yt-dlp."""

    def __init__(self, full_size: int, chunk_size: int = 1024, title: str = "Fake Title", installed: bool = True):
        self.full_size = full_size
        self.chunk_size = chunk_size
        self.title = title
        self.installed = installed
        self.downloads: List[Tuple[Path, Optional[Tuple[float, float]]]] = []

    def download(self, video_id, output_path, time_range=None):
        if not self.installed:
            raise ExternalToolMissing("yt-dlp")
        self.downloads.append((output_path, time_range))
        with open(output_path, 'wb') as f:
            f.truncate(self.full_size if time_range is None else self.chunk_size)
        return output_path

    def fetch_title(self, video_id):
        return self.title


class FakeTranscriber:
    """Returns one trivial chunk-local segment per uploaded file."""

    def __init__(self, segments=None, fail_on_call: Optional[int] = None, error: Optional[BaseException] = None):
        self.segments = segments or [Segment(text="x", start=0.0, duration=1.0)]
        self.fail_on_call = fail_on_call
        self.error = error
        self.uploaded: List[Path] = []

    def transcribe(self, audio_path, language=None):
        self.uploaded.append(audio_path)
        assert audio_path.exists()
        if self.fail_on_call is not None and len(self.uploaded) == self.fail_on_call:
            raise self.error
        return list(self.segments)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the real cache, logs, config file and API keys."""
    monkeypatch.setattr(Config, "CACHE_DIR", tmp_path / "cache")
    monkeypatch.setattr(Config, "LOG_DIR", tmp_path / "logs")
    monkeypatch.setattr(Config, "CONFIG_FILE", tmp_path / "config.toml")
    monkeypatch.setattr(Config, "OPENAI_API_KEY", "")
    monkeypatch.setattr(Config, "ANTHROPIC_API_KEY", "")
    monkeypatch.setattr(Config, "MAX_RETRIES", 2)


@pytest.fixture
def sample_transcript():
    return Transcript(
        video_id=VIDEO_ID,
        title="Test Video",
        language="en",
        source=TranscriptSource.CAPTION,
        segments=[
            Segment(text="Hello world", start=0.0, duration=1.5),
            Segment(text="This is a test", start=1.5, duration=2.0),
        ],
    )


@pytest.fixture
def work_root(tmp_path):
    """Directory that acquisitions create their temp dirs in."""
    root = tmp_path / "work"
    root.mkdir()
    return root
