"""Unit tests for video ID resolution."""

import pytest

from ytx.errors import InvalidInput
from ytx.video_id import VideoId, resolve

from conftest import VIDEO_ID


class TestResolve:
    """Tests for resolve() over every supported input shape."""

    @pytest.mark.parametrize("value", [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=120",
        "https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
        "https://m.youtube.com/watch?v=dQw4w9WgXcQ",
        "http://youtube.com/watch?v=dQw4w9WgXcQ#comments",
        "youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtu.be/dQw4w9WgXcQ",
        "https://youtu.be/dQw4w9WgXcQ?si=abcdef",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube-nocookie.com/embed/dQw4w9WgXcQ?start=3",
        "https://www.youtube.com/shorts/dQw4w9WgXcQ",
        "https://youtube.com/shorts/dQw4w9WgXcQ/",
        "dQw4w9WgXcQ",
        "  dQw4w9WgXcQ  ",
    ])
    def test_all_shapes_yield_same_id(self, value):
        """Every supported shape with the same token resolves to the same ID."""
        result = resolve(value)

        assert result == VIDEO_ID
        assert isinstance(result, VideoId)

    @pytest.mark.parametrize("value", [
        "",
        None,
        "   ",
        "not-a-valid-id",
        "dQw4w9WgXc",             # 10 characters
        "dQw4w9WgXcQQ",           # 12 characters
        "dQw4w9WgX!Q",            # invalid alphabet
        "https://www.youtube.com/watch?v=dQw4w9WgXc",
        "https://www.youtube.com/watch?v=dQw4w9WgXcQQ",
        "https://youtu.be/dQw4w9WgXcQQ",
        "https://www.youtube.com/shorts/short",
        "https://vimeo.com/123456789",
        "https://example.com/watch?v=dQw4w9WgXcQ",
    ])
    def test_rejects_unknown_shapes(self, value):
        with pytest.raises(InvalidInput) as exc_info:
            resolve(value)

        assert exc_info.value.tier == "input"
        assert exc_info.value.exit_code == 2

    def test_other_ids_are_preserved(self):
        assert resolve("https://youtu.be/a-b_c1234Z9") == "a-b_c1234Z9"

    def test_watch_url_property(self):
        assert resolve(VIDEO_ID).watch_url == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

    def test_pure(self):
        """Same input, same output, no hidden state between calls."""
        first = resolve("https://youtu.be/dQw4w9WgXcQ")
        resolve("https://www.youtube.com/shorts/a-b_c1234Z9")
        assert resolve("https://youtu.be/dQw4w9WgXcQ") == first
