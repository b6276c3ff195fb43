"""YouTube audio acquisition via yt-dlp, plus duration probing and chunk planning."""

import logging
import math
import shutil
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import yt_dlp
from yt_dlp.utils import DownloadError
from pydub.utils import mediainfo

from ytx.config import Config
from ytx.errors import ChunkPlanningError, ExternalToolFailed, ExternalToolMissing

logger = logging.getLogger(__name__)

# Keep each planned chunk comfortably below the upload limit; bitrate is not
# perfectly constant across a recording
CHUNK_SIZE_SAFETY = 0.9

Runner = Callable[[Sequence[str]], subprocess.CompletedProcess]


def _run(args: Sequence[str]) -> subprocess.CompletedProcess:
    return subprocess.run(list(args), capture_output=True, text=True, check=False)


class AudioAcquirer:
    """
    Download speech-quality audio with the yt-dlp executable.

    yt-dlp is always invoked with an argument list, never through a shell.
    ``runner`` and ``which`` can be replaced for testing.
    """

    def __init__(
        self,
        executable: Optional[str] = None,
        runner: Optional[Runner] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
    ):
        self.executable = executable or Config.YTDLP_PATH
        self.runner = runner or _run
        self.which = which

    def build_args(
        self,
        video_id: str,
        output_path: Path,
        time_range: Optional[Tuple[float, float]] = None,
    ) -> List[str]:
        url = f"https://www.youtube.com/watch?v={video_id}"
        args = [
            self.executable,
            "--extract-audio",
            "--audio-format", "mp3",
            "--audio-quality", "9",  # lowest quality = smallest file, fine for speech
            "--no-playlist",
            "--no-progress",
            "-o", str(output_path.with_suffix(".%(ext)s")),
        ]
        if time_range is not None:
            start, end = time_range
            args += [
                "--download-sections", f"*{start:.3f}-{end:.3f}",
                "--force-keyframes-at-cuts",
            ]
        args.append(url)
        return args

    def download(
        self,
        video_id: str,
        output_path: Path,
        time_range: Optional[Tuple[float, float]] = None,
    ) -> Path:
        """
        Download audio (optionally only ``time_range`` seconds) to ``output_path``.

        Args:
            video_id: YouTube video ID
            output_path: Target .mp3 path
            time_range: Optional (start, end) in seconds

        Returns:
            The path of the produced file

        Raises:
            ExternalToolMissing: yt-dlp is not installed
            ExternalToolFailed: yt-dlp exited non-zero or produced no file
        """
        if self.which(self.executable) is None:
            raise ExternalToolMissing(self.executable)

        args = self.build_args(video_id, output_path, time_range)
        logger.debug("Running: %s", args)
        try:
            result = self.runner(args)
        except FileNotFoundError as e:
            raise ExternalToolMissing(self.executable, cause=e) from e

        if result.returncode != 0:
            raise ExternalToolFailed(
                f"{self.executable} exited with status {result.returncode}",
                diagnostics=(result.stderr or "") + (result.stdout or ""),
            )
        if not output_path.exists():
            raise ExternalToolFailed(
                f"{self.executable} did not produce expected output file: {output_path.name}",
                diagnostics=result.stderr or "",
            )
        return output_path

    def fetch_title(self, video_id: str) -> str:
        """Look up the video title; empty string if yt-dlp can't get it."""
        url = f"https://www.youtube.com/watch?v={video_id}"
        try:
            with yt_dlp.YoutubeDL({'quiet': True, 'no_warnings': True, 'noplaylist': True}) as ydl:
                info = ydl.extract_info(url, download=False)
        except DownloadError as e:
            logger.warning("Could not fetch title for %s: %s", video_id, e)
            return ""
        return str((info or {}).get('title') or "")


def probe_duration(audio_path: Path) -> float:
    """
    Read an audio file's duration in seconds with ffprobe.

    Raises:
        ChunkPlanningError: ffprobe is missing or reports no usable duration
    """
    try:
        info = mediainfo(str(audio_path))
        duration = float(info['duration'])
    except (OSError, KeyError, ValueError) as e:
        raise ChunkPlanningError(f"could not read duration of {audio_path.name}", cause=e) from e
    if not math.isfinite(duration) or duration <= 0:
        raise ChunkPlanningError(f"invalid duration {duration!r} for {audio_path.name}")
    return duration


def max_chunk_duration(duration: float, size_bytes: int, max_bytes: int) -> float:
    """Longest time span whose encoded size stays under ``max_bytes`` (with safety margin)."""
    return duration * (max_bytes * CHUNK_SIZE_SAFETY) / size_bytes


def plan_chunks(duration: float, size_bytes: int, max_bytes: int) -> List[Tuple[float, float]]:
    """
    Split ``[0, duration]`` into equal contiguous ranges that each fit the upload limit.

    Returns:
        List of (start, end) pairs in ascending order; the last ends exactly at duration

    Raises:
        ChunkPlanningError: duration or sizes are not positive
    """
    if duration <= 0 or size_bytes <= 0 or max_bytes <= 0:
        raise ChunkPlanningError(
            f"cannot plan chunks for duration={duration} size={size_bytes} limit={max_bytes}"
        )

    count = max(1, math.ceil(size_bytes / (max_bytes * CHUNK_SIZE_SAFETY)))
    bounds = [duration * i / count for i in range(count)] + [duration]
    return list(zip(bounds[:-1], bounds[1:]))
