"""Whisper fallback: download audio, chunk it, transcribe each chunk, reassemble (Tier 2)."""

import logging
import tempfile
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from tqdm import tqdm

from ytx.audio import AudioAcquirer, plan_chunks, probe_duration
from ytx.config import Config
from ytx.errors import ChunkPlanningError
from ytx.models import AudioChunk, Segment, Transcript, TranscriptSource
from ytx.transcriber import WhisperTranscriber

logger = logging.getLogger(__name__)


def reassemble(chunk_results: Dict[AudioChunk, Sequence[Segment]]) -> List[Segment]:
    """
    Merge per-chunk segments into one timeline.

    Chunks are ordered by their start offset, whatever order they finished
    in, and every segment is shifted from chunk-local time by that offset.
    """
    segments: List[Segment] = []
    for chunk in sorted(chunk_results, key=lambda c: (c.start_offset_seconds, c.index)):
        segments.extend(seg.shifted(chunk.start_offset_seconds) for seg in chunk_results[chunk])
    return segments


class AudioFallbackClient:
    """
    Transcribe a video's audio with Whisper.

    Each ``acquire`` call owns one temporary directory. Everything it downloads
    lives there and the directory is removed when the call ends, whether it
    returns, raises or is interrupted.
    """

    def __init__(
        self,
        acquirer: Optional[AudioAcquirer] = None,
        transcriber: Optional[WhisperTranscriber] = None,
        duration_probe: Callable[[Path], float] = probe_duration,
        max_upload_bytes: Optional[int] = None,
        concurrency: Optional[int] = None,
        temp_root: Optional[Path] = None,
        show_progress: bool = False,
    ):
        self.acquirer = acquirer or AudioAcquirer()
        self.transcriber = transcriber or WhisperTranscriber()
        self.duration_probe = duration_probe
        self.max_upload_bytes = max_upload_bytes or Config.MAX_UPLOAD_BYTES
        self.concurrency = max(1, concurrency or Config.CHUNK_CONCURRENCY)
        self.temp_root = temp_root
        self.show_progress = show_progress

    def acquire(self, video_id: str, language_hint: str) -> Transcript:
        """
        Download, chunk and transcribe a video's audio.

        Args:
            video_id: YouTube video ID
            language_hint: Language passed to Whisper and recorded on the transcript

        Returns:
            Transcript with source WHISPER
        """
        with tempfile.TemporaryDirectory(prefix=f"ytx-{video_id}-", dir=self.temp_root) as tmp:
            workdir = Path(tmp)
            logger.debug("Working in %s", workdir)

            full_audio = self.acquirer.download(video_id, workdir / "full.mp3")
            chunks = self._prepare_chunks(video_id, full_audio, workdir)
            chunk_results = self._transcribe_chunks(chunks, language_hint)

        segments = reassemble(chunk_results)
        title = self.acquirer.fetch_title(video_id)
        logger.info("Whisper produced %d segments for %s from %d chunk(s)", len(segments), video_id, len(chunks))

        return Transcript(
            video_id=video_id,
            title=title,
            language=language_hint,
            source=TranscriptSource.WHISPER,
            segments=segments,
        )

    def _prepare_chunks(self, video_id: str, full_audio: Path, workdir: Path) -> List[AudioChunk]:
        size = full_audio.stat().st_size
        logger.debug("Audio file size: %d bytes", size)

        if size <= self.max_upload_bytes:
            return [AudioChunk(index=0, file_path=full_audio, start_offset_seconds=0.0,
                               duration_seconds=0.0, size_bytes=size)]

        duration = self.duration_probe(full_audio)
        ranges = plan_chunks(duration, size, self.max_upload_bytes)
        logger.info(
            "Audio is %.1f MB; splitting %.0fs into %d chunks",
            size / (1024 * 1024), duration, len(ranges),
        )

        chunks = []
        for index, (start, end) in enumerate(ranges):
            # Ask yt-dlp for each range rather than cutting the file locally,
            # so each chunk is encoded cleanly from its own start
            path = self.acquirer.download(video_id, workdir / f"chunk-{index:03d}.mp3", time_range=(start, end))
            chunk_size = path.stat().st_size
            if chunk_size > self.max_upload_bytes:
                raise ChunkPlanningError(
                    f"chunk {index} ({start:.0f}s-{end:.0f}s) is {chunk_size / (1024 * 1024):.1f} MB, "
                    f"over the {self.max_upload_bytes / (1024 * 1024):.0f} MB upload limit"
                )
            chunks.append(AudioChunk(
                index=index,
                file_path=path,
                start_offset_seconds=start,
                duration_seconds=end - start,
                size_bytes=chunk_size,
            ))

        full_audio.unlink()
        return chunks

    def _transcribe_one(self, chunk: AudioChunk, language: str) -> List[Segment]:
        logger.debug("Uploading chunk %d (%d bytes, offset %.1fs)", chunk.index, chunk.size_bytes,
                     chunk.start_offset_seconds)
        segments = self.transcriber.transcribe(chunk.file_path, language)
        chunk.file_path.unlink(missing_ok=True)
        return segments

    def _transcribe_chunks(self, chunks: List[AudioChunk], language: str) -> Dict[AudioChunk, List[Segment]]:
        results: Dict[AudioChunk, List[Segment]] = {}
        progress = tqdm(total=len(chunks), desc="Transcribing", unit="chunk",
                        disable=not self.show_progress or len(chunks) < 2, leave=False)

        with progress, ThreadPoolExecutor(max_workers=min(self.concurrency, len(chunks))) as pool:
            futures = {pool.submit(self._transcribe_one, chunk, language): chunk for chunk in chunks}
            try:
                pending = set(futures)
                while pending:
                    done, pending = wait(pending, return_when=FIRST_EXCEPTION)
                    for future in done:
                        # Re-raises the chunk's error; no partial transcript is returned
                        results[futures[future]] = future.result()
                        progress.update(1)
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

        return results
