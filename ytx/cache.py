"""Local JSON cache of finished transcripts."""

import json
import logging
from pathlib import Path
from typing import Optional

from ytx.config import Config
from ytx.models import Transcript

logger = logging.getLogger(__name__)


def cache_path(video_id: str, lang: str, cache_dir: Optional[Path] = None) -> Path:
    return (cache_dir or Config.CACHE_DIR) / f"{video_id}-{lang}.json"


def load(video_id: str, lang: str, cache_dir: Optional[Path] = None) -> Optional[Transcript]:
    """Load a cached transcript; a missing or corrupt entry is a miss."""
    path = cache_path(video_id, lang, cache_dir)
    if not path.exists():
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            transcript = Transcript.from_dict(json.load(f))
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning("Ignoring unreadable cache entry %s: %s", path, e)
        return None
    logger.debug("Cache hit: %s", path)
    return transcript


def save(transcript: Transcript, cache_dir: Optional[Path] = None) -> Path:
    """Save a transcript under its video ID and language."""
    path = cache_path(transcript.video_id, transcript.language, cache_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(transcript.to_dict(), f, indent=2, ensure_ascii=False)
    logger.debug("Cached transcript: %s", path)
    return path
