"""Configuration management and environment variable loading."""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file (don't override existing env vars)
load_dotenv(override=False)


def _home_dir(env_name: str, fallback: str) -> Path:
    base = os.getenv(env_name)
    return Path(base).expanduser() if base else Path.home() / fallback


class Config:
    """Application configuration."""

    # Credentials: read from the environment only, never written anywhere
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")

    WHISPER_MODEL: str = os.getenv("YTX_WHISPER_MODEL", "whisper-1")
    SUMMARY_MODEL: str = os.getenv("YTX_SUMMARY_MODEL", "claude-sonnet-4-6")
    DEFAULT_LANG: str = os.getenv("YTX_LANG", "en")
    DEFAULT_FORMAT: str = os.getenv("YTX_FORMAT", "text")

    # Network retry policy shared by the caption and transcription clients
    MAX_RETRIES: int = int(os.getenv("MAX_RETRIES", "2"))
    BACKOFF_FACTOR: float = float(os.getenv("YTX_BACKOFF_FACTOR", "0.8"))
    HTTP_TIMEOUT: float = float(os.getenv("YTX_HTTP_TIMEOUT", "25"))

    # OpenAI rejects uploads above 25 MB
    MAX_UPLOAD_BYTES: int = 25 * 1024 * 1024
    CHUNK_CONCURRENCY: int = int(os.getenv("YTX_CHUNK_CONCURRENCY", "1"))

    YTDLP_PATH: str = os.getenv("YTX_YTDLP", "yt-dlp")
    CACHE_DIR: Path = Path(os.getenv("YTX_CACHE_DIR") or _home_dir("XDG_CACHE_HOME", ".cache") / "ytx" / "transcripts")
    LOG_DIR: Path = Path(os.getenv("YTX_LOG_DIR") or _home_dir("XDG_DATA_HOME", ".local/share") / "ytx" / "logs")
    CONFIG_FILE: Path = _home_dir("XDG_CONFIG_HOME", ".config") / "ytx" / "config.toml"

    @classmethod
    def validate_openai(cls) -> None:
        """Validate that the OpenAI key is present."""
        if not cls.OPENAI_API_KEY:
            raise ValueError(
                "OPENAI_API_KEY is required for the Whisper fallback and OpenAI summaries. "
                "Please set it in your .env file or environment variables."
            )

    @classmethod
    def validate_anthropic(cls) -> None:
        """Validate that the Anthropic key is present."""
        if not cls.ANTHROPIC_API_KEY:
            raise ValueError(
                "ANTHROPIC_API_KEY is required for Claude summaries. "
                "Please set it in your .env file or environment variables."
            )


@dataclass
class FileDefaults:
    """Optional defaults from ~/.config/ytx/config.toml."""
    default_lang: Optional[str] = None
    default_format: Optional[str] = None
    default_model: Optional[str] = None
    whisper_model: Optional[str] = None


def load_file_defaults(path: Optional[Path] = None) -> FileDefaults:
    """
    Load defaults from the TOML config file if it exists.

    Unknown keys are ignored. A missing file yields empty defaults.

    Raises:
        ValueError: if the file exists but is not valid TOML
    """
    path = path or Config.CONFIG_FILE
    if not path.exists():
        return FileDefaults()

    try:
        with open(path, 'rb') as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid config file {path}: {e}") from e

    def _str(key: str) -> Optional[str]:
        value = data.get(key)
        return str(value) if value is not None else None

    return FileDefaults(
        default_lang=_str("default_lang"),
        default_format=_str("default_format"),
        default_model=_str("default_model"),
        whisper_model=_str("whisper_model"),
    )
