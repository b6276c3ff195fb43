"""ytx: YouTube transcripts from built-in captions, with a Whisper fallback."""

__version__ = "0.1.0"
