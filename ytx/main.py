"""Command-line entry point: ytx URL [options]."""

import argparse
import logging
import shutil
import signal
import sys
from pathlib import Path
from typing import List, Optional

from ytx import cache
from ytx.config import Config, FileDefaults, load_file_defaults
from ytx.coordinator import AcquisitionCoordinator
from ytx.errors import AcquisitionError
from ytx.fallback import AudioFallbackClient
from ytx.models import Transcript, TranscriptSource
from ytx.summarizer import SummaryError, summarize
from ytx.transcriber import WHISPER_MODELS, WhisperTranscriber
from ytx.video_id import resolve
from ytx.writers import RENDERERS, write_output

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_INTERRUPTED = 130


def setup_logging(verbose: bool = False, log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Send ytx logs to a file, and to stderr with ``verbose``.

    Returns:
        The log file path, or None if the log directory can't be created
    """
    log_dir = log_dir or Config.LOG_DIR
    root = logging.getLogger("ytx")
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    log_file: Optional[Path] = log_dir / "ytx.log"
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
    except OSError as e:
        print(f"⚠ Logging to file disabled ({e})", file=sys.stderr)
        log_file = None
    else:
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    if verbose:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(logging.INFO)
        console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        root.addHandler(console)

    return log_file


def _terminate(signum, frame):
    # Unwind like Ctrl-C so temp audio is cleaned up on the way out
    raise SystemExit(EXIT_INTERRUPTED)


def build_epilog() -> str:
    yt_dlp = shutil.which(Config.YTDLP_PATH)
    tool_line = (
        f"  ✓ yt-dlp     {yt_dlp}" if yt_dlp
        else "  ✗ yt-dlp     (not found - needed for Whisper fallback)"
    )
    return (
        f"required tools:\n{tool_line}\n\n"
        f"logs are written to: {Config.LOG_DIR / 'ytx.log'}"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ytx",
        description="YouTube transcript extractor",
        epilog=build_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("url", nargs="?", help="YouTube video URL or video ID (reads from stdin if omitted)")
    parser.add_argument("-s", "--summarize", action="store_true", help="Summarize the transcript via LLM")
    parser.add_argument("-f", "--format", choices=sorted(RENDERERS), help="Output format (default: text)")
    parser.add_argument("-l", "--lang", help="Preferred caption language (default: en)")
    parser.add_argument("-o", "--output", type=Path, help="Write output to file instead of stdout")
    parser.add_argument("--whisper-only", action="store_true", help="Skip caption extraction, always use Whisper")
    parser.add_argument("--no-fallback", action="store_true", help="Don't fall back to Whisper if captions unavailable")
    parser.add_argument("--whisper-model", choices=WHISPER_MODELS, help="Whisper model for the audio fallback")
    parser.add_argument("-m", "--model", help="LLM model for summarization")
    parser.add_argument("--no-cache", action="store_true", help="Ignore and don't update the transcript cache")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show extraction method and metadata")
    return parser


def read_inputs(url: Optional[str]) -> List[str]:
    if url:
        return [url]
    return [line.strip() for line in sys.stdin if line.strip()]


def cache_usable(transcript: Transcript, args: argparse.Namespace) -> bool:
    """A cached transcript only counts if the policy flags could have produced it."""
    if args.whisper_only:
        return transcript.source is TranscriptSource.WHISPER
    if args.no_fallback:
        return transcript.source is TranscriptSource.CAPTION
    return True


def acquire_one(
    raw_input: str,
    coordinator: AcquisitionCoordinator,
    lang: str,
    args: argparse.Namespace,
) -> Transcript:
    """Resolve, check the cache, run the coordinator and update the cache."""
    video_id = resolve(raw_input)

    if not args.no_cache:
        cached = cache.load(video_id, lang)
        if cached is not None and cache_usable(cached, args):
            if args.verbose:
                print(f"✓ Using cached transcript for video {video_id}", file=sys.stderr)
            return cached

    transcript = coordinator.acquire(
        video_id,
        lang,
        whisper_only=args.whisper_only,
        no_fallback=args.no_fallback,
    )

    if not args.no_cache:
        try:
            cache.save(transcript)
        except OSError as e:
            logger.warning("Could not cache transcript for %s: %s", video_id, e)
    return transcript


def main(argv: Optional[List[str]] = None, coordinator: Optional[AcquisitionCoordinator] = None) -> int:
    """Run the CLI; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        defaults = load_file_defaults()
    except ValueError as e:
        print(f"✗ Configuration Error: {e}", file=sys.stderr)
        return EXIT_USAGE
    args = apply_defaults(args, defaults)

    inputs = read_inputs(args.url)
    if not inputs:
        print("✗ No URL or video ID provided", file=sys.stderr)
        return EXIT_USAGE

    if coordinator is None:
        try:
            transcriber = WhisperTranscriber(model=args.whisper_model)
        except ValueError as e:
            print(f"✗ Configuration Error: {e}", file=sys.stderr)
            return EXIT_USAGE
        audio_client = AudioFallbackClient(transcriber=transcriber, show_progress=sys.stderr.isatty())
        coordinator = AcquisitionCoordinator(audio_client=audio_client)

    previous_handler = signal.signal(signal.SIGTERM, _terminate)
    exit_code = EXIT_OK
    outputs = []
    try:
        for raw_input in inputs:
            try:
                transcript = acquire_one(raw_input, coordinator, args.lang, args)
            except AcquisitionError as e:
                logger.error("Failed to acquire %r: %s", raw_input, e)
                print(f"✗ {raw_input}: {e.describe()}", file=sys.stderr)
                if args.verbose and e.cause is not None:
                    logger.exception("Underlying cause", exc_info=e.cause)
                exit_code = exit_code or e.exit_code
                continue

            if args.verbose:
                print(
                    f"Video: {transcript.title} ({transcript.video_id})\n"
                    f"Source: {transcript.source}\n"
                    f"Language: {transcript.language}\n"
                    f"Segments: {len(transcript.segments)}",
                    file=sys.stderr,
                )

            if args.summarize:
                try:
                    outputs.append(summarize(transcript, args.model))
                except (ValueError, SummaryError) as e:
                    print(f"✗ Summary failed for {transcript.video_id}: {e}", file=sys.stderr)
                    exit_code = exit_code or EXIT_USAGE
                continue

            outputs.append(RENDERERS[args.format](transcript))

    except KeyboardInterrupt:
        print("\n✗ Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED
    finally:
        signal.signal(signal.SIGTERM, previous_handler)

    rendered = "\n".join(output.rstrip("\n") for output in outputs)
    if rendered:
        rendered += "\n"
        if args.output:
            write_output(rendered, args.output)
            print(f"✓ Saved to: {args.output}", file=sys.stderr)
        else:
            sys.stdout.write(rendered)

    return exit_code


def apply_defaults(args: argparse.Namespace, defaults: FileDefaults) -> argparse.Namespace:
    """Fill unset flags: command line beats config file beats environment."""
    args.lang = args.lang or defaults.default_lang or Config.DEFAULT_LANG
    args.format = args.format or defaults.default_format or Config.DEFAULT_FORMAT
    args.model = args.model or defaults.default_model or Config.SUMMARY_MODEL
    args.whisper_model = args.whisper_model or defaults.whisper_model or Config.WHISPER_MODEL
    if args.format not in RENDERERS:
        logger.warning("Unknown output format %r, using text", args.format)
        args.format = 'text'
    return args


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
