"""YouTube built-in caption extraction through the InnerTube API (Tier 1).

All knowledge of YouTube's undocumented wire formats lives here: the API key
embedded in the watch page, the player endpoint's JSON layout and the
timedtext XML. When YouTube changes something, this is the file to update.
"""

import html
import logging
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from ytx.config import Config
from ytx.errors import (
    ApiKeyExtractionFailed,
    AuthRequired,
    CaptionParseError,
    NetworkError,
    NoCaptionsAvailable,
)
from ytx.models import CaptionTrack, Segment, Transcript, TranscriptSource

logger = logging.getLogger(__name__)

YOUTUBE = "https://www.youtube.com"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
DEFAULT_CLIENT_VERSION = "2.20241126.01.00"

API_KEY_PATTERNS = [
    re.compile(r'"INNERTUBE_API_KEY"\s*:\s*"([^"]+)"'),
    re.compile(r'innertubeApiKey\s*[=:]\s*"([^"]+)"'),
]
CLIENT_VERSION_PATTERN = re.compile(r'"INNERTUBE_CONTEXT_CLIENT_VERSION"\s*:\s*"([^"]+)"')

# playabilityStatus values that mean "you need to be signed in to see this"
AUTH_STATUSES = {"LOGIN_REQUIRED", "AGE_CHECK_REQUIRED", "CONTENT_CHECK_REQUIRED"}

TRANSIENT_STATUSES = [500, 502, 503, 504]


def new_session(max_retries: int, backoff_factor: float) -> requests.Session:
    """Build a session that retries timeouts and 5xx responses with exponential backoff."""
    s = requests.Session()
    retries = Retry(
        total=max_retries,
        connect=max_retries,
        read=max_retries,
        status=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=TRANSIENT_STATUSES,
        allowed_methods=["GET", "POST"],
        raise_on_status=False,
    )
    s.mount("https://", HTTPAdapter(max_retries=retries))
    s.mount("http://", HTTPAdapter(max_retries=retries))
    s.headers.update({
        "User-Agent": USER_AGENT,
        "Accept-Language": "en-US,en;q=0.8",
    })
    return s


def extract_api_key(page_html: str) -> str:
    """Find the InnerTube API key embedded in the watch page."""
    for pattern in API_KEY_PATTERNS:
        match = pattern.search(page_html)
        if match:
            return match.group(1)
    raise ApiKeyExtractionFailed("could not extract InnerTube API key from watch page")


def extract_client_version(page_html: str) -> str:
    match = CLIENT_VERSION_PATTERN.search(page_html)
    return match.group(1) if match else DEFAULT_CLIENT_VERSION


def parse_tracks(player: Any, video_id: str) -> List[CaptionTrack]:
    """
    Turn the player response into caption tracks.

    Raises:
        CaptionParseError: response or a track entry has an unexpected shape
        AuthRequired: no tracks and the video needs a signed-in user
        NoCaptionsAvailable: the video has no caption tracks
    """
    if not isinstance(player, dict):
        raise CaptionParseError("player response is not a JSON object")

    renderer = (player.get("captions") or {}).get("playerCaptionsTracklistRenderer") or {}
    raw_tracks = renderer.get("captionTracks")

    if not raw_tracks:
        playability = player.get("playabilityStatus") or {}
        status = playability.get("status", "OK")
        reason = str(playability.get("reason") or "")
        if status in AUTH_STATUSES or (status == "UNPLAYABLE" and "sign in" in reason.lower()):
            raise AuthRequired(f"video {video_id} requires sign-in ({status}: {reason or 'no reason given'})")
        raise NoCaptionsAvailable(f"no captions available for video {video_id}")

    if not isinstance(raw_tracks, list):
        raise CaptionParseError("captionTracks is not a list")

    tracks = []
    for entry in raw_tracks:
        if not isinstance(entry, dict):
            raise CaptionParseError(f"caption track entry is not an object: {entry!r}")
        base_url = entry.get("baseUrl")
        language_code = entry.get("languageCode")
        if not isinstance(base_url, str) or not isinstance(language_code, str):
            raise CaptionParseError("caption track is missing baseUrl or languageCode")
        tracks.append(CaptionTrack(
            language_code=language_code,
            is_auto_generated=entry.get("kind") == "asr",
            fetch_url=base_url,
        ))
    return tracks


def select_track(tracks: List[CaptionTrack], language: str) -> CaptionTrack:
    """Manual track in ``language``, else auto-generated in ``language``, else the first track."""
    for track in tracks:
        if track.language_code == language and not track.is_auto_generated:
            return track
    for track in tracks:
        if track.language_code == language and track.is_auto_generated:
            return track
    return tracks[0]


def parse_caption_xml(xml_text: str) -> List[Segment]:
    """
    Parse timedtext XML into segments sorted by start time.

    Each ``<text start=".." dur="..">`` element becomes one segment. Text is
    entity-decoded (YouTube double-escapes, so ``&amp;#39;`` becomes ``'``)
    and empty lines are skipped.

    Raises:
        CaptionParseError: malformed XML or unparseable timing attributes
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise CaptionParseError(f"error parsing caption XML: {e}", cause=e) from e

    segments = []
    for element in root.iter("text"):
        text = html.unescape("".join(element.itertext())).strip()
        if not text:
            continue
        try:
            start = float(element.attrib["start"])
            duration = float(element.attrib.get("dur", 0.0))
        except (KeyError, ValueError) as e:
            raise CaptionParseError(f"bad timing on caption element: {element.attrib!r}", cause=e) from e
        segments.append(Segment(text=text, start=start, duration=duration))

    segments.sort(key=lambda s: s.start)
    return segments


class CaptionClient:
    """Fetch built-in captions with three dependent HTTP calls."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        max_retries: Optional[int] = None,
        backoff_factor: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        max_retries = Config.MAX_RETRIES if max_retries is None else max_retries
        backoff_factor = Config.BACKOFF_FACTOR if backoff_factor is None else backoff_factor
        self.session = session or new_session(max_retries, backoff_factor)
        self.timeout = Config.HTTP_TIMEOUT if timeout is None else timeout

    def fetch(self, video_id: str, language: str = "en") -> Transcript:
        """
        Fetch the caption transcript for a video.

        Args:
            video_id: Canonical YouTube video ID
            language: Preferred caption language code

        Returns:
            Transcript with source CAPTION and the language actually used
        """
        # Step 1: watch page -> API key
        watch_url = f"{YOUTUBE}/watch?v={video_id}"
        logger.debug("Fetching watch page: %s", watch_url)
        page_html = self._request("GET", watch_url).text
        api_key = extract_api_key(page_html)
        client_version = extract_client_version(page_html)
        logger.debug("Extracted InnerTube API key (client version %s)", client_version)

        # Step 2: player endpoint -> caption tracks
        player = self._player(video_id, api_key, client_version, language)
        tracks = parse_tracks(player, video_id)
        title = str((player.get("videoDetails") or {}).get("title") or "")
        logger.debug(
            "Caption tracks: %s",
            ", ".join(f"{t.language_code}{'-asr' if t.is_auto_generated else ''}" for t in tracks),
        )

        # Step 3: selected track -> segments
        track = select_track(tracks, language)
        if track.language_code != language:
            logger.info("No %s captions for %s, using %s", language, video_id, track.language_code)
        caption_xml = self._request("GET", track.fetch_url).text
        segments = parse_caption_xml(caption_xml)
        logger.info("Fetched %d caption segments for %s (%s)", len(segments), video_id, track.language_code)

        return Transcript(
            video_id=video_id,
            title=title,
            language=track.language_code,
            source=TranscriptSource.CAPTION,
            segments=segments,
        )

    def _player(self, video_id: str, api_key: str, client_version: str, language: str) -> Dict[str, Any]:
        url = f"{YOUTUBE}/youtubei/v1/player"
        payload = {
            "context": {
                "client": {
                    "hl": language,
                    "gl": "US",
                    "clientName": "WEB",
                    "clientVersion": client_version,
                }
            },
            "videoId": video_id,
        }
        response = self._request(
            "POST", url,
            params={"key": api_key, "prettyPrint": "false"},
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        try:
            return response.json()
        except ValueError as e:
            raise CaptionParseError("player endpoint returned invalid JSON", cause=e) from e

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send a request; map exhausted retries and HTTP errors onto NetworkError."""
        headers = {"User-Agent": USER_AGENT}
        headers.update(kwargs.pop("headers", {}))
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except (requests.Timeout, requests.ConnectionError, requests.exceptions.RetryError) as e:
            raise NetworkError(f"{method} {url} failed after retries: {e}", transient=True, cause=e) from e
        except requests.RequestException as e:
            raise NetworkError(f"{method} {url} failed: {e}", transient=False, cause=e) from e

        if response.status_code >= 500:
            raise NetworkError(
                f"{method} {url} returned {response.status_code} after retries",
                transient=True, status=response.status_code,
            )
        if response.status_code >= 400:
            raise NetworkError(
                f"{method} {url} returned {response.status_code}",
                transient=False, status=response.status_code,
            )
        return response
