"""Writer for JSON format."""

import json
from ytx.models import Transcript


def render_json(transcript: Transcript) -> str:
    """Render transcript as pretty-printed JSON."""
    return json.dumps(transcript.to_dict(), indent=2, ensure_ascii=False) + "\n"
