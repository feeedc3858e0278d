"""Structured error logging — JSON to errors.log, no terminal formatting."""
import json
import logging
import sys
from datetime import datetime
from typing import Optional

from .config import ERRORS_LOG, OUTPUT_DIR, DEV_MODE

logger = logging.getLogger(__name__)

_FRIENDLY_MESSAGES = {
    "backend_launch": "Couldn't start ffplay — is it installed?",
    "library_scan": "Couldn't read the music folder.",
    "lyrics_save": "Couldn't cache lyrics to disk.",
    "preflight": "Startup check failed.",
}


class BackendLaunchError(Exception):
    """The decoder process could not be started."""


class MetadataError(Exception):
    """A media file could not be probed for tags/duration."""


class LyricsNotFound(Exception):
    """Remote lookup returned no synced lyrics."""


def format_error(
    stage: str,
    detail: str = "",
    context: Optional[dict] = None,
    raw: str = "",
) -> str:
    entry = {
        "timestamp": datetime.now().isoformat(),
        "stage": stage,
        "detail": detail,
        "context": context,
        "error": raw,
        "python": sys.version.split()[0],
    }

    _append_to_log(entry)
    logger.error("Error at %s: %s", stage, raw)

    if DEV_MODE:
        return json.dumps(entry, indent=2)
    return _FRIENDLY_MESSAGES.get(stage, f"Something went wrong ({stage}).")


def _append_to_log(entry: dict):
    try:
        OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        with open(ERRORS_LOG, "a") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError:
        pass
