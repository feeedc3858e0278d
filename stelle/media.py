"""Media library — ffprobe metadata and recursive folder scan."""
import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import AUDIO_EXTENSIONS, PROBE_BIN, PROBE_TIMEOUT
from .errors import MetadataError

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class Track:
    title: str
    artist: str
    album: str
    duration: float
    path: str
    bitrate: str = NOT_AVAILABLE
    codec: str = NOT_AVAILABLE
    sample_rate: str = NOT_AVAILABLE


def _lower_keys(tags) -> dict:
    # ffprobe keeps the container's casing (TITLE vs title)
    return {str(k).lower(): v for k, v in (tags or {}).items()}


def _tag(tags: dict, name: str) -> Optional[str]:
    value = str(tags.get(name) or "").strip()
    return value or None


def _fmt_bitrate(raw) -> str:
    try:
        return f"{int(raw) // 1000} kbps"
    except (TypeError, ValueError):
        return NOT_AVAILABLE


def _fmt_sample_rate(raw) -> str:
    try:
        return f"{int(raw) / 1000:.1f} kHz"
    except (TypeError, ValueError):
        return NOT_AVAILABLE


def track_from_probe(path: Path, info: dict) -> Track:
    """Build a Track from ffprobe's ``-show_format -show_streams`` JSON."""
    fmt = info.get("format") or {}
    streams = info.get("streams") or []
    audio = next((s for s in streams if s.get("codec_type") == "audio"), {})

    tags = _lower_keys(audio.get("tags"))
    tags.update(_lower_keys(fmt.get("tags")))

    try:
        duration = float(fmt.get("duration") or audio.get("duration") or 0.0)
    except (TypeError, ValueError):
        duration = 0.0

    codec = audio.get("codec_name")
    return Track(
        title=_tag(tags, "title") or path.stem,
        artist=_tag(tags, "artist") or "Unknown Artist",
        album=_tag(tags, "album") or "Unknown Album",
        duration=max(0.0, duration),
        path=str(path),
        bitrate=_fmt_bitrate(fmt.get("bit_rate") or audio.get("bit_rate")),
        codec=codec.upper() if codec else NOT_AVAILABLE,
        sample_rate=_fmt_sample_rate(audio.get("sample_rate")),
    )


def probe(path: Path) -> Track:
    """Read tags/duration/stream info with ffprobe. Raises MetadataError."""
    try:
        result = subprocess.run(
            [PROBE_BIN, "-v", "quiet", "-print_format", "json",
             "-show_format", "-show_streams", str(path)],
            capture_output=True, text=True, timeout=PROBE_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise MetadataError(f"{PROBE_BIN} failed on {path}: {e}") from e

    if result.returncode != 0:
        raise MetadataError(f"{PROBE_BIN} exited {result.returncode} on {path}")
    try:
        info = json.loads(result.stdout or "{}")
    except json.JSONDecodeError as e:
        raise MetadataError(f"Unreadable probe output for {path}: {e}") from e
    return track_from_probe(Path(path), info)


def is_audio(path: Path) -> bool:
    return path.suffix.lower() in AUDIO_EXTENSIONS


def load_library(music_dir, probe_fn=probe) -> list[Track]:
    """Scan ``music_dir`` recursively. Unreadable files are skipped, not fatal.

    Raises FileNotFoundError / NotADirectoryError for a bad root.
    """
    root = Path(music_dir).expanduser()
    if not root.exists():
        raise FileNotFoundError(f"Music directory not found: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    tracks: list[Track] = []
    skipped = 0
    for path in sorted(root.rglob("*")):
        if not path.is_file() or not is_audio(path):
            continue
        try:
            tracks.append(probe_fn(path))
        except MetadataError as e:
            skipped += 1
            logger.warning("Skipping %s: %s", path, e)

    logger.info("Loaded %d tracks from %s (%d skipped)", len(tracks), root, skipped)
    return tracks
