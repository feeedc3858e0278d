"""Synced lyrics — LRC parsing, line lookup by elapsed time, on-disk cache.

Cache layout: ``<music dir>/lyrics/<clean stem>.lrc`` where the clean stem is
the audio file's stem with any leading track number stripped.
"""
import bisect
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import LYRICS_DIRNAME

logger = logging.getLogger(__name__)

_TIMESTAMP_RE = re.compile(r"\[(\d+):(\d+)\.(\d+)\]\s*(.*)")
_TRACK_NUMBER_RE = re.compile(r"^\d+\s*[-._)]?\s*")


@dataclass(frozen=True)
class LyricLine:
    timestamp: float
    text: str


@dataclass(frozen=True)
class Lyrics:
    """A track's lyric set. ``loaded`` with no lines means "looked, found none"."""
    lines: tuple[LyricLine, ...] = field(default_factory=tuple)
    loaded: bool = False


def parse(content: str) -> list[LyricLine]:
    """Parse ``[mm:ss.xx] text`` lines, dropping anything else, sorted by time."""
    lines: list[LyricLine] = []
    for raw in content.splitlines():
        m = _TIMESTAMP_RE.search(raw)
        if not m:
            continue
        text = m.group(4).strip()
        if not text:
            continue
        minutes, seconds, frac = m.group(1), m.group(2), m.group(3)
        ts = int(minutes) * 60 + int(seconds) + float(f"0.{frac}")
        lines.append(LyricLine(ts, text))
    lines.sort(key=lambda ln: ln.timestamp)
    return lines


def current_and_next(lines, elapsed: float) -> tuple[str, str]:
    """(current, next) text for ``elapsed`` seconds into the track.

    Current is the last line whose timestamp is <= elapsed. Before the first
    line, current is empty and next is the first line.
    """
    if not lines:
        return "", ""
    times = [ln.timestamp for ln in lines]
    idx = bisect.bisect_right(times, elapsed) - 1
    if idx < 0:
        return "", lines[0].text
    nxt = lines[idx + 1].text if idx + 1 < len(lines) else ""
    return lines[idx].text, nxt


# ── Cache files ───────────────────────────────────────────────────────────────

def clean_name(track_path) -> str:
    """Audio file stem without a leading track number ("03 - Song" → "Song")."""
    stem = Path(track_path).stem
    return _TRACK_NUMBER_RE.sub("", stem) or stem


def lyrics_dir(music_dir) -> Path:
    return Path(music_dir) / LYRICS_DIRNAME


def cache_candidates(track_path, music_dir) -> list[Path]:
    base = Path(track_path).stem
    clean = clean_name(track_path)
    d = lyrics_dir(music_dir)
    names = [clean, base, clean.lower(), base.lower()]
    seen: list[Path] = []
    for name in names:
        p = d / f"{name}.lrc"
        if name and p not in seen:
            seen.append(p)
    return seen


def load_from_file(track_path, music_dir) -> Optional[Lyrics]:
    """Return cached lyrics for the track, or None if no usable cache file exists."""
    for candidate in cache_candidates(track_path, music_dir):
        try:
            content = candidate.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        lines = parse(content)
        if not lines:
            continue
        logger.debug("Lyrics cache hit: %s", candidate)
        return Lyrics(lines=tuple(lines), loaded=True)
    return None


def save_to_file(track_path, music_dir, content: str) -> Path:
    """Write fetched LRC text to the cache. OSError propagates."""
    d = lyrics_dir(music_dir)
    d.mkdir(parents=True, exist_ok=True)
    path = d / f"{clean_name(track_path)}.lrc"
    path.write_text(content, encoding="utf-8")
    return path
