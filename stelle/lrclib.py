"""LRCLIB lookup — synced lyrics by artist/title/album."""
import logging
from typing import Optional

import httpx

from .config import LRCLIB_HOST, LRCLIB_TIMEOUT
from .errors import LyricsNotFound, format_error
from .lyrics import Lyrics, load_from_file, parse, save_to_file

logger = logging.getLogger(__name__)

_UNKNOWN_ALBUM = "Unknown Album"


async def _search(client: httpx.AsyncClient, params: dict) -> str:
    """GET /api/search — first result carrying syncedLyrics wins."""
    try:
        r = await client.get(f"{LRCLIB_HOST}/api/search", params=params)
    except httpx.HTTPError as e:
        raise LyricsNotFound(f"LRCLIB request failed: {e}") from e

    if r.status_code != 200:
        raise LyricsNotFound(f"LRCLIB HTTP {r.status_code}")

    try:
        results = r.json()
    except ValueError as e:
        raise LyricsNotFound(f"LRCLIB returned invalid JSON: {e}") from e

    if isinstance(results, list):
        for item in results:
            if not isinstance(item, dict):
                continue
            synced = item.get("syncedLyrics") or ""
            if isinstance(synced, str) and synced.strip():
                return synced
    raise LyricsNotFound("no synced lyrics found")


async def fetch_synced(
    artist: str,
    title: str,
    album: str = "",
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Return LRC text for the track. Raises LyricsNotFound.

    Tries an exact artist/track(/album) search first, then a loose title query.
    """
    if client is None:
        async with httpx.AsyncClient(timeout=LRCLIB_TIMEOUT) as own:
            return await fetch_synced(artist, title, album, client=own)

    params = {"artist_name": artist, "track_name": title}
    if album and album != _UNKNOWN_ALBUM:
        params["album_name"] = album

    try:
        return await _search(client, params)
    except LyricsNotFound as e:
        logger.debug("Exact lyrics search failed for %s - %s: %s", artist, title, e)

    return await _search(client, {"q": title})


async def load_lyrics(track, music_dir, client: Optional[httpx.AsyncClient] = None) -> Lyrics:
    """Cache first, then LRCLIB. Never raises: a miss is ``Lyrics(loaded=True)``."""
    cached = load_from_file(track.path, music_dir)
    if cached is not None:
        return cached

    try:
        content = await fetch_synced(track.artist, track.title, track.album, client=client)
    except LyricsNotFound as e:
        logger.info("No lyrics for %s: %s", track.path, e)
        return Lyrics(loaded=True)

    try:
        saved = save_to_file(track.path, music_dir, content)
        logger.info("Cached lyrics to %s", saved)
    except OSError as e:
        format_error("lyrics_save", track.path, {"music_dir": str(music_dir)}, str(e))

    return Lyrics(lines=tuple(parse(content)), loaded=True)
