import asyncio

import httpx
import pytest

from stelle.errors import LyricsNotFound
from stelle.lrclib import fetch_synced, load_lyrics
from stelle.media import Track

SYNCED = "[00:01.00] first\n[00:03.50] second\n"


def _run(coro_fn, handler):
    """Run ``coro_fn(client)`` against a mocked LRCLIB; returns (result, requests)."""
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(_record)) as client:
            return await coro_fn(client)

    return asyncio.run(go()), seen


def test_exact_search_hit():
    def handler(request):
        return httpx.Response(200, json=[
            {"trackName": "Song", "syncedLyrics": None},
            {"trackName": "Song", "syncedLyrics": SYNCED},
        ])

    result, seen = _run(lambda c: fetch_synced("Artist", "Song", "Album", client=c), handler)

    assert result == SYNCED
    assert len(seen) == 1
    params = seen[0].url.params
    assert seen[0].url.path == "/api/search"
    assert params["artist_name"] == "Artist"
    assert params["track_name"] == "Song"
    assert params["album_name"] == "Album"


def test_falls_back_to_title_query():
    def handler(request):
        if "q" in request.url.params:
            return httpx.Response(200, json=[{"syncedLyrics": SYNCED}])
        return httpx.Response(200, json=[])

    result, seen = _run(lambda c: fetch_synced("Artist", "Song", "Unknown Album", client=c), handler)

    assert result == SYNCED
    assert len(seen) == 2
    assert "album_name" not in seen[0].url.params
    assert seen[1].url.params["q"] == "Song"


def test_not_found_raises():
    def handler(request):
        return httpx.Response(404)

    with pytest.raises(LyricsNotFound):
        _run(lambda c: fetch_synced("A", "B", client=c), handler)


def test_transport_error_raises_not_found():
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    with pytest.raises(LyricsNotFound):
        _run(lambda c: fetch_synced("A", "B", client=c), handler)


def _track(tmp_path, name="02 - Song.mp3"):
    return Track("Song", "Artist", "Album", 200.0, str(tmp_path / name))


def test_load_lyrics_fetches_and_caches(tmp_path):
    track = _track(tmp_path)

    lyr, seen = _run(
        lambda c: load_lyrics(track, tmp_path, client=c),
        lambda r: httpx.Response(200, json=[{"syncedLyrics": SYNCED}]),
    )

    assert lyr.loaded
    assert [ln.text for ln in lyr.lines] == ["first", "second"]
    assert (tmp_path / "lyrics" / "Song.lrc").read_text() == SYNCED
    assert len(seen) == 1


def test_load_lyrics_prefers_cache(tmp_path):
    track = _track(tmp_path)
    (tmp_path / "lyrics").mkdir()
    (tmp_path / "lyrics" / "Song.lrc").write_text("[00:05.00] cached\n")

    lyr, seen = _run(
        lambda c: load_lyrics(track, tmp_path, client=c),
        lambda r: httpx.Response(500),
    )

    assert lyr.lines[0].text == "cached"
    assert seen == []


def test_load_lyrics_miss_is_loaded_but_empty(tmp_path):
    lyr, _ = _run(
        lambda c: load_lyrics(_track(tmp_path), tmp_path, client=c),
        lambda r: httpx.Response(200, json=[]),
    )
    assert lyr.loaded
    assert lyr.lines == ()
