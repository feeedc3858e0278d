import json
import subprocess
from pathlib import Path

import pytest

import stelle.media as media
from stelle.errors import MetadataError
from stelle.media import Track, load_library, probe, track_from_probe

PROBE_JSON = {
    "streams": [
        {"codec_type": "video", "codec_name": "mjpeg"},
        {"codec_type": "audio", "codec_name": "flac", "sample_rate": "44100",
         "tags": {"TITLE": "Stream Title"}},
    ],
    "format": {
        "duration": "215.373",
        "bit_rate": "912345",
        "tags": {"title": "Blue", "ARTIST": "Band", "album": "Record"},
    },
}


def test_track_from_probe():
    t = track_from_probe(Path("/m/01 - blue.flac"), PROBE_JSON)
    assert t.title == "Blue"
    assert t.artist == "Band"
    assert t.album == "Record"
    assert t.duration == pytest.approx(215.373)
    assert t.bitrate == "912 kbps"
    assert t.codec == "FLAC"
    assert t.sample_rate == "44.1 kHz"
    assert t.path == "/m/01 - blue.flac"


def test_track_from_probe_defaults():
    t = track_from_probe(Path("/m/untagged.wav"), {"format": {"duration": "N/A"}})
    assert t.title == "untagged"
    assert t.artist == "Unknown Artist"
    assert t.album == "Unknown Album"
    assert t.duration == 0.0
    assert (t.bitrate, t.codec, t.sample_rate) == ("N/A", "N/A", "N/A")


def test_probe_parses_ffprobe_output(monkeypatch):
    def fake_run(argv, **kwargs):
        assert argv[0] == media.PROBE_BIN
        assert "-show_streams" in argv
        return subprocess.CompletedProcess(argv, 0, stdout=json.dumps(PROBE_JSON), stderr="")

    monkeypatch.setattr(media.subprocess, "run", fake_run)
    assert probe(Path("/m/x.flac")).title == "Blue"


def test_probe_nonzero_exit(monkeypatch):
    monkeypatch.setattr(
        media.subprocess, "run",
        lambda argv, **kw: subprocess.CompletedProcess(argv, 1, stdout="", stderr="bad"),
    )
    with pytest.raises(MetadataError):
        probe(Path("/m/x.mp3"))


def test_probe_missing_binary(monkeypatch):
    def boom(argv, **kw):
        raise FileNotFoundError(argv[0])

    monkeypatch.setattr(media.subprocess, "run", boom)
    with pytest.raises(MetadataError):
        probe(Path("/m/x.mp3"))


def test_load_library_scans_recursively_and_skips_bad(tmp_path):
    (tmp_path / "b.mp3").write_bytes(b"")
    (tmp_path / "a.FLAC").write_bytes(b"")
    (tmp_path / "notes.txt").write_text("x")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "c.ogg").write_bytes(b"")
    (tmp_path / "sub" / "broken.m4a").write_bytes(b"")

    def fake_probe(path):
        if path.name == "broken.m4a":
            raise MetadataError("corrupt")
        return Track(path.stem, "A", "B", 1.0, str(path))

    tracks = load_library(tmp_path, probe_fn=fake_probe)
    assert [t.title for t in tracks] == ["a", "b", "c"]


def test_load_library_bad_root(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_library(tmp_path / "missing")
    f = tmp_path / "file.mp3"
    f.write_bytes(b"")
    with pytest.raises(NotADirectoryError):
        load_library(f)
