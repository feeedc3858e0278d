import asyncio

import stelle.preflight as preflight
from stelle.preflight import run_preflight


async def _ok():
    return True, "fine", ""


async def _bad():
    return False, "broken", "do the thing"


def test_all_checks_pass(tmp_path):
    assert asyncio.run(run_preflight(tmp_path, checks=[("One", _ok), ("Two", _ok)])) is True


def test_failure_is_reported(tmp_path, isolated_error_log):
    assert asyncio.run(run_preflight(tmp_path, checks=[("One", _ok), ("Two", _bad)])) is False
    assert "preflight" in isolated_error_log.read_text()


def test_music_dir_check(tmp_path):
    ok, _, _ = asyncio.run(preflight._check_music_dir(tmp_path))
    assert ok
    ok, msg, fix = asyncio.run(preflight._check_music_dir(tmp_path / "nope"))
    assert not ok
    assert ".mp3" in fix


def test_missing_binary(monkeypatch):
    monkeypatch.setattr(preflight.shutil, "which", lambda name: None)
    ok, msg, fix = asyncio.run(preflight._check_binary("ffplay"))
    assert not ok
    assert "ffmpeg" in fix.lower()
