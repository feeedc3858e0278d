import random
import subprocess
import threading

import pytest

from stelle.backend import FFplayBackend
from stelle.controller import PlaybackController
from stelle.media import Track
from stelle.player import Player


class FakeProcess:
    """Stands in for a Popen: exits when terminated, killed or finish()ed."""

    _next_pid = 4000

    def __init__(self, argv):
        FakeProcess._next_pid += 1
        self.pid = FakeProcess._next_pid
        self.argv = argv
        self.returncode = None
        self.terminated = False
        self.killed = False
        self._exited = threading.Event()

    def poll(self):
        return self.returncode

    def wait(self, timeout=None):
        if not self._exited.wait(timeout):
            raise subprocess.TimeoutExpired(self.argv, timeout)
        return self.returncode

    def terminate(self):
        self.terminated = True
        self._exit(-15)

    def kill(self):
        self.killed = True
        self._exit(-9)

    def finish(self):
        """The track played to the end."""
        self._exit(0)

    def _exit(self, code):
        if self.returncode is None:
            self.returncode = code
        self._exited.set()


class StubbornProcess(FakeProcess):
    """Ignores SIGTERM."""

    def terminate(self):
        self.terminated = True


class FakeBackend(FFplayBackend):
    def __init__(self, fail=False, process_cls=FakeProcess):
        super().__init__(executable="ffplay", kill_timeout=0.05)
        self.fail = fail
        self.process_cls = process_cls
        self.spawned: list[FakeProcess] = []

    def _spawn(self, argv):
        if self.fail:
            raise FileNotFoundError(2, "No such file or directory", argv[0])
        proc = self.process_cls(argv)
        self.spawned.append(proc)
        return proc

    @property
    def last(self) -> FakeProcess:
        return self.spawned[-1]


class FakeClock:
    def __init__(self, start=100.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
        return self.now


@pytest.fixture(autouse=True)
def isolated_error_log(tmp_path, monkeypatch):
    """Keep format_error() writes inside the test's tmp dir."""
    import stelle.errors as errors

    monkeypatch.setattr(errors, "OUTPUT_DIR", tmp_path / "state")
    monkeypatch.setattr(errors, "ERRORS_LOG", tmp_path / "state" / "errors.log")
    return tmp_path / "state" / "errors.log"


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def player(backend):
    p = Player(backend)
    yield p
    p.set_on_complete(None)
    p.stop()


@pytest.fixture
def tracks(tmp_path):
    return [
        Track("First", "Alpha", "One", 180.0, str(tmp_path / "01 - First.mp3")),
        Track("Second", "Beta", "Two", 200.0, str(tmp_path / "02 - Second.flac")),
        Track("Third", "Gamma", "Unknown Album", 0.0, str(tmp_path / "Third.ogg")),
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduled():
    return []


@pytest.fixture
def controller(tmp_path, player, tracks, clock, scheduled):
    return PlaybackController(
        tmp_path,
        player=player,
        tracks=tracks,
        rng=random.Random(7),
        clock=clock,
        schedule_lyrics=scheduled.append,
    )
