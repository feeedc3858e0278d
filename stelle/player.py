"""Audio Playback via ffplay — pause and seek emulated by relaunching."""
import logging
import threading
from enum import Enum
from typing import Callable, Optional

from .backend import BackendHandle, FFplayBackend
from .errors import BackendLaunchError

logger = logging.getLogger(__name__)


class PlaybackState(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


class Player:
    """Play/Stop/Pause/Resume/Seek on top of a start/kill-only backend.

    Every launch bumps ``generation``. A watcher thread blocks on the process
    it was started for and, on exit, only reports completion if that
    generation is still current and the state is still PLAYING. Anything that
    supersedes a handle (play, stop, pause, seek) changes the generation, so a
    process killed on purpose can never look like a natural end.
    """

    def __init__(self, backend: Optional[FFplayBackend] = None):
        self.backend = backend or FFplayBackend()
        self._lock = threading.Lock()
        self._state = PlaybackState.STOPPED
        self._handle: Optional[BackendHandle] = None
        self._generation = 0
        self._file_path: Optional[str] = None
        self._on_complete: Optional[Callable[[int], None]] = None
        self._watcher: Optional[threading.Thread] = None

    # ── Playback ───────────────────────────────────────────────────────────────

    def play(self, path: str, seek_to: float = 0.0, volume: int = 100) -> int:
        """Start ``path`` at ``seek_to``. Returns the generation of the new handle.

        BackendLaunchError propagates; the state is STOPPED when it does.
        """
        with self._lock:
            return self._play_locked(path, seek_to, volume)

    def stop(self):
        with self._lock:
            self._kill_locked()
            self._state = PlaybackState.STOPPED

    def pause(self):
        """Kill the process but remember the file so resume() can relaunch it."""
        with self._lock:
            if self._state is not PlaybackState.PLAYING:
                return
            self._kill_locked()
            self._state = PlaybackState.PAUSED

    def resume(self, seek_to: float, volume: int = 100) -> Optional[int]:
        """Relaunch the paused file at ``seek_to``. No-op unless paused."""
        with self._lock:
            if self._state is not PlaybackState.PAUSED or not self._file_path:
                return None
            return self._play_locked(self._file_path, seek_to, volume)

    def seek(self, position: float, volume: int = 100) -> Optional[int]:
        """Relaunch at ``position`` if playing. Paused/stopped: nothing to do here."""
        with self._lock:
            if not self._file_path:
                return None
            if self._state is not PlaybackState.PLAYING:
                return None
            return self._play_locked(self._file_path, position, volume)

    def get_state(self) -> PlaybackState:
        with self._lock:
            return self._state

    def set_on_complete(self, callback: Optional[Callable[[int], None]]):
        """Natural-completion target. Called with the generation that finished."""
        with self._lock:
            self._on_complete = callback

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def file_path(self) -> Optional[str]:
        with self._lock:
            return self._file_path

    def join_watcher(self, timeout: Optional[float] = None):
        """Wait for the most recent watcher thread to finish."""
        watcher = self._watcher
        if watcher is not None:
            watcher.join(timeout)

    # ── Internals (caller holds the lock) ──────────────────────────────────────

    def _play_locked(self, path: str, seek_to: float, volume: int) -> int:
        self._kill_locked()
        self._file_path = path
        self._generation += 1
        generation = self._generation
        try:
            handle = self.backend.start(path, seek_to, volume)
        except BackendLaunchError:
            self._state = PlaybackState.STOPPED
            raise

        self._handle = handle
        self._state = PlaybackState.PLAYING
        self._watcher = threading.Thread(
            target=self._watch,
            args=(handle, generation),
            name=f"ffplay-watch-{generation}",
            daemon=True,
        )
        self._watcher.start()
        return generation

    def _kill_locked(self):
        if self._handle is None:
            return
        self._generation += 1
        self._handle = None
        self.backend.kill()

    def _watch(self, handle: BackendHandle, generation: int):
        self.backend.wait_for_exit(handle)
        with self._lock:
            if generation != self._generation or self._state is not PlaybackState.PLAYING:
                logger.debug("Ignoring exit of superseded handle %r (gen %d)", handle, generation)
                return
            self._state = PlaybackState.STOPPED
            self._handle = None
            callback = self._on_complete
        logger.info("Playback finished naturally (gen %d)", generation)
        # Outside the lock: the callback may call straight back into us
        if callback:
            callback(generation)
