"""Playback controller — owns the session, turns commands and ticks into player calls.

Only the controller mutates ``PlaybackSession``, always under its lock.
Background work (process watchers, lyric fetches, library scan) never touches
the session: it posts an event with ``post()`` and the coordinator applies it
on its next ``drain()``.
"""
import logging
import queue
import random
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from .config import DEFAULT_VOLUME, KILL_TIMEOUT, MAX_TICK_DELTA, SEEK_COOLDOWN, SEEK_STEP, VOLUME_STEP
from .errors import BackendLaunchError, format_error
from .lyrics import Lyrics, current_and_next
from .media import Track
from .player import PlaybackState, Player
from .shuffle import next_index, previous_index

logger = logging.getLogger(__name__)


@dataclass
class PlaybackSession:
    state: PlaybackState = PlaybackState.STOPPED
    index: Optional[int] = None
    elapsed: float = 0.0
    last_tick: float = 0.0
    seeking: bool = False
    seek_until: float = 0.0
    shuffle: bool = False
    history: list[int] = field(default_factory=list)
    volume: int = DEFAULT_VOLUME
    # Generation of the backend handle this session is listening to
    generation: Optional[int] = None


# ── Events ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Tick:
    now: float


@dataclass(frozen=True)
class BackendFinished:
    generation: int


@dataclass(frozen=True)
class LyricsLoaded:
    path: str
    lyrics: Lyrics


@dataclass(frozen=True)
class LibraryLoaded:
    tracks: tuple


@dataclass(frozen=True)
class Command:
    name: str


class PlaybackController:
    def __init__(
        self,
        music_dir,
        player: Optional[Player] = None,
        tracks=None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        schedule_lyrics: Optional[Callable[[Track], None]] = None,
    ):
        self.music_dir = Path(music_dir)
        self.player = player or Player()
        self.tracks: list[Track] = list(tracks or [])
        self.loading = tracks is None
        self.selected = 0
        self.lyrics: dict[str, Lyrics] = {}
        # Paths with a lyric fetch in flight
        self._lyrics_pending: set[str] = set()
        self.status_message = ""
        self.running = True
        self.schedule_lyrics = schedule_lyrics

        self._now = clock
        self._rng = rng or random.Random()
        self._lock = threading.RLock()
        self._inbox: queue.SimpleQueue = queue.SimpleQueue()
        self.session = PlaybackSession(last_tick=self._now())

        self._commands: dict[str, Callable[[], object]] = {
            "play": self.play_selected,
            "toggle_pause": self.toggle_pause,
            "stop": self.stop,
            "next": self.next_track,
            "previous": self.previous_track,
            "forward": lambda: self.seek(SEEK_STEP),
            "rewind": lambda: self.seek(-SEEK_STEP),
            "shuffle": self.toggle_shuffle,
            "up": lambda: self.move_cursor(-1),
            "down": lambda: self.move_cursor(1),
            "volume_up": lambda: self.set_volume(self.session.volume + VOLUME_STEP),
            "volume_down": lambda: self.set_volume(self.session.volume - VOLUME_STEP),
            "quit": self.quit,
        }

    # ── Views ─────────────────────────────────────────────────────────────────

    @property
    def state(self) -> PlaybackState:
        return self.session.state

    @property
    def current_track(self) -> Optional[Track]:
        idx = self.session.index
        if idx is None or not (0 <= idx < len(self.tracks)):
            return None
        return self.tracks[idx]

    @property
    def current_lyrics(self) -> Optional[Lyrics]:
        track = self.current_track
        return self.lyrics.get(track.path) if track else None

    @property
    def lyrics_loading(self) -> bool:
        track = self.current_track
        return track is not None and track.path in self._lyrics_pending

    def lyric_lines(self) -> tuple[str, str]:
        lyr = self.current_lyrics
        if lyr is None or not lyr.loaded:
            return "", ""
        return current_and_next(lyr.lines, self.session.elapsed)

    # ── Event inbox ───────────────────────────────────────────────────────────

    def post(self, event):
        """Thread-safe: queue an event for the coordinator."""
        self._inbox.put(event)

    def drain(self) -> int:
        """Apply every queued event in arrival order. Returns how many ran."""
        n = 0
        while True:
            try:
                event = self._inbox.get_nowait()
            except queue.Empty:
                return n
            self.handle(event)
            n += 1

    def handle(self, event):
        if isinstance(event, Tick):
            self.tick(event.now)
        elif isinstance(event, BackendFinished):
            self.on_backend_finished(event.generation)
        elif isinstance(event, LyricsLoaded):
            self.on_lyrics_loaded(event.path, event.lyrics)
        elif isinstance(event, LibraryLoaded):
            self.load_library(event.tracks)
        elif isinstance(event, Command):
            self.run_command(event.name)
        else:
            logger.warning("Unknown event %r", event)

    def run_command(self, name: str):
        if self.loading and name != "quit":
            return
        fn = self._commands.get(name)
        if fn is None:
            logger.warning("Unknown command %r", name)
            return
        fn()

    # ── Library ───────────────────────────────────────────────────────────────

    def load_library(self, tracks):
        """Install the scanned library and start the first track."""
        with self._lock:
            self.tracks = list(tracks)
            self.loading = False
            self.selected = 0
            self.session.history = []
            if self.tracks:
                self.play_index(0)

    # ── Commands ──────────────────────────────────────────────────────────────

    def play_index(self, index: int) -> bool:
        with self._lock:
            if not (0 <= index < len(self.tracks)):
                return False
            track = self.tracks[index]
            s = self.session
            s.index = index
            s.elapsed = 0.0
            s.last_tick = self._now()
            s.seeking = False
            self.selected = index

            logger.info("Playing [%d] %s - %s", index, track.artist, track.title)
            ok = self._launch(track, lambda: self.player.play(track.path, 0.0, s.volume))
            self._request_lyrics(track)
            return ok

    def play_selected(self) -> bool:
        return self.play_index(self.selected) if self.tracks else False

    def toggle_pause(self):
        with self._lock:
            if self.session.state is PlaybackState.PLAYING:
                self.pause()
            elif self.session.state is PlaybackState.PAUSED:
                self.resume()
            elif self.tracks:
                self.play_selected()

    def pause(self):
        with self._lock:
            s = self.session
            if s.state is not PlaybackState.PLAYING:
                return
            self.player.pause()
            s.state = PlaybackState.PAUSED
            s.generation = None
            logger.info("Paused at %.2fs", s.elapsed)

    def resume(self):
        with self._lock:
            s = self.session
            track = self.current_track
            if s.state is not PlaybackState.PAUSED or track is None:
                return
            s.last_tick = self._now()
            s.seeking = False

            def relaunch():
                gen = self.player.resume(s.elapsed, s.volume)
                if gen is None:
                    # Player already dropped its paused state
                    gen = self.player.play(track.path, s.elapsed, s.volume)
                return gen

            logger.info("Resuming at %.2fs", s.elapsed)
            self._launch(track, relaunch)

    def stop(self):
        with self._lock:
            s = self.session
            self.player.stop()
            s.state = PlaybackState.STOPPED
            s.elapsed = 0.0
            s.seeking = False
            s.generation = None
            logger.info("Stopped")

    def next_track(self) -> bool:
        with self._lock:
            s = self.session
            idx, s.history = next_index(s.index, len(self.tracks), s.shuffle, s.history, self._rng)
            if idx is None:
                return False
            return self.play_index(idx)

    def previous_track(self) -> bool:
        with self._lock:
            s = self.session
            idx, s.history = previous_index(s.index, len(self.tracks), s.shuffle, s.history)
            if idx is None:
                return False
            return self.play_index(idx)

    def seek(self, delta: float):
        """Move the position by ``delta`` seconds; past the end means next track."""
        with self._lock:
            s = self.session
            track = self.current_track
            if track is None or s.seeking:
                return
            now = self._now()
            s.seeking = True
            s.seek_until = now + SEEK_COOLDOWN

            target = max(0.0, s.elapsed + delta)
            if track.duration > 0 and target >= track.duration:
                s.seeking = False
                self.next_track()
                return

            s.elapsed = target
            if s.state is PlaybackState.PLAYING:
                s.last_tick = now
                self._launch(track, lambda: self._relaunch(track, target))

    def toggle_shuffle(self):
        with self._lock:
            self.session.shuffle = not self.session.shuffle
            self.session.history = []
            logger.info("Shuffle %s", "on" if self.session.shuffle else "off")

    def set_volume(self, volume: int):
        """Clamp to 0–100. ffplay can't change volume live, so playing relaunches."""
        with self._lock:
            s = self.session
            volume = max(0, min(100, int(volume)))
            if volume == s.volume:
                return
            s.volume = volume
            track = self.current_track
            if s.state is PlaybackState.PLAYING and track is not None:
                s.last_tick = self._now()
                self._launch(track, lambda: self._relaunch(track, s.elapsed))

    def move_cursor(self, delta: int):
        if not self.tracks:
            return
        self.selected = max(0, min(len(self.tracks) - 1, self.selected + delta))

    def quit(self):
        self.stop()
        self.running = False

    def shutdown(self):
        self.player.set_on_complete(None)
        self.player.stop()
        self.player.join_watcher(KILL_TIMEOUT)

    # ── Clock & backend events ────────────────────────────────────────────────

    def tick(self, now: Optional[float] = None) -> bool:
        """Advance the wall-clock position. Returns True if it auto-advanced.

        Deltas outside (0, MAX_TICK_DELTA) are dropped as clock anomalies;
        ``last_tick`` moves forward either way.
        """
        with self._lock:
            s = self.session
            now = self._now() if now is None else now
            if s.seeking and now >= s.seek_until:
                s.seeking = False

            delta = now - s.last_tick
            s.last_tick = now

            track = self.current_track
            if s.state is not PlaybackState.PLAYING or track is None:
                return False

            if 0 < delta < MAX_TICK_DELTA:
                s.elapsed += delta
            else:
                logger.debug("Dropping tick delta %.3fs", delta)

            # Unknown duration: leave the end to the backend's exit
            if track.duration > 0 and s.elapsed >= track.duration:
                logger.info("Clock reached end of %s, advancing", track.path)
                self.next_track()
                return True
            return False

    def on_backend_finished(self, generation: int) -> bool:
        """The decoder exited on its own. Acts only for the live handle."""
        with self._lock:
            s = self.session
            if generation != s.generation or s.state is not PlaybackState.PLAYING:
                logger.debug("Discarding completion for gen %d (live %s)", generation, s.generation)
                return False
            s.state = PlaybackState.STOPPED
            s.generation = None
            logger.info("Decoder finished, advancing")
            self.next_track()
            return True

    def on_lyrics_loaded(self, path: str, lyrics: Lyrics) -> bool:
        """Attach a lyric set to its track. Returns False if that track is no longer current."""
        with self._lock:
            self._lyrics_pending.discard(path)
            self.lyrics[path] = lyrics
            track = self.current_track
            if track is None or track.path != path:
                logger.debug("Late lyrics for %s cached, not shown", path)
                return False
            return True

    # ── Internals (caller holds the lock) ─────────────────────────────────────

    def _on_backend_complete(self, generation: int):
        # Runs on the watcher thread
        self.post(BackendFinished(generation))

    def _relaunch(self, track: Track, position: float) -> int:
        gen = self.player.seek(position, self.session.volume)
        if gen is None:
            gen = self.player.play(track.path, position, self.session.volume)
        return gen

    def _launch(self, track: Track, start: Callable[[], Optional[int]]) -> bool:
        s = self.session
        self.player.set_on_complete(self._on_backend_complete)
        try:
            gen = start()
        except BackendLaunchError as e:
            s.state = PlaybackState.STOPPED
            s.generation = None
            self.status_message = format_error("backend_launch", track.path, {"elapsed": s.elapsed}, str(e))
            return False
        s.generation = gen
        s.state = PlaybackState.PLAYING
        self.status_message = ""
        return True

    def _request_lyrics(self, track: Track):
        if track.path in self.lyrics or track.path in self._lyrics_pending or self.schedule_lyrics is None:
            return
        self._lyrics_pending.add(track.path)
        self.schedule_lyrics(track)
