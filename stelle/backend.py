"""Decoder process control via ffplay.

ffplay has no control channel: every play, resume, seek or volume change is a
fresh process started at an offset. This module only spawns, kills and waits;
state and race handling live in ``player.Player``.
"""
import logging
import subprocess
from typing import Optional

from .config import DECODER_BIN, KILL_TIMEOUT
from .errors import BackendLaunchError

logger = logging.getLogger(__name__)


def build_args(executable: str, path: str, offset: float = 0.0, volume: int = 100) -> list[str]:
    """Argument vector for one ffplay run, in the order ffplay expects them."""
    volume = max(0, min(100, int(volume)))
    args = [executable, "-nodisp", "-autoexit", "-loglevel", "quiet", "-volume", str(volume)]
    if offset > 0:
        args += ["-ss", f"{offset:.2f}"]
    args.append(str(path))
    return args


class BackendHandle:
    """One spawn-to-exit lifetime of the decoder process."""

    def __init__(self, process: subprocess.Popen, path: str, offset: float):
        self.process = process
        self.path = path
        self.offset = offset

    @property
    def pid(self) -> int:
        return self.process.pid

    def is_running(self) -> bool:
        return self.process.poll() is None

    def wait(self) -> Optional[int]:
        """Block until the process exits, naturally or killed."""
        return self.process.wait()

    def __repr__(self):
        return f"<BackendHandle pid={self.pid} offset={self.offset:.2f} path={self.path!r}>"


class FFplayBackend:
    def __init__(self, executable: str = DECODER_BIN, kill_timeout: float = KILL_TIMEOUT):
        self.executable = executable
        self.kill_timeout = kill_timeout
        self._handle: Optional[BackendHandle] = None

    @property
    def handle(self) -> Optional[BackendHandle]:
        return self._handle

    def start(self, path: str, offset: float = 0.0, volume: int = 100) -> BackendHandle:
        """Kill whatever is running, then launch a new process at ``offset``.

        Raises BackendLaunchError if the executable cannot be spawned.
        """
        self.kill()
        argv = build_args(self.executable, path, offset, volume)
        try:
            proc = self._spawn(argv)
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("Failed to start %s: %s", self.executable, e)
            raise BackendLaunchError(f"Failed to start {self.executable}: {e}") from e

        self._handle = BackendHandle(proc, path, offset)
        logger.info("Started %s at %.2fs (pid %s): %s", self.executable, offset, proc.pid, path)
        return self._handle

    def kill(self):
        """Terminate the current process and wait for it to go away. Safe to call anytime."""
        handle, self._handle = self._handle, None
        if handle is None:
            return
        proc = handle.process
        if proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=self.kill_timeout)
            except subprocess.TimeoutExpired:
                logger.warning("pid %s ignored SIGTERM, killing", proc.pid)
                proc.kill()
                proc.wait()
            logger.info("Killed pid %s", proc.pid)

    def wait_for_exit(self, handle: Optional[BackendHandle] = None) -> Optional[int]:
        """Block until ``handle`` (default: the current process) exits.

        Returns its exit code, or None if there is nothing to wait on.
        """
        if handle is None:
            handle = self._handle
        if handle is None:
            return None
        return handle.wait()

    def _spawn(self, argv: list[str]) -> subprocess.Popen:
        return subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
