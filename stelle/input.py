"""Terminal input — single-key reading and the key → command map."""
import asyncio
import logging
import select as _sel
import sys
import termios
import tty
from typing import Callable, Optional

from .controller import Command, PlaybackController

logger = logging.getLogger(__name__)

KEYMAP = {
    "p": "play",
    " ": "toggle_pause",
    "s": "stop",
    "n": "next",
    "right": "next",
    "b": "previous",
    "left": "previous",
    "t": "forward",
    "r": "rewind",
    "h": "shuffle",
    "up": "up",
    "k": "up",
    "down": "down",
    "j": "down",
    "+": "volume_up",
    "=": "volume_up",
    "-": "volume_down",
    "q": "quit",
    "\x03": "quit",
    "\x04": "quit",
}

_ARROWS = {"A": "up", "B": "down", "C": "right", "D": "left"}


def key_mode(fd: int):
    """Single-key input with echo off.

    cbreak, not raw: output post-processing (ONLCR) stays on while Live
    redraws multi-line frames, and Ctrl+C still raises KeyboardInterrupt.
    """
    tty.setcbreak(fd)


def _read_key_timeout(timeout: float = 0.2) -> Optional[str]:
    """Read one logical keypress, or None if nothing arrived.

    Arrow keys come back as "up"/"down"/"left"/"right"; other escape
    sequences as "ignore".
    """
    fd = sys.stdin.fileno()
    old = termios.tcgetattr(fd)
    try:
        key_mode(fd)
        readable, _, _ = _sel.select([sys.stdin], [], [], timeout)
        if not readable:
            return None
        ch = sys.stdin.read(1)
        if ch != "\x1b":
            return ch
        readable, _, _ = _sel.select([sys.stdin], [], [], 0.05)
        if not readable:
            return "esc"
        if sys.stdin.read(1) != "[":
            return "ignore"
        readable, _, _ = _sel.select([sys.stdin], [], [], 0.05)
        if not readable:
            return "ignore"
        return _ARROWS.get(sys.stdin.read(1), "ignore")
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old)


def command_for(key: Optional[str]) -> Optional[str]:
    if key is None:
        return None
    if key in KEYMAP:
        return KEYMAP[key]
    # Caps lock shouldn't change the bindings
    return KEYMAP.get(key.lower()) if len(key) == 1 else None


async def read_commands(
    controller: PlaybackController,
    read_key: Callable[[float], Optional[str]] = _read_key_timeout,
    timeout: float = 0.2,
):
    """Forward keypresses to the controller inbox until it stops running."""
    loop = asyncio.get_running_loop()
    while controller.running:
        key = await loop.run_in_executor(None, read_key, timeout)
        name = command_for(key)
        if name is None:
            continue
        logger.debug("Key %r → %s", key, name)
        controller.post(Command(name))
