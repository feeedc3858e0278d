"""Position clock — the periodic tick that drives the controller and the redraw."""
import asyncio
import logging
import time
from typing import Callable, Optional

from .config import TICK_INTERVAL
from .controller import PlaybackController, Tick

logger = logging.getLogger(__name__)


class TickClock:
    """Every ``interval`` seconds: post a Tick, drain the inbox, redraw.

    The drain runs here, on the event-loop thread, so every session mutation
    happens in one place and in arrival order.
    """

    def __init__(
        self,
        controller: PlaybackController,
        interval: float = TICK_INTERVAL,
        on_frame: Optional[Callable[[], None]] = None,
        now: Callable[[], float] = time.monotonic,
    ):
        self.controller = controller
        self.interval = interval
        self.on_frame = on_frame
        self._now = now
        self.ticks = 0

    def step(self):
        self.controller.post(Tick(self._now()))
        self.controller.drain()
        self.ticks += 1
        if self.on_frame is not None:
            self.on_frame()

    async def run(self):
        logger.debug("Clock started (%.3fs)", self.interval)
        while self.controller.running:
            await asyncio.sleep(self.interval)
            self.step()
        logger.debug("Clock stopped after %d ticks", self.ticks)
