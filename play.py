"""Stelle — terminal music player with synced lyrics. Entry point."""
import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import httpx
from rich import print as rprint
from rich.live import Live

from stelle.clock import TickClock
from stelle.config import APP_VERSION, AUDIO_EXTENSIONS, LOG_LEVEL, LRCLIB_TIMEOUT, MUSIC_DIR
from stelle.controller import Command, LibraryLoaded, LyricsLoaded, PlaybackController
from stelle.errors import format_error
from stelle.input import read_commands
from stelle.logs import setup_logging
from stelle.lrclib import load_lyrics
from stelle.lyrics import Lyrics
from stelle.media import load_library
from stelle.player import Player
from stelle.preflight import run_preflight
from stelle.ui import console, print_header, render

logger = logging.getLogger("stelle.app")

player = Player()


async def fetch_lyrics(controller: PlaybackController, track, music_dir: Path, client: httpx.AsyncClient):
    """Fetch one track's lyrics and post them back. A crash still clears the loading flag."""
    try:
        lyr = await load_lyrics(track, music_dir, client=client)
    except Exception:
        logger.exception("Lyric fetch crashed for %s", track.path)
        lyr = Lyrics(loaded=True)
    controller.post(LyricsLoaded(track.path, lyr))


async def scan_library(controller: PlaybackController, music_dir: Path, fatal: list[str]):
    loop = asyncio.get_running_loop()
    try:
        tracks = await loop.run_in_executor(None, load_library, music_dir)
    except OSError as e:
        msg = format_error("library_scan", str(music_dir), None, str(e))
        fatal.append(f"{msg}\n{e}")
        controller.post(Command("quit"))
        return
    if not tracks:
        formats = ", ".join(sorted(AUDIO_EXTENSIONS))
        fatal.append(f"No music files found in {music_dir}\nSupported formats: {formats}")
        controller.post(Command("quit"))
        return
    controller.post(LibraryLoaded(tuple(tracks)))


async def main(music_dir: Path) -> int:
    print_header()

    ok = await run_preflight(music_dir)
    if not ok:
        return 1

    loop = asyncio.get_running_loop()
    controller = PlaybackController(music_dir, player=player)
    tasks: set[asyncio.Task] = set()
    fatal: list[str] = []

    def _spawn(coro) -> asyncio.Task:
        task = loop.create_task(coro)
        tasks.add(task)
        task.add_done_callback(tasks.discard)
        return task

    async with httpx.AsyncClient(timeout=LRCLIB_TIMEOUT) as client:
        controller.schedule_lyrics = lambda track: _spawn(fetch_lyrics(controller, track, music_dir, client))

        with Live(render(controller), console=console, screen=True, auto_refresh=False) as live:
            clock = TickClock(
                controller,
                on_frame=lambda: live.update(render(controller), refresh=True),
            )
            _spawn(scan_library(controller, music_dir, fatal))
            _spawn(read_commands(controller))
            try:
                await clock.run()
            finally:
                controller.shutdown()
                for task in list(tasks):
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)

    if fatal:
        for msg in fatal:
            console.print(f"\n  [red]{msg}[/red]")
        console.print("")
        return 1

    console.print("\n  [bold cyan]♪[/bold cyan]  See you next time.\n")
    return 0


def cli(argv: Optional[list[str]] = None):
    parser = argparse.ArgumentParser(
        prog="stelle",
        description="Terminal music player with synced lyrics.",
    )
    parser.add_argument(
        "--sd", "--songs-dir", dest="music_dir", type=Path, default=MUSIC_DIR,
        help=f"folder to scan for music (default: {MUSIC_DIR})",
    )
    parser.add_argument(
        "--use-custom-ffmpeg", metavar="DIR", type=Path,
        help="use the ffplay/ffprobe found in DIR instead of the ones on PATH",
    )
    parser.add_argument(
        "--log-level", default=LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    args = parser.parse_args(argv)

    if args.use_custom_ffmpeg:
        custom = args.use_custom_ffmpeg.expanduser().resolve()
        os.environ["PATH"] = f"{custom}{os.pathsep}{os.environ.get('PATH', '')}"

    setup_logging(args.log_level)
    logger.info("Starting Stelle v%s", APP_VERSION)

    try:
        sys.exit(asyncio.run(main(args.music_dir.expanduser())))
    except KeyboardInterrupt:
        player.stop()
        rprint("\n\n  [bold]Stopped.[/bold] Goodbye.\n")
        sys.exit(0)


if __name__ == "__main__":
    cli()
