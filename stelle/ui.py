"""UI display — rich renderables for the Live screen."""
import time
from typing import Optional

from rich.console import Console, Group, RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import APP_VERSION
from .controller import PlaybackController
from .media import Track
from .player import PlaybackState

console = Console()

BAR_LEN = 40

_STATE_LABELS = {
    PlaybackState.PLAYING: "[green]▶ Playing[/green]",
    PlaybackState.PAUSED: "[yellow]❚❚ Paused[/yellow]",
    PlaybackState.STOPPED: "[dim]■ Stopped[/dim]",
}

CONTROLS = (
    "p: play selected  space: pause/resume\n"
    "s: stop           n/→: next  b/←: prev\n"
    "t: forward 5s     r: rewind 5s\n"
    "↑/↓: select       +/-: volume\n"
    "h: shuffle        q: quit"
)


def fmt_time(seconds: float) -> str:
    m, s = divmod(max(0, int(seconds)), 60)
    return f"{m:02d}:{s:02d}"


def progress_bar(elapsed: float, duration: float, width: int = BAR_LEN) -> str:
    """Filled/empty bar markup, clamped to full once elapsed passes duration."""
    ratio = min(1.0, elapsed / duration) if duration > 0 else 0.0
    filled = int(ratio * width)
    return f"[green]{'━' * filled}[/green][dim]{'·' * (width - filled)}[/dim]"


def print_header():
    console.print(
        f"\n  [bold cyan]♪  Stelle[/bold cyan]"
        f"  [dim]v{APP_VERSION}[/dim]"
    )


def render_loading(now: Optional[float] = None) -> RenderableType:
    dots = int((time.monotonic() if now is None else now) / 0.3) % 4
    text = Text.from_markup(
        f"\n\n[bold]♪ Music Player[/bold]\n\n"
        f"Loading songs{'.' * dots}{' ' * (3 - dots)}\n\n"
        f"[dim]Please wait...[/dim]",
        justify="center",
    )
    return Panel(text, border_style="magenta", expand=True)


def _now_playing(ctrl: PlaybackController) -> list[str]:
    track = ctrl.current_track
    s = ctrl.session
    if track is None:
        return [
            "[bold]♪ Music Player[/bold]",
            "",
            "No song playing",
            "Select a song and press 'p' to play",
            "or press 'space' to start",
        ]

    mode = "🔀 Shuffle ON" if s.shuffle else "▶ Sequential"
    return [
        "[bold]♪ Now Playing[/bold]",
        "",
        f"Title:  {escape(track.title)}",
        f"Artist: {escape(track.artist)}",
        f"Album:  {escape(track.album)}",
        "",
        f"Status: {_STATE_LABELS[s.state]}",
        f"Mode:   {mode}",
        f"Volume: {s.volume}%",
        "",
        progress_bar(s.elapsed, track.duration),
        f"{fmt_time(s.elapsed)} / {fmt_time(track.duration)}",
    ]


def _lyrics_section(ctrl: PlaybackController) -> list[str]:
    lines = ["[bold]Lyrics[/bold]", ""]
    if ctrl.current_track is None:
        return lines + ["[dim]No song playing[/dim]"]
    if ctrl.lyrics_loading:
        return lines + ["[dim]Loading lyrics...[/dim]"]

    lyr = ctrl.current_lyrics
    if lyr is None or not lyr.loaded:
        return lines + ["[dim]Lyrics not loaded[/dim]"]
    if not lyr.lines:
        return lines + ["[dim]No lyrics available for this song.[/dim]"]

    current, nxt = ctrl.lyric_lines()
    if current:
        lines.append(f"[bold]{escape(current)}[/bold]")
    if nxt:
        lines.append(f"[dim]{escape(nxt)}[/dim]")
    return lines


def render_left(ctrl: PlaybackController) -> RenderableType:
    lines = _now_playing(ctrl)
    if ctrl.status_message:
        lines += ["", f"[red]{escape(ctrl.status_message)}[/red]"]
    lines += ["", f"[dim]Controls:\n{CONTROLS}[/dim]", ""]
    lines += _lyrics_section(ctrl)
    return Text.from_markup("\n".join(lines))


def render_playlist(ctrl: PlaybackController, rows: int = 15) -> RenderableType:
    """The track list, windowed so the cursor stays visible."""
    table = Table(show_header=False, box=None, padding=(0, 1), expand=True)
    table.add_column("", width=2)
    table.add_column("Track", no_wrap=True, overflow="ellipsis")

    total = len(ctrl.tracks)
    start = max(0, min(ctrl.selected - rows // 2, total - rows))
    for i in range(start, min(total, start + rows)):
        t = ctrl.tracks[i]
        marker = "♪" if i == ctrl.session.index else ""
        label = f"{escape(t.title)} [dim]· {escape(t.artist)}[/dim]"
        if i == ctrl.selected:
            label = f"[reverse]{label}[/reverse]"
        table.add_row(f"[green]{marker}[/green]", label)

    footer = f"[dim]{ctrl.selected + 1}/{total}[/dim]" if total else "[dim]empty[/dim]"
    return Group(table, Text.from_markup(footer))


def render_audio_info(track: Track) -> RenderableType:
    return Text.from_markup(
        f"[dim]Bitrate:     {track.bitrate}\n"
        f"Codec:       {track.codec}\n"
        f"Sample Rate: {track.sample_rate}[/dim]"
    )


def render(ctrl: PlaybackController, rows: Optional[int] = None) -> RenderableType:
    """Full screen: loading splash, or now-playing + lyrics beside the playlist."""
    if ctrl.loading:
        return render_loading()

    if rows is None:
        rows = max(5, console.size.height - 10)

    right: list[RenderableType] = [render_playlist(ctrl, rows)]
    track = ctrl.current_track
    if track is not None:
        right += [Text(""), render_audio_info(track)]

    grid = Table.grid(expand=True, padding=(0, 2))
    grid.add_column(ratio=2)
    grid.add_column(ratio=1)
    grid.add_row(
        Panel(render_left(ctrl), border_style="dim", padding=(1, 2)),
        Panel(Group(*right), title="[bold]Library[/bold]", border_style="cyan", padding=(1, 1)),
    )
    return grid
