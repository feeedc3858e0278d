"""Startup preflight check — decoder binaries, python deps, music folder, terminal."""
import shutil
import subprocess
import sys
from pathlib import Path

from rich.console import Console

from .config import APP_VERSION, AUDIO_EXTENSIONS, DECODER_BIN, PROBE_BIN
from .errors import format_error

console = Console()

_INSTALL_HINT = (
    "Install FFmpeg (it ships ffplay and ffprobe):\n"
    "  macOS:   brew install ffmpeg\n"
    "  Debian:  sudo apt install ffmpeg\n"
    "  Windows: winget install ffmpeg\n"
    "Or point at your own build with --use-custom-ffmpeg <dir>"
)


async def run_preflight(music_dir: Path, checks=None) -> bool:
    """
    Run all startup checks. Print results. Return True only if ALL pass.
    """
    console.print(f"\n  [bold]♪  Stelle v{APP_VERSION}[/bold] — preflight check\n")

    if checks is None:
        checks = [
            ("Python deps", _check_python_deps),
            ("ffplay", lambda: _check_binary(DECODER_BIN)),
            ("ffprobe", lambda: _check_binary(PROBE_BIN)),
            ("Music folder", lambda: _check_music_dir(music_dir)),
            ("Terminal", _check_terminal),
        ]

    results = []
    for i, (label, fn) in enumerate(checks, 1):
        ok, msg, fix = await fn()
        results.append((ok, label, msg, fix))
        icon = "[green]✓[/green]" if ok else "[red]✗[/red]"
        dots = "." * max(30 - len(label), 3)
        status = f"[green]{msg}[/green]" if ok else f"[red]{msg}[/red]"
        console.print(f"  [{i}/{len(checks)}] {label} {dots} {icon} {status}")

    failures = [(label, msg, fix) for ok, label, msg, fix in results if not ok]
    if failures:
        console.print("")
        for label, msg, fix in failures:
            format_error("preflight", label, None, msg)
            if not fix:
                continue
            console.print(f"  [yellow]Fix for {label}:[/yellow]")
            for line in fix.strip().splitlines():
                console.print(f"    {line}")
            console.print("")
        console.print("  Then re-run: [bold]stelle[/bold]\n")
        return False

    console.print("")
    return True


async def _check_python_deps() -> tuple[bool, str, str]:
    missing = []
    versions = []
    try:
        import httpx as hx
        versions.append(f"httpx {hx.__version__}")
    except ImportError:
        missing.append("httpx")

    try:
        import rich
        v = getattr(rich, "__version__", "ok")
        versions.append(f"rich {v}")
    except ImportError:
        missing.append("rich")

    try:
        import dotenv  # noqa: F401
        versions.append("python-dotenv")
    except ImportError:
        missing.append("python-dotenv")

    if missing:
        return False, f"missing: {', '.join(missing)}", "Run: pip install -e ."
    return True, ", ".join(versions), ""


async def _check_binary(name: str) -> tuple[bool, str, str]:
    path = shutil.which(name)
    if path is None:
        return False, "not found on PATH", _INSTALL_HINT
    try:
        out = subprocess.run([path, "-version"], capture_output=True, text=True, timeout=5)
        first = (out.stdout or "").splitlines()[:1]
        version = first[0].split()[2] if first and len(first[0].split()) > 2 else "ok"
    except (OSError, subprocess.SubprocessError):
        return False, f"found at {path} but won't run", _INSTALL_HINT
    return True, f"{version} ({path})", ""


async def _check_music_dir(music_dir: Path) -> tuple[bool, str, str]:
    music_dir = Path(music_dir).expanduser()
    if not music_dir.is_dir():
        return False, f"{music_dir} not found", (
            "Pass a folder with --sd <dir>, or set MUSIC_DIR in .env\n"
            f"Supported formats: {', '.join(sorted(AUDIO_EXTENSIONS))}"
        )
    return True, str(music_dir), ""


async def _check_terminal() -> tuple[bool, str, str]:
    if not sys.stdin.isatty():
        return False, "stdin is not a terminal", "Run stelle from an interactive terminal."
    return True, "interactive", ""
