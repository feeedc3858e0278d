"""Config & Constants"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root (one level up from stelle/)
_ROOT = Path(__file__).parent.parent
load_dotenv(_ROOT / ".env")

# ─── Paths ────────────────────────────────────────────────────────────────────
ROOT_DIR = _ROOT
MUSIC_DIR = Path(os.getenv("MUSIC_DIR", "~/Music")).expanduser()
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", "~/.local/state/stelle")).expanduser()
ERRORS_LOG = OUTPUT_DIR / "errors.log"
APP_LOG = OUTPUT_DIR / "stelle.log"
LYRICS_DIRNAME = os.getenv("LYRICS_DIRNAME", "lyrics")

# ─── External binaries ────────────────────────────────────────────────────────
DECODER_BIN = os.getenv("DECODER_BIN", "ffplay")
PROBE_BIN = os.getenv("PROBE_BIN", "ffprobe")
PROBE_TIMEOUT = float(os.getenv("PROBE_TIMEOUT", "5"))
KILL_TIMEOUT = float(os.getenv("KILL_TIMEOUT", "2"))

# ─── Remote lyrics ────────────────────────────────────────────────────────────
LRCLIB_HOST = os.getenv("LRCLIB_HOST", "https://lrclib.net").rstrip("/")
LRCLIB_TIMEOUT = float(os.getenv("LRCLIB_TIMEOUT", "10"))

# ─── Playback ─────────────────────────────────────────────────────────────────
DEFAULT_VOLUME = max(0, min(100, int(os.getenv("DEFAULT_VOLUME", "100"))))
VOLUME_STEP = int(os.getenv("VOLUME_STEP", "10"))
SEEK_STEP = float(os.getenv("SEEK_STEP", "5"))
SEEK_COOLDOWN = float(os.getenv("SEEK_COOLDOWN", "0.1"))
TICK_INTERVAL = float(os.getenv("TICK_INTERVAL", "0.1"))
# Tick deltas at or above this are treated as clock anomalies (suspend, stalls)
MAX_TICK_DELTA = 1.0

AUDIO_EXTENSIONS = {".mp3", ".m4a", ".flac", ".wav", ".ogg", ".aac", ".opus"}

APP_VERSION = "0.3.0"

# ─── Dev mode / logging ───────────────────────────────────────────────────────
DEV_MODE = os.getenv("DEV_MODE", "0").strip() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
