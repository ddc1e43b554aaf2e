"""Configuration constants and helpers for Emoquiz."""

import os
from pathlib import Path

DEFAULT_PORT: int = 7870

EMOQUIZ_DIR: Path = Path.home() / ".emoquiz"
PID_FILE: Path = EMOQUIZ_DIR / "server.pid"


def _env_int(name: str, default: int) -> int:
    """Return env var *name* as an int, or *default* if unset or malformed."""
    try:
        return int(os.environ[name])
    except (KeyError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    """Return env var *name* as a float, or *default* if unset or malformed."""
    try:
        return float(os.environ[name])
    except (KeyError, ValueError):
        return default


def get_port() -> int:
    """Return the server port from EMOQUIZ_PORT env var, or DEFAULT_PORT."""
    return _env_int("EMOQUIZ_PORT", DEFAULT_PORT)


# --- Game phase timing ---

MIN_PHASE_SECONDS: int = 3
MAX_PHASE_SECONDS: int = 15

GUESS_SECONDS: int = _env_int("EMOQUIZ_GUESS_SECONDS", 3)
VOICE_SECONDS: int = _env_int("EMOQUIZ_VOICE_SECONDS", 10)

# Pause between a graded question and the next clue.
NEXT_QUESTION_DELAY: float = _env_float("EMOQUIZ_NEXT_QUESTION_DELAY", 2.0)


# --- Drain phase (after the listening window expires) ---

DRAIN_POLL_INTERVAL: float = 0.2
DRAIN_ACTIVITY_WINDOW: float = 3.0  # Activity this recent at expiry triggers a drain.
DRAIN_QUIET_PERIOD: float = 1.0  # Silence required before the drain may finish.
DRAIN_MAX_DURATION: float = 3.0  # Hard ceiling on draining.
DRAIN_SETTLE_DELAY: float = 0.2
IDLE_SETTLE_DELAY: float = 0.5


# --- Answer matching ---

SIMILARITY_THRESHOLD: float = 0.7
WORD_MATCH_RATIO: float = 0.6


# --- Speech source selection ---

SPEECH_SOURCE: str = os.environ.get("EMOQUIZ_SPEECH_SOURCE", "browser")

STREAM_URL: str = os.environ.get("EMOQUIZ_STREAM_URL", "http://localhost:8765")
STREAM_PATH: str = os.environ.get("EMOQUIZ_STREAM_PATH", "/v1/transcripts/stream")
STREAM_API_KEY: str = os.environ.get("EMOQUIZ_STREAM_API_KEY", "")
STREAM_TIMEOUT: float = _env_float("EMOQUIZ_STREAM_TIMEOUT", 10.0)
