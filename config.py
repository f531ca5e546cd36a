from __future__ import annotations

"""Process-wide settings.

All values come from environment variables. Nothing here is mutated at runtime;
the live database path is held by state.py.
"""

import os


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.environ.get(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got: {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got: {raw!r}") from exc


# SQLite SSOT path (required at server startup; tests pass their own path)
DB_PATH_ENV = "VIBE_DB_PATH"

GEMINI_API_KEY = (os.environ.get("GEMINI_API_KEY") or "").strip()
TEXT_MODEL_NAME = (os.environ.get("VIBE_TEXT_MODEL") or "gemini-2.0-flash").strip()
IMAGE_MODEL_NAME = (os.environ.get("VIBE_IMAGE_MODEL") or "gemini-2.0-flash-exp-image-generation").strip()
GEMINI_HTTP_TIMEOUT_S = _env_float("GEMINI_HTTP_TIMEOUT_S", 120.0)

IMAGE_JOB_MAX_ATTEMPTS = _env_int("IMAGE_JOB_MAX_ATTEMPTS", 3)
IMAGE_JOB_RETRY_BASE_DELAY_S = _env_float("IMAGE_JOB_RETRY_BASE_DELAY_S", 2.0)
# A running job untouched for this long is presumed orphaned and may be reclaimed
IMAGE_JOB_LEASE_S = _env_float("IMAGE_JOB_LEASE_S", 600.0)

# Dev-only routes (bot opponent, skip-to-play)
DEV_MODE = _env_bool("VIBE_DEV_MODE", False)

LOG_LEVEL = (os.environ.get("VIBE_LOG_LEVEL") or "INFO").strip().upper()

# SQLite busy timeout (seconds) for writers waiting on BEGIN IMMEDIATE
DB_BUSY_TIMEOUT_S = _env_float("VIBE_DB_BUSY_TIMEOUT_S", 10.0)

STARTING_LIFE = 100
