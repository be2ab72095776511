import json
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

# User config: loaded from ~/.tracelens/config.json (primary)
# or project-root config.json (fallback).
CONFIG_PATH = Path.home() / ".tracelens" / "config.json"
_LOCAL_CONFIG_PATH = Path(__file__).resolve().parent / "config.json"
_user_config: dict = {}


def _load_config() -> dict:
    # Project-local config.json as base, user home config overlaid on top
    merged: dict = {}
    for path in (_LOCAL_CONFIG_PATH, CONFIG_PATH):
        if path is not None and path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    merged.update(json.load(f))
            except (json.JSONDecodeError, OSError):
                pass
    return merged


def get(key: str, default=None):
    """Get a config value by dot-separated key. E.g. get('colors.saturation', 0.65)"""
    keys = key.split(".")
    val = _user_config
    for k in keys:
        if isinstance(val, dict):
            val = val.get(k)
        else:
            return default
    return val if val is not None else default


_user_config = _load_config()


# ---- Data directory -----------------------------------------------------------
# Base directory for logs. Sessions themselves are never written to disk.
# Priority: TRACELENS_DIR env var > "data_dir" config key > ~/.tracelens

_data_dir: Optional[Path] = None


def get_data_dir() -> Path:
    """Return the resolved base data directory.

    Resolution order:
    1. ``TRACELENS_DIR`` environment variable (highest)
    2. ``"data_dir"`` key in config.json
    3. ``~/.tracelens`` (default)
    """
    global _data_dir
    if _data_dir is not None:
        return _data_dir
    env_val = os.environ.get("TRACELENS_DIR")
    if env_val:
        _data_dir = Path(env_val).expanduser().resolve()
    else:
        configured = get("data_dir")
        if configured:
            _data_dir = Path(configured).expanduser().resolve()
        else:
            _data_dir = Path.home() / ".tracelens"
    return _data_dir


def _reset_data_dir() -> None:
    """Reset the cached data directory (for testing only)."""
    global _data_dir
    _data_dir = None


def get_cors_origins() -> list[str]:
    """CORS origins: ``CORS_ORIGINS`` env (comma-separated) > config > dev defaults."""
    env_val = os.getenv("CORS_ORIGINS", "").strip()
    if env_val:
        return [o.strip() for o in env_val.split(",") if o.strip()]
    return get("cors_origins", ["http://localhost:3000", "http://127.0.0.1:3000"])


# ---- Session store -------------------------------------------------------------
MAX_SESSIONS = get("max_sessions", 0)  # 0 = unbounded

# ---- Live stream ---------------------------------------------------------------
STREAM_KEEPALIVE_SECONDS = get("stream_keepalive_seconds", 15)
STREAM_QUEUE_SIZE = get("stream_queue_size", 1000)

# ---- Graph colors ----------------------------------------------------------------
COLOR_SATURATION = get("colors.saturation", 0.65)
COLOR_LIGHTNESS = get("colors.lightness", 0.55)
COLOR_MAX_ATTEMPTS = get("colors.max_attempts", 1000)


def reload_config() -> None:
    """Re-read config from disk and reassign all module-level constants.

    Call this after writing config.json to make new values take effect
    without restarting the server. The running store keeps its capacity;
    only stores created afterwards pick up a new ``max_sessions``.
    """
    global _user_config
    global MAX_SESSIONS, STREAM_KEEPALIVE_SECONDS, STREAM_QUEUE_SIZE
    global COLOR_SATURATION, COLOR_LIGHTNESS, COLOR_MAX_ATTEMPTS

    load_dotenv(override=True)

    _user_config = _load_config()
    _reset_data_dir()

    MAX_SESSIONS = get("max_sessions", 0)
    STREAM_KEEPALIVE_SECONDS = get("stream_keepalive_seconds", 15)
    STREAM_QUEUE_SIZE = get("stream_queue_size", 1000)
    COLOR_SATURATION = get("colors.saturation", 0.65)
    COLOR_LIGHTNESS = get("colors.lightness", 0.55)
    COLOR_MAX_ATTEMPTS = get("colors.max_attempts", 1000)
