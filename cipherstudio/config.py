from __future__ import annotations

import os
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except Exception:
        return int(default)


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return float(default)
    try:
        return float(raw)
    except Exception:
        return float(default)


def api_base_url() -> str:
    return (
        (os.environ.get("CIPHERSTUDIO_API_BASE_URL") or "http://localhost:5000")
        .strip()
        .rstrip("/")
    )


def api_timeout_s() -> float:
    return max(1.0, _env_float("CIPHERSTUDIO_API_TIMEOUT_S", 30))


def state_dir() -> Path:
    raw = (os.environ.get("CIPHERSTUDIO_STATE_DIR") or "").strip()
    if not raw:
        return Path.home() / ".cipherstudio"
    return Path(raw).expanduser()


def storage_key() -> str:
    return (
        os.environ.get("CIPHERSTUDIO_STORAGE_KEY") or "cipherstudio_project"
    ).strip() or "cipherstudio_project"


def autosave_debounce_s() -> float:
    return max(0, _env_int("CIPHERSTUDIO_AUTOSAVE_DEBOUNCE_MS", 2000)) / 1000.0


def saving_indicator_s() -> float:
    # Only drives the "Saving..." bubble; has no effect on when data is written.
    return max(0, _env_int("CIPHERSTUDIO_SAVING_INDICATOR_MS", 800)) / 1000.0


def api_data_dir() -> Path | None:
    raw = (os.environ.get("CIPHERSTUDIO_API_DATA_DIR") or "").strip()
    return Path(raw).expanduser() if raw else None
