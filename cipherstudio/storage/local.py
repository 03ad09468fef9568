from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from cipherstudio import config

logger = logging.getLogger(__name__)


class LocalStore(Protocol):
    """Single-slot durable store for the current project snapshot."""

    def read(self) -> dict[str, Any] | None: ...

    def write(self, snapshot: dict[str, Any]) -> None: ...


def _decode(raw: str, *, where: str) -> dict[str, Any] | None:
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring corrupt project snapshot in %s", where)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring non-object project snapshot in %s", where)
        return None
    return data


class MemoryLocalStore:
    """Keeps the serialized snapshot in memory; used for tests and embedding."""

    def __init__(self, raw: str | None = None) -> None:
        self._raw = raw
        self.writes = 0

    @property
    def raw(self) -> str | None:
        return self._raw

    def read(self) -> dict[str, Any] | None:
        if self._raw is None:
            return None
        return _decode(self._raw, where="memory")

    def write(self, snapshot: dict[str, Any]) -> None:
        # Serialize first so a failure leaves the previous slot intact.
        raw = json.dumps(snapshot, ensure_ascii=False)
        self._raw = raw
        self.writes += 1


class FileLocalStore:
    """Stores the snapshot as `<directory>/<key>.json`.

    Writes go to a temp file in the same directory and are moved into place
    with os.replace, so readers see either the old or the new snapshot.
    """

    def __init__(self, directory: str | Path, *, key: str = "cipherstudio_project") -> None:
        self._dir = Path(directory)
        self._key = key

    @classmethod
    def from_env(cls) -> FileLocalStore:
        return cls(config.state_dir(), key=config.storage_key())

    @property
    def path(self) -> Path:
        return self._dir / f"{self._key}.json"

    def read(self) -> dict[str, Any] | None:
        p = self.path
        try:
            raw = p.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError):
            logger.warning("Failed to read project snapshot %s", p, exc_info=True)
            return None
        return _decode(raw, where=str(p))

    def write(self, snapshot: dict[str, Any]) -> None:
        raw = json.dumps(snapshot, ensure_ascii=False)
        self._dir.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{self._key}.", suffix=".tmp", dir=self._dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(raw)
            os.replace(tmp, self.path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp)
            raise
