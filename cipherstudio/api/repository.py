from __future__ import annotations

import hashlib
import logging
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from cipherstudio.projects.paths import normalize_files
from cipherstudio.projects.types import display_name
from cipherstudio.storage.local import FileLocalStore

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _slot_key(project_id: str) -> str:
    # Ids are opaque; hash them into a filesystem-safe slot name.
    return "project-" + hashlib.sha256(project_id.encode("utf-8")).hexdigest()[:32]


class ProjectRepository:
    """One snapshot per project id, optionally mirrored to a directory."""

    def __init__(self, data_dir: str | Path | None = None) -> None:
        self._dir = Path(data_dir) if data_dir else None
        self._lock = threading.Lock()
        self._records: dict[str, dict[str, Any]] = {}

    def _slot(self, project_id: str) -> FileLocalStore | None:
        if self._dir is None:
            return None
        return FileLocalStore(self._dir, key=_slot_key(project_id))

    def upsert(self, project_id: str, project_name: str, files: dict[str, str]) -> dict[str, Any]:
        pid = (project_id or "").strip()
        if not pid:
            raise ValueError("missing projectId")
        record = {
            "projectId": pid,
            "projectName": display_name(project_name),
            "files": normalize_files(files),
            "updatedAt": _now_iso(),
        }
        with self._lock:
            slot = self._slot(pid)
            if slot is not None:
                slot.write(record)
            self._records[pid] = record
        logger.info("Stored project %s (%d files)", pid, len(record["files"]))
        return dict(record)

    def get(self, project_id: str) -> dict[str, Any] | None:
        pid = (project_id or "").strip()
        with self._lock:
            record = self._records.get(pid)
            if record is None:
                slot = self._slot(pid)
                loaded = slot.read() if slot is not None else None
                if loaded is not None and loaded.get("projectId") == pid:
                    self._records[pid] = loaded
                    record = loaded
        return dict(record) if record is not None else None
