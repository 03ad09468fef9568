from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Literal, Protocol

from cipherstudio.autosave import AutosaveCoordinator
from cipherstudio.projects.paths import normalize_files
from cipherstudio.projects.types import Project, display_name, first_key, resolve_active
from cipherstudio.storage.local import LocalStore
from cipherstudio.storage.remote import RemoteProject

logger = logging.getLogger(__name__)

Theme = Literal["dark", "light"]


class RemoteStore(Protocol):
    def save_project(
        self, project_id: str, project_name: str, files: dict[str, str]
    ) -> RemoteProject: ...

    def load_project(self, project_id: str) -> RemoteProject | None: ...


@dataclass(frozen=True)
class FilesChanged:
    """Inbound message from the sandbox widget: the full new file mapping."""

    files: Mapping[str, str]


@dataclass(frozen=True)
class SaveResult:
    project_id: str
    project_name: str


def _own_copy(project: Project) -> Project:
    files = normalize_files(project.files)
    return replace(project, files=files, active=resolve_active(files, project.active))


class ProjectSession:
    """In-memory source of truth for the open project.

    Local persistence happens through the autosave coordinator on every
    change; remote persistence only on explicit `save()`/`load()`.

    `save()` and `load()` are not serialized against each other. A load that
    completes while a save is in flight replaces the in-memory files even if
    the save later succeeds with the older content.
    """

    def __init__(
        self,
        *,
        local_store: LocalStore,
        remote_store: RemoteStore,
        autosave: AutosaveCoordinator | None = None,
        project: Project | None = None,
    ) -> None:
        self._local = local_store
        self._remote = remote_store
        self._autosave = autosave or AutosaveCoordinator(local_store)
        self._project = _own_copy(project) if project is not None else Project.default()
        self._theme: Theme = "dark"

    @property
    def project(self) -> Project:
        return replace(self._project, files=dict(self._project.files))

    @property
    def theme(self) -> Theme:
        return self._theme

    @property
    def is_saving(self) -> bool:
        return self._autosave.is_saving

    @property
    def is_dirty(self) -> bool:
        return self._autosave.is_dirty

    def initialize(self) -> bool:
        """Hydrate from the local store; returns True if a snapshot was adopted.

        A slot holding data that cannot be adopted is left alone until the
        next real change, rather than being overwritten by the default project.
        """
        hydrated = False
        try:
            raw = self._local.read()
            if raw is not None:
                try:
                    project = Project.from_snapshot(raw, fallback_id=self._project.project_id)
                except ValueError:
                    self._autosave.prime(self._project)
                    raise
                self._project = project
                self._autosave.prime(project)
                hydrated = True
                logger.info("Project %s restored from local store", project.project_id)
        except Exception:
            logger.warning("Error restoring project from local store", exc_info=True)
        try:
            self._autosave.observe(self._project)
        except Exception:
            logger.warning("Failed to schedule autosave after restore", exc_info=True)
        return hydrated

    def apply_file_change(self, change: FilesChanged | Mapping[str, str]) -> None:
        files = change.files if isinstance(change, FilesChanged) else change
        normalized = normalize_files(files)
        self._commit(
            replace(
                self._project,
                files=normalized,
                active=resolve_active(normalized, self._project.active),
            )
        )

    def select_file(self, path: str) -> None:
        if path not in self._project.files:
            raise KeyError(path)
        self._commit(replace(self._project, active=path))

    def rename(self, new_name: str) -> bool:
        name = (new_name or "").strip()
        if not name:
            return False
        self._commit(replace(self._project, name=name))
        return True

    def toggle_theme(self) -> Theme:
        self._theme = "light" if self._theme == "dark" else "dark"
        return self._theme

    async def save(self) -> SaveResult:
        """Push the current project to the remote store.

        Errors from the store propagate; the in-memory project is never
        modified here, whatever id the remote echoes back.
        """
        p = self._project
        record = await asyncio.to_thread(
            self._remote.save_project, p.project_id, p.name, dict(p.files)
        )
        return SaveResult(
            project_id=record.project_id or p.project_id,
            project_name=record.project_name or p.name,
        )

    async def load(self, project_id: str | None = None) -> Project | None:
        """Replace files and name with the remote snapshot.

        Defaults to the session's own id. The session id is kept even when the
        snapshot was fetched under another id. Returns None if not found.
        """
        pid = project_id or self._project.project_id
        record = await asyncio.to_thread(self._remote.load_project, pid)
        if record is None:
            return None
        files = normalize_files(record.files)
        self._commit(
            replace(
                self._project,
                name=display_name(record.project_name),
                files=files,
                active=first_key(files),
            )
        )
        return self.project

    def flush(self) -> bool:
        return self._autosave.flush()

    def close(self) -> None:
        self._autosave.close()

    def _commit(self, project: Project) -> None:
        # Only adopt the new state once its autosave is scheduled.
        self._autosave.observe(project)
        self._project = project
