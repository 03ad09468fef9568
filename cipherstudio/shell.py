from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from cipherstudio.session import FilesChanged, ProjectSession
from cipherstudio.storage.remote import RemoteStoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    level: Literal["info", "error"]
    message: str


@dataclass(frozen=True)
class SandboxConfig:
    files: dict[str, str]
    active_file: str
    theme: str
    template: str = "react"
    entry: str = "/index.js"

    def to_dict(self) -> dict[str, Any]:
        return {
            "template": self.template,
            "files": dict(self.files),
            "activeFile": self.active_file,
            "customSetup": {"entry": self.entry},
            "theme": self.theme,
        }


class PlaygroundShell:
    """Connects a ProjectSession to the sandbox widget and the navbar actions."""

    def __init__(self, session: ProjectSession) -> None:
        self._session = session

    @property
    def session(self) -> ProjectSession:
        return self._session

    def sandbox_config(self) -> SandboxConfig:
        p = self._session.project
        return SandboxConfig(files=p.files, active_file=p.active, theme=self._session.theme)

    def on_sandbox_change(self, new_files: Mapping[str, str]) -> None:
        self._session.apply_file_change(FilesChanged(files=dict(new_files)))

    def commit_rename(self, text: str) -> Notice | None:
        if self._session.rename(text):
            return None
        return Notice(level="error", message="Project name cannot be empty.")

    def toggle_theme(self) -> str:
        return self._session.toggle_theme()

    async def handle_save(self) -> Notice:
        name = self._session.project.name
        try:
            result = await self._session.save()
        except RemoteStoreError:
            logger.exception("Failed to save project to remote store")
            return Notice(level="error", message="Failed to save project to the database.")
        return Notice(level="info", message=f"Project saved: {result.project_id} ({name})")

    async def handle_load(self) -> Notice:
        project_id = self._session.project.project_id
        try:
            loaded = await self._session.load()
        except (RemoteStoreError, ValueError):
            logger.exception("Failed to load project %s from remote store", project_id)
            return Notice(level="error", message="Error loading project.")
        if loaded is None:
            return Notice(level="error", message="No project found with this ID.")
        return Notice(level="info", message=f"Project loaded: {project_id}")

    def status(self) -> dict[str, Any]:
        p = self._session.project
        return {
            "projectId": p.project_id,
            "projectName": p.name,
            "idLabel": f"ID: {p.project_id[-8:]}",
            "activeFile": p.active,
            "saving": self._session.is_saving,
            "dirty": self._session.is_dirty,
            "theme": self._session.theme,
        }
