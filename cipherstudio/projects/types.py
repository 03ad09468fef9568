from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from cipherstudio.identity import generate_id
from cipherstudio.projects.paths import normalize_file_path

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Untitled"

DEFAULT_FILES: dict[str, str] = {
    "/App.js": """function App() {
  return <h1>Hello World!</h1>;
}
export default App;""",
    "/index.js": """import ReactDOM from 'react-dom/client';
import App from './App';
const root = ReactDOM.createRoot(document.getElementById('root'));
root.render(<App />);""",
}

DEFAULT_ACTIVE = "/App.js"


def _salvage_files(content: Mapping[Any, Any]) -> dict[str, str]:
    """Keep the usable entries of a stored file mapping, dropping the rest."""
    out: dict[str, str] = {}
    for path, text in content.items():
        if not isinstance(path, str) or not isinstance(text, str):
            logger.warning("Dropping stored file %r: content is not text", path)
            continue
        try:
            p = normalize_file_path(path)
        except ValueError:
            logger.warning("Dropping stored file with invalid path %r", path)
            continue
        out.setdefault(p, text)
    if not out:
        raise ValueError("snapshot has no usable files")
    return out


def first_key(files: Mapping[str, str]) -> str:
    for k in files:
        return k
    raise ValueError("a project needs at least one file")


def resolve_active(files: Mapping[str, str], active: str | None) -> str:
    """Keep `active` if it names a file, else fall back to the first path."""
    if isinstance(active, str) and active in files:
        return active
    return first_key(files)


def display_name(name: Any) -> str:
    if not isinstance(name, str):
        return DEFAULT_NAME
    return name.strip() or DEFAULT_NAME


@dataclass(frozen=True)
class Project:
    project_id: str
    name: str
    files: dict[str, str] = field(default_factory=dict)
    active: str = ""

    @classmethod
    def default(cls, project_id: str | None = None) -> Project:
        return cls(
            project_id=project_id or generate_id(),
            name=DEFAULT_NAME,
            files=dict(DEFAULT_FILES),
            active=DEFAULT_ACTIVE,
        )

    def fingerprint(self) -> str:
        """Serialized identity of the persisted fields, timestamp excluded."""
        return json.dumps(
            {
                "projectId": self.project_id,
                "projectName": self.name,
                "files": {"active": self.active, "content": self.files},
            },
            ensure_ascii=False,
        )

    def to_snapshot(self, *, timestamp: str) -> dict[str, Any]:
        return {
            "projectId": self.project_id,
            "projectName": self.name,
            "files": {"active": self.active, "content": dict(self.files)},
            "timestamp": timestamp,
        }

    @classmethod
    def from_snapshot(cls, d: Any, *, fallback_id: str) -> Project:
        """Parse a locally stored snapshot.

        Raises ValueError when there is no usable `files.content` mapping.
        """
        if not isinstance(d, dict):
            raise ValueError("snapshot is not an object")
        files = d.get("files")
        if not isinstance(files, dict):
            raise ValueError("snapshot has no files")
        content = files.get("content")
        if not isinstance(content, dict) or not content:
            raise ValueError("snapshot has no file content")
        normalized = _salvage_files(content)
        pid = d.get("projectId")
        return cls(
            project_id=pid.strip() if isinstance(pid, str) and pid.strip() else fallback_id,
            name=display_name(d.get("projectName")),
            files=normalized,
            active=resolve_active(normalized, files.get("active")),
        )
