from __future__ import annotations

import logging
import urllib.parse
from dataclasses import dataclass, field
from typing import Any

import requests

from cipherstudio import config
from cipherstudio.projects.paths import normalize_files

logger = logging.getLogger(__name__)


class RemoteStoreError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


@dataclass(frozen=True)
class RemoteProject:
    project_id: str | None
    project_name: str | None
    files: dict[str, str] = field(default_factory=dict)
    updated_at: str | None = None


class RemoteProjectStore:
    def __init__(
        self,
        *,
        base_url: str,
        session: requests.Session | None = None,
        timeout_s: float = 30,
    ) -> None:
        self._base = base_url.rstrip("/")
        self._http = session or requests.Session()
        self._timeout_s = timeout_s

    @classmethod
    def from_env(cls, *, session: requests.Session | None = None) -> RemoteProjectStore:
        return cls(
            base_url=config.api_base_url(),
            session=session,
            timeout_s=config.api_timeout_s(),
        )

    def _url(self, path: str) -> str:
        return f"{self._base}/api{path}"

    def _request(self, method: str, path: str, *, body: dict[str, Any] | None = None) -> Any:
        try:
            res = self._http.request(
                method,
                self._url(path),
                json=body,
                timeout=self._timeout_s,
            )
        except requests.RequestException as exc:
            raise RemoteStoreError(f"Project API unreachable for {method} {path}: {exc}") from exc
        if res.status_code == 404:
            return None
        if res.status_code >= 400:
            payload: Any
            try:
                payload = res.json()
            except Exception:
                payload = {"raw": res.text}
            raise RemoteStoreError(
                f"Project API error {res.status_code} for {method} {path}",
                status_code=res.status_code,
                payload=payload,
            )
        try:
            return res.json()
        except Exception as exc:
            raise RemoteStoreError(
                f"Project API returned invalid JSON for {method} {path}",
                status_code=res.status_code,
                payload={"raw": res.text},
            ) from exc

    def save_project(
        self, project_id: str, project_name: str, files: dict[str, str]
    ) -> RemoteProject:
        """Upsert the snapshot stored under `project_id`."""
        logger.info("Saving project %s to remote store", project_id)
        data = self._request(
            "POST",
            "/projects",
            body={"projectId": project_id, "projectName": project_name, "files": dict(files)},
        )
        if data is None:
            raise RemoteStoreError("Project API save endpoint not found", status_code=404)
        record = data.get("project") if isinstance(data, dict) else None
        return self._parse_saved(record)

    def load_project(self, project_id: str) -> RemoteProject | None:
        """Fetch the snapshot stored under `project_id`, or None if there is none."""
        encoded = urllib.parse.quote(project_id, safe="")
        data = self._request("GET", f"/projects/{encoded}")
        if data is None:
            logger.info("Project %s not found in remote store", project_id)
            return None
        return self._parse_project(data)

    @staticmethod
    def _parse_saved(data: Any) -> RemoteProject:
        # A save confirmation only has to name the stored id; the rest is echo.
        if not isinstance(data, dict):
            raise RemoteStoreError("Unexpected project API response", payload=data)
        pid = data.get("projectId")
        if not pid:
            raise RemoteStoreError("Project API save response has no projectId", payload=data)
        files = data.get("files")
        name = data.get("projectName")
        updated = data.get("updatedAt")
        return RemoteProject(
            project_id=str(pid),
            project_name=str(name) if isinstance(name, str) else None,
            files=dict(files) if isinstance(files, dict) else {},
            updated_at=str(updated) if updated else None,
        )

    @staticmethod
    def _parse_project(data: Any) -> RemoteProject:
        if not isinstance(data, dict):
            raise RemoteStoreError("Unexpected project API response", payload=data)
        try:
            files = normalize_files(data.get("files") or {})
        except ValueError as exc:
            raise RemoteStoreError(
                "Project API returned unusable files",
                payload={"data": data, "error": str(exc)},
            ) from exc
        pid = data.get("projectId")
        name = data.get("projectName")
        updated = data.get("updatedAt")
        return RemoteProject(
            project_id=str(pid) if pid else None,
            project_name=str(name) if isinstance(name, str) else None,
            files=files,
            updated_at=str(updated) if updated else None,
        )
