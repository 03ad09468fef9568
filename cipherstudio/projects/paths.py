from __future__ import annotations

import posixpath
from collections.abc import Mapping


def normalize_file_path(path: str) -> str:
    """Normalize a project file path like 'App.js' to '/App.js'."""
    raw = (path or "").strip()
    if not raw:
        raise ValueError("empty path")
    if "\x00" in raw:
        raise ValueError("invalid path")

    if not raw.startswith("/"):
        raw = "/" + raw

    # normpath collapses "..", so check the original segments.
    if "/../" in raw or raw.endswith("/..") or raw == "/..":
        raise ValueError("path traversal not allowed")

    norm = posixpath.normpath(raw)
    if not norm.startswith("/"):
        norm = "/" + norm
    if norm == "/":
        raise ValueError("invalid path")
    return norm


def normalize_files(files: Mapping[str, str]) -> dict[str, str]:
    """Return a copy of `files` with normalized keys, preserving order.

    Raises ValueError on an empty mapping, a bad path, non-string content, or
    two paths that collapse onto the same key.
    """
    if not isinstance(files, Mapping):
        raise ValueError("files must be a mapping")
    out: dict[str, str] = {}
    for path, content in files.items():
        if not isinstance(path, str):
            raise ValueError("file paths must be strings")
        if not isinstance(content, str):
            raise ValueError(f"content for '{path}' must be a string")
        p = normalize_file_path(path)
        if p in out:
            raise ValueError(f"duplicate path '{p}'")
        out[p] = content
    if not out:
        raise ValueError("a project needs at least one file")
    return out
