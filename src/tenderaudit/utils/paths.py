"""Helpers for remote (slash separated, possibly URL-encoded) paths."""

from __future__ import annotations

import re
from urllib.parse import unquote

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


def normalize_path(path: str) -> str:
    """Ensure a trailing slash."""
    return path if path.endswith("/") else path + "/"


def split_document_path(path: str) -> tuple[str, str]:
    """Split a document path into its directory (with trailing slash) and decoded file name."""
    trimmed = path.rstrip("/")
    head, _, tail = trimmed.rpartition("/")
    return normalize_path(head) if head else "/", unquote(tail)


def strip_extension(file_name: str) -> str:
    return _EXTENSION_RE.sub("", file_name)


def last_segment(path: str) -> str:
    """Decoded last non-empty segment of a path or href."""
    segments = [segment for segment in path.split("/") if segment]
    return unquote(segments[-1]) if segments else ""


def join_path(*parts: str) -> str:
    """Join path parts with single slashes, keeping a leading slash if the first part has one."""
    cleaned = [part.strip("/") for part in parts if part and part.strip("/")]
    joined = "/".join(cleaned)
    if parts and parts[0].startswith("/"):
        joined = "/" + joined
    return joined


def remove_base_path(path: str, base_path: str | None) -> str:
    """Strip the configured base path prefix from a remote path."""
    if not base_path or not path:
        return path
    base = base_path.strip("/")
    prefix = f"/{base}/"
    if path.startswith(prefix):
        return path[len(prefix):]
    if path.rstrip("/") == f"/{base}":
        return ""
    return path


def project_name(project_path: str, base_path: str | None) -> str:
    """First path segment after the base path."""
    clean = remove_base_path(project_path, base_path)
    return clean.strip("/").split("/")[0] if clean else ""
