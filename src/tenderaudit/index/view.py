"""Virtual directory view over raw remote listings."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Mapping, Sequence
from urllib.parse import unquote

from tenderaudit.models import DecoratedEntry, DirectoryEntry
from tenderaudit.utils.paths import normalize_path

HIDDEN_MARKER = "."


def canonical_path(entry: DirectoryEntry) -> str:
    """Directories end with a slash, files never do."""
    if entry.is_dir:
        return normalize_path(entry.path)
    return entry.path.rstrip("/") or entry.path


def _segments(path: str) -> list[str]:
    return [segment for segment in unquote(path).split("/") if segment]


def is_self_entry(entry_path: str, self_path: str) -> bool:
    """Whether a listing entry is the listed directory itself.

    Servers may report the directory under a longer, prefixed path (for
    example ``/disk/klark0/`` when ``klark0`` was listed), so an entry made of
    exactly one foreign leading segment followed by the listing path also
    counts. ``/klark0/klark0/`` under ``/klark0`` is a child, not the parent.
    """
    if normalize_path(unquote(entry_path)) == normalize_path(unquote(self_path)):
        return True
    entry_segments = _segments(entry_path)
    self_segments = _segments(self_path)
    if entry_segments == self_segments:
        return True
    if not self_segments or len(entry_segments) != len(self_segments) + 1:
        return False
    return entry_segments[1:] == self_segments and entry_segments[0] != self_segments[0]


def present(
    entries: Iterable[DirectoryEntry],
    self_path: str,
    *,
    show_hidden: bool = False,
    exclude_names: Sequence[str] = (),
    hidden_marker: str = HIDDEN_MARKER,
) -> List[DirectoryEntry]:
    """Filter and normalize one directory listing, preserving input order."""
    excluded = set(exclude_names)
    visible: List[DirectoryEntry] = []
    for entry in entries:
        if not show_hidden and entry.name.startswith(hidden_marker):
            continue
        if entry.name in excluded:
            continue
        path = canonical_path(entry)
        if is_self_entry(path, self_path):
            continue
        visible.append(entry if path == entry.path else replace(entry, path=path))
    return visible


def decorate(
    entries: Iterable[DirectoryEntry],
    parser_info: Mapping[str, Mapping[str, object]],
) -> List[DecoratedEntry]:
    """Attach parser index flags to file entries."""
    decorated: List[DecoratedEntry] = []
    for entry in entries:
        info = parser_info.get(entry.name) if not entry.is_dir else None
        det = list(info.get("det", [])) if info else []  # type: ignore[arg-type]
        default = str(info.get("default") or "") if info else ""
        decorated.append(
            DecoratedEntry(
                name=entry.name,
                path=entry.path,
                kind=entry.kind,
                size=entry.size,
                last_modified=entry.last_modified,
                created_at=entry.created_at,
                has_parser=bool(det or default),
                parser_status=str(info.get("status") or "") if info else "",
                parser_det=det,
                parser_default=default,
            )
        )
    return decorated
