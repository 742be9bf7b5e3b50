"""Contract shared by every remote store implementation."""

from __future__ import annotations

from typing import Any, List, Protocol

from tenderaudit.models import DirectoryEntry


class RemoteStore(Protocol):
    """Operations the index, metadata and resolver layers rely on.

    ``list`` raises ``RemoteUnavailable`` on transport or auth errors,
    ``ProtocolError`` for an unparseable listing and ``NotFound`` when the
    directory does not exist. ``read_text``/``read_bytes`` raise ``NotFound``
    for a missing resource, while ``read_json`` returns ``None`` instead.
    Writes always replace the whole document. ``mkdir`` treats an existing
    collection as success and reports whether it created one.
    """

    def list(self, path: str) -> List[DirectoryEntry]: ...

    def read_bytes(self, path: str) -> bytes: ...

    def read_text(self, path: str) -> str: ...

    def read_json(self, path: str) -> Any | None: ...

    def write_json(self, path: str, document: Any) -> None: ...

    def write_bytes(self, path: str, data: bytes, *, content_type: str = ...) -> None: ...

    def mkdir(self, path: str) -> bool: ...

    def delete(self, path: str) -> None: ...

    def move(self, source: str, destination: str) -> None: ...

    def close(self) -> None: ...
