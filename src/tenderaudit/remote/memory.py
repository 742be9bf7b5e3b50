"""In-process remote store used for tests and offline runs."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, List, Set, Tuple
from urllib.parse import unquote

from tenderaudit.errors import NotFound, ProtocolError, RemoteUnavailable
from tenderaudit.models import DirectoryEntry

LOGGER = logging.getLogger(__name__)


def _key(path: str) -> str:
    trimmed = unquote(path).strip("/")
    return "/" + trimmed if trimmed else "/"


def _parent(key: str) -> str:
    head = key.rsplit("/", 1)[0]
    return head or "/"


class MemoryStore:
    """Dictionary-backed store honoring the same contract as ``WebDAVClient``.

    Writing a file creates its parent directories. Paths listed in
    ``unavailable`` raise ``RemoteUnavailable`` on any access, which lets tests
    simulate a flaky server. Every call is appended to ``calls``.
    """

    def __init__(self) -> None:
        self.files: Dict[str, bytes] = {}
        self.dirs: Set[str] = {"/"}
        self.unavailable: Set[str] = set()
        self.calls: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def _enter(self, op: str, path: str) -> str:
        key = _key(path)
        with self._lock:
            self.calls.append((op, key))
        if key in self.unavailable:
            raise RemoteUnavailable(path, status=503, detail="simulated outage")
        return key

    def _ensure_parents(self, key: str) -> None:
        parent = _parent(key)
        while parent not in self.dirs:
            self.dirs.add(parent)
            parent = _parent(parent)

    def add_file(self, path: str, content: str | bytes) -> None:
        """Seed a file without recording a call."""
        key = _key(path)
        self._ensure_parents(key)
        self.files[key] = content.encode("utf-8") if isinstance(content, str) else content

    def add_json(self, path: str, document: Any) -> None:
        self.add_file(path, json.dumps(document))

    def add_dir(self, path: str) -> None:
        key = _key(path)
        self._ensure_parents(key)
        self.dirs.add(key)

    def remove(self, path: str) -> None:
        key = _key(path)
        self.files.pop(key, None)
        self.dirs.discard(key)

    def exists(self, path: str) -> bool:
        key = _key(path)
        return key in self.files or key in self.dirs

    def list(self, path: str) -> List[DirectoryEntry]:
        key = self._enter("list", path)
        if key not in self.dirs:
            raise NotFound(path, status=404)

        own = key if key == "/" else key + "/"
        entries = [DirectoryEntry(name=key.rsplit("/", 1)[-1], path=own, kind="directory")]
        for child in sorted(self.dirs):
            if child != key and _parent(child) == key:
                entries.append(
                    DirectoryEntry(name=child.rsplit("/", 1)[-1], path=child + "/", kind="directory")
                )
        for child, data in sorted(self.files.items()):
            if _parent(child) == key:
                entries.append(
                    DirectoryEntry(
                        name=child.rsplit("/", 1)[-1], path=child, kind="file", size=len(data)
                    )
                )
        return entries

    def read_bytes(self, path: str) -> bytes:
        key = self._enter("read", path)
        try:
            return self.files[key]
        except KeyError:
            raise NotFound(path, status=404) from None

    def read_text(self, path: str) -> str:
        return self.read_bytes(path).decode("utf-8")

    def read_json(self, path: str) -> Any | None:
        try:
            raw = self.read_bytes(path)
        except NotFound:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise ProtocolError(f"{path} is not valid JSON: {exc}") from exc

    def write_bytes(self, path: str, data: bytes, *, content_type: str = "application/octet-stream") -> None:
        key = self._enter("write", path)
        self._ensure_parents(key)
        self.files[key] = bytes(data)

    def write_json(self, path: str, document: Any) -> None:
        self.write_bytes(path, json.dumps(document, indent=2).encode("utf-8"), content_type="application/json")

    def mkdir(self, path: str) -> bool:
        key = self._enter("mkdir", path)
        if key in self.dirs:
            return False
        if _parent(key) not in self.dirs:
            raise RemoteUnavailable(path, status=409, detail="parent collection missing")
        self.dirs.add(key)
        return True

    def delete(self, path: str) -> None:
        key = self._enter("delete", path)
        if key in self.files:
            del self.files[key]
            return
        if key not in self.dirs:
            raise NotFound(path, status=404)
        prefix = key.rstrip("/") + "/"
        self.dirs = {d for d in self.dirs if d != key and not d.startswith(prefix)}
        self.files = {f: v for f, v in self.files.items() if not f.startswith(prefix)}

    def move(self, source: str, destination: str) -> None:
        key = self._enter("move", source)
        target = _key(destination)
        if key not in self.files:
            raise NotFound(source, status=404)
        self._ensure_parents(target)
        self.files[target] = self.files.pop(key)

    def close(self) -> None:
        with self._lock:
            self.calls.append(("close", "/"))
