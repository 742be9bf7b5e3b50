"""Per-directory parser index sidecar store."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from tenderaudit.config import INDEX_FILE_NAME
from tenderaudit.errors import IndexUpdateFailed, ProtocolError, RemoteError
from tenderaudit.index.schema import FileIndexEntry, ParserIndexFile, parse_index
from tenderaudit.remote.base import RemoteStore
from tenderaudit.utils.paths import normalize_path

LOGGER = logging.getLogger(__name__)


class ParserIndexStore:
    """Reads and patches ``<directory>/<index file>`` documents.

    ``patch`` is a read-modify-write of the whole document. Without
    ``check_timestamp`` nothing guards against a concurrent writer: two
    overlapping patches of the same directory can lose one caller's change.
    """

    def __init__(self, client: RemoteStore, *, index_file_name: str = INDEX_FILE_NAME) -> None:
        self.client = client
        self.index_file_name = index_file_name

    def index_path(self, directory: str) -> str:
        return normalize_path(directory) + self.index_file_name

    def load(self, directory: str) -> ParserIndexFile:
        """Load a directory's index; a missing index yields an empty one."""
        raw = self.client.read_json(self.index_path(directory))
        if raw is None:
            return ParserIndexFile()
        return parse_index(raw)

    @staticmethod
    def lookup(index: ParserIndexFile, file_name: str) -> Optional[FileIndexEntry]:
        return index.lookup(file_name)

    def patch(
        self,
        directory: str,
        file_name: str,
        *,
        meta: Optional[Dict[str, Any]] = None,
        default_parser: Optional[str] = None,
        check_timestamp: bool = False,
    ) -> ParserIndexFile:
        """Merge ``meta`` into a file's entry and/or overwrite its default parser."""
        path = self.index_path(directory)
        try:
            raw = self.client.read_json(path)
            if raw is None:
                raise IndexUpdateFailed(path, "index does not exist")
            index = parse_index(raw)
        except (RemoteError, ProtocolError) as exc:
            raise IndexUpdateFailed(path, exc) from exc
        base_timestamp = index.timestamp

        entry = index.lookup(file_name)
        if entry is None:
            LOGGER.debug("No entry for %s in %s, nothing to patch", file_name, path)
        else:
            if meta:
                entry.meta = {**entry.meta, **meta}
            if default_parser is not None:
                # Not checked against parsers.det: discovered outputs may become default.
                parsers = entry.parsers
                parsers.default = default_parser
                # Reassigned so an entry without a parsers section gets one written.
                entry.parsers = parsers
                LOGGER.info("Default parser for %s set to %s", file_name, default_parser)

        index.timestamp = time.time()

        try:
            if check_timestamp:
                self._verify_unchanged(path, base_timestamp)
            self.client.write_json(path, index.to_document())
        except (RemoteError, ProtocolError) as exc:
            raise IndexUpdateFailed(path, exc) from exc
        return index

    def _verify_unchanged(self, path: str, base_timestamp: Optional[float]) -> None:
        current = self.client.read_json(path)
        current_timestamp = current.get("timestamp") if isinstance(current, dict) else None
        if current_timestamp != base_timestamp:
            raise IndexUpdateFailed(path, "index changed since it was read")
