"""Document service: the operations browsing and reading UIs call."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from tenderaudit.config import AppConfig
from tenderaudit.errors import ProtocolError, RemoteError
from tenderaudit.index.metadata import MetadataStore
from tenderaudit.index.parser_index import ParserIndexStore
from tenderaudit.index.resolver import VariantResolver
from tenderaudit.index.schema import ParserIndexFile
from tenderaudit.index.view import decorate, present
from tenderaudit.models import DecoratedEntry, ResolvedDocument
from tenderaudit.remote.base import RemoteStore
from tenderaudit.remote.webdav import WebDAVClient
from tenderaudit.utils.paths import join_path, project_name, remove_base_path

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PathResult:
    """Outcome of one path in a batch operation."""

    path: str
    ok: bool
    status: int
    error: Optional[str] = None


class DocumentService:
    """Wires the stores and the resolver to one remote store and configuration."""

    def __init__(self, config: AppConfig, client: RemoteStore | None = None) -> None:
        self.config = config
        self.client: RemoteStore = client if client is not None else WebDAVClient(config.store)
        self.index_store = ParserIndexStore(self.client, index_file_name=config.index_file_name)
        self.metadata = MetadataStore(
            self.client,
            suffix=config.metadata_suffix,
            project_file_name=config.project_metadata_name,
        )
        self.resolver = VariantResolver(
            self.client,
            self.index_store,
            rendered_dir=config.rendered_dir,
            default_parser=config.default_parser,
        )

    def close(self) -> None:
        self.client.close()

    def listing_path(self, path: str | None) -> str:
        if not path or path == "/":
            return self.config.store.base_path or "/"
        return path

    def list_directory(
        self,
        path: str | None,
        *,
        show_hidden: bool = False,
        exclude_names: Sequence[str] | None = None,
    ) -> List[DecoratedEntry]:
        """Visible entries of a directory, decorated with parser index flags."""
        target = self.listing_path(path)
        entries = self.client.list(target)
        try:
            index = self.index_store.load(target)
        except ProtocolError as exc:
            LOGGER.warning("Ignoring unreadable index in %s: %s", target, exc)
            index = ParserIndexFile()
        visible = present(
            entries,
            target,
            show_hidden=show_hidden,
            exclude_names=self.config.exclude_names if exclude_names is None else exclude_names,
            hidden_marker=self.config.hidden_marker,
        )
        return decorate(visible, index.parser_info_map())

    def load_index(self, directory: str) -> ParserIndexFile:
        return self.index_store.load(directory)

    def patch_index(
        self,
        directory: str,
        file_name: str,
        *,
        meta: Optional[Dict[str, Any]] = None,
        default_parser: Optional[str] = None,
    ) -> ParserIndexFile:
        return self.index_store.patch(directory, file_name, meta=meta, default_parser=default_parser)

    def resolve_document(
        self,
        path: str,
        *,
        previous_label: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ResolvedDocument:
        return self.resolver.resolve(path, previous_label=previous_label, cancel=cancel)

    def set_default_variant(self, path: str, label: str) -> ParserIndexFile:
        return self.resolver.persist_default(path, label)

    def load_metadata(self, path: str) -> Optional[Dict[str, Any]]:
        return self.metadata.load(path)

    def save_metadata(self, path: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        return self.metadata.save(path, metadata)

    def read_text(self, path: str) -> str:
        return self.client.read_text(path)

    def mkdir(self, path: str) -> bool:
        return self.client.mkdir(path)

    def upload(self, directory: str, name: str, data: bytes) -> str:
        target = join_path(directory, name)
        self.client.write_bytes(target, data)
        return target

    def rename(self, source: str, destination: str) -> None:
        self.client.move(source, destination)

    def delete_paths(self, paths: Iterable[str]) -> List[PathResult]:
        """Delete each path; comma-separated values are split. Failures are reported, not raised."""
        targets = [part.strip() for raw in paths for part in raw.split(",") if part.strip()]
        results: List[PathResult] = []
        for target in targets:
            try:
                self.client.delete(target)
            except RemoteError as exc:
                LOGGER.warning("Deleting %s failed: %s", target, exc)
                results.append(PathResult(target, False, exc.status or 500, str(exc)))
            else:
                results.append(PathResult(target, True, 204))
        return results

    def init_project(self, name: str) -> List[str]:
        """Create a project directory and its standard sub-directories."""
        root = join_path("/" + (self.config.store.base_path or "").strip("/"), name)
        created = [root]
        self.client.mkdir(root)
        for subdir in self.config.project_subdirs:
            path = join_path(root, subdir)
            self.client.mkdir(path)
            created.append(path)
        LOGGER.info("Initialized project %s", root)
        return created

    def relative_to_base(self, path: str) -> str:
        return remove_base_path(path, self.config.store.base_path)

    def project_name(self, path: str) -> str:
        return project_name(path, self.config.store.base_path)

    def project_metadata_path(self, project_dir: str) -> str:
        return self.metadata.project_path(project_dir)

    def document_metadata_path(self, document_path: str) -> str:
        return self.metadata.sidecar_path(document_path)

