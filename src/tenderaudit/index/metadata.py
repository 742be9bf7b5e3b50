"""Free-form JSON metadata sidecars."""

from __future__ import annotations

from typing import Any, Dict, Optional

from tenderaudit.errors import ProtocolError
from tenderaudit.remote.base import RemoteStore
from tenderaudit.utils.paths import normalize_path


class MetadataStore:
    """Whole-document load/save of ``<path>.meta.json`` style sidecars.

    There is no merge: ``save`` replaces whatever was stored with the object
    the caller passes in.
    """

    def __init__(
        self,
        client: RemoteStore,
        *,
        suffix: str = ".meta.json",
        project_file_name: str = "projekt.json",
    ) -> None:
        self.client = client
        self.suffix = suffix
        self.project_file_name = project_file_name

    def sidecar_path(self, path: str) -> str:
        return path.rstrip("/") + self.suffix

    def project_path(self, project_dir: str) -> str:
        return normalize_path(project_dir) + self.project_file_name

    def load(self, path: str) -> Optional[Dict[str, Any]]:
        document = self.client.read_json(path)
        if document is not None and not isinstance(document, dict):
            raise ProtocolError(f"Metadata sidecar {path} is not a JSON object")
        return document

    def save(self, path: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        self.client.write_json(path, metadata)
        return metadata
