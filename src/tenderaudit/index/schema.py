"""Pydantic models for the per-directory parser index document."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tenderaudit.errors import IndexSchemaError, ProtocolError

LOGGER = logging.getLogger(__name__)

# Version 1 is every document written before the tag existed; those may carry
# a free-text ``version`` field which is kept untouched.
CURRENT_SCHEMA_VERSION = 2


class ParserInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    det: List[str] = Field(default_factory=list)
    default: Optional[str] = None
    status: Optional[str] = None

    @field_validator("det", mode="before")
    @classmethod
    def _coerce_det(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple, set)):
            return [str(item) for item in value]
        LOGGER.warning("Ignoring parser list of unexpected type %s", type(value).__name__)
        return []


class FileIndexEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    parsers: ParserInfo = Field(default_factory=ParserInfo)
    meta: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("parsers", "meta", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class ParserIndexFile(BaseModel):
    """Everything the external parsing pipeline recorded for one directory."""

    model_config = ConfigDict(extra="allow")

    schema_version: int = CURRENT_SCHEMA_VERSION
    timestamp: Optional[float] = None
    files: List[FileIndexEntry] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.files

    def lookup(self, file_name: str) -> Optional[FileIndexEntry]:
        for entry in self.files:
            if entry.name == file_name:
                return entry
        return None

    def parser_info_map(self) -> Dict[str, Dict[str, Any]]:
        """Name -> ``{"det", "default", "status"}`` for entries that have a name."""
        return {
            entry.name: {
                "det": list(entry.parsers.det),
                "default": entry.parsers.default or "",
                "status": entry.parsers.status or "",
            }
            for entry in self.files
            if entry.name
        }

    def to_document(self) -> Dict[str, Any]:
        """Serialized form with only the keys that were read or changed."""
        document = self.model_dump(mode="json", exclude_unset=True)
        document["schema_version"] = self.schema_version
        document.setdefault("files", [])
        return document


def upgrade_document(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Bring a legacy (untagged) index document to the current schema."""
    data = dict(raw)
    data["schema_version"] = CURRENT_SCHEMA_VERSION
    files = data.get("files")
    if files is None:
        data["files"] = []
    elif not isinstance(files, list):
        LOGGER.warning("Index 'files' is %s, expected a list; treating as empty", type(files).__name__)
        data["files"] = []
    else:
        kept = [item for item in files if isinstance(item, dict)]
        if len(kept) != len(files):
            LOGGER.warning("Dropping %d index entries that are not objects", len(files) - len(kept))
        data["files"] = kept
    return data


def parse_index(raw: Any) -> ParserIndexFile:
    """Validate a decoded index document, upgrading legacy ones."""
    if not isinstance(raw, dict):
        raise ProtocolError(f"Index document must be a JSON object, got {type(raw).__name__}")

    version = raw.get("schema_version")
    if version is None:
        LOGGER.debug("Upgrading untagged index (version=%r)", raw.get("version"))
        raw = upgrade_document(raw)
    elif not isinstance(version, int) or isinstance(version, bool):
        raise IndexSchemaError(f"Invalid schema_version {version!r}")
    elif version > CURRENT_SCHEMA_VERSION:
        raise IndexSchemaError(
            f"Index schema_version {version} is newer than supported ({CURRENT_SCHEMA_VERSION})"
        )

    try:
        return ParserIndexFile.model_validate(raw)
    except ValidationError as exc:
        raise ProtocolError(f"Malformed index document: {exc}") from exc
