"""Core tenderaudit data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional

EntryKind = Literal["file", "directory"]


@dataclass(slots=True)
class DirectoryEntry:
    """One node of a remote directory listing."""

    name: str
    path: str
    kind: EntryKind
    size: Optional[int] = None
    last_modified: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def is_dir(self) -> bool:
        return self.kind == "directory"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class DecoratedEntry(DirectoryEntry):
    """Directory entry annotated with what the parser index knows about it."""

    has_parser: bool = False
    parser_status: str = ""
    parser_det: List[str] = field(default_factory=list)
    parser_default: str = ""


@dataclass(slots=True)
class VariantCandidate:
    """Hypothesized location of one parser's rendered output."""

    key: str
    label: str
    path: str
    legacy: bool = False
    discovered: bool = False


@dataclass(slots=True)
class ResolvedDocument:
    """Outcome of a successful variant resolution."""

    document_path: str
    content: str
    active: VariantCandidate
    candidates: List[VariantCandidate]
    attempted: List[str] = field(default_factory=list)

    @property
    def active_label(self) -> str:
        return self.active.label

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentPath": self.document_path,
            "content": self.content,
            "activeVariantLabel": self.active.label,
            "activePath": self.active.path,
            "candidates": [asdict(candidate) for candidate in self.candidates],
            "attempted": list(self.attempted),
        }
