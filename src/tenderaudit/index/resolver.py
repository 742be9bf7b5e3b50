"""Resolution of a source document to one of its rendered parser outputs.

Rendered outputs have been written under several naming conventions over
time. For a document ``<dir>/<name>.<ext>`` the resolver considers:

* ``<dir>/rendered/<name>.<parser>.md`` for most parsers, plus the legacy
  ``<name>_red.<parser>.md`` and ``<name>.<PARSER>.md`` spellings,
* ``<dir>/rendered/<name>.md`` for the plain ``md`` parser,
* ``<dir>/rendered/<name>/<name>.marker.md`` for marker, plus the legacy
  ``rendered/<name>.marker.md``, ``rendered/<name>/<name>_marker.md`` and
  ``rendered/<name>/<name>-marker.md`` locations,
* any ``<dir>/rendered/<name>[_suffix].<token>.md`` whose token the index
  never recorded.

Candidates are built in that priority order, one is chosen as active and the
rest serve as fallbacks when the active one cannot be read.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Iterable, List, Optional, Sequence, Set
from urllib.parse import unquote

from tenderaudit.config import DEFAULT_PARSER
from tenderaudit.errors import NoRenderableVariant, NotFound, RemoteUnavailable, ResolutionCancelled
from tenderaudit.index.parser_index import ParserIndexStore
from tenderaudit.index.schema import ParserIndexFile
from tenderaudit.index.view import present
from tenderaudit.models import DirectoryEntry, ResolvedDocument, VariantCandidate
from tenderaudit.remote.base import RemoteStore
from tenderaudit.utils.paths import normalize_path, split_document_path, strip_extension

LOGGER = logging.getLogger(__name__)

MARKER = "marker"
PLAIN_MD = "md"
MARKER_LABEL = "Marker"
# First entry is the current convention, the others are legacy spellings.
MARKER_SUFFIXES = (".marker.md", "_marker.md", "-marker.md")
# Older pipelines wrote "<name>_red.<parser>.md" for redacted sources.
RED_SUFFIX = "_red"

_LABEL_SPLIT_RE = re.compile(r"[\s(]")


def parser_key(label: str) -> str:
    """Parser identifier behind a variant label: ``"Marker (flat)"`` -> ``"marker"``."""
    token = _LABEL_SPLIT_RE.split(label.strip(), maxsplit=1)[0]
    if not token:
        raise ValueError(f"Cannot derive a parser from label {label!r}")
    return token.lower()


def _unique(values: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    ordered: List[str] = []
    for value in values:
        lowered = value.lower()
        if value and lowered not in seen:
            seen.add(lowered)
            ordered.append(value)
    return ordered


class _CandidateList:
    """Ordered candidates with unique paths and labels."""

    def __init__(self) -> None:
        self.items: List[VariantCandidate] = []
        self._paths: Set[str] = set()
        self._labels: Set[str] = set()

    def add(self, candidate: VariantCandidate) -> bool:
        path_key = unquote(candidate.path)
        if path_key in self._paths:
            return False
        label = candidate.label
        counter = 2
        while label in self._labels:
            label = f"{candidate.label} ({counter})"
            counter += 1
        candidate.label = label
        self._paths.add(path_key)
        self._labels.add(label)
        self.items.append(candidate)
        return True


class VariantResolver:
    """Builds, ranks and loads rendered-output candidates for one document."""

    def __init__(
        self,
        client: RemoteStore,
        index_store: ParserIndexStore,
        *,
        rendered_dir: str = "rendered",
        default_parser: str = DEFAULT_PARSER,
    ) -> None:
        self.client = client
        self.index_store = index_store
        self.rendered_dir = rendered_dir.strip("/")
        self.default_parser = default_parser

    @staticmethod
    def _check_cancel(cancel: Optional[threading.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise ResolutionCancelled("Resolution cancelled by caller")

    def rendered_path(self, directory: str) -> str:
        return normalize_path(normalize_path(directory) + self.rendered_dir)

    def _list_quietly(
        self, path: str, cancel: Optional[threading.Event]
    ) -> Optional[List[DirectoryEntry]]:
        self._check_cancel(cancel)
        try:
            entries = self.client.list(path)
        except (NotFound, RemoteUnavailable) as exc:
            LOGGER.debug("Lookup of %s failed: %s", path, exc)
            return None
        return present(entries, path, show_hidden=True)

    def _find_nested_marker(
        self,
        rendered: str,
        base_name: str,
        candidates: _CandidateList,
        cancel: Optional[threading.Event],
    ) -> bool:
        entries = self._list_quietly(f"{rendered}{base_name}/", cancel)
        if not entries:
            return False
        files = [entry for entry in entries if not entry.is_dir]
        for suffix in MARKER_SUFFIXES:
            for entry in files:
                if entry.name.endswith(suffix):
                    candidates.add(
                        VariantCandidate(
                            key=f"{base_name}-marker",
                            label=MARKER_LABEL,
                            path=entry.path,
                            legacy=suffix != MARKER_SUFFIXES[0],
                        )
                    )
                    return True
        return False

    @staticmethod
    def _marker_candidates(rendered: str, base_name: str) -> List[VariantCandidate]:
        nested = f"{rendered}{base_name}/"
        return [
            VariantCandidate(
                key=f"{base_name}-marker",
                label=MARKER_LABEL,
                path=f"{nested}{base_name}.marker.md",
            ),
            VariantCandidate(
                key=f"{base_name}-marker-flat",
                label=f"{MARKER_LABEL} (flat)",
                path=f"{rendered}{base_name}.marker.md",
                legacy=True,
            ),
            VariantCandidate(
                key=f"{base_name}-marker-underscore",
                label=f"{MARKER_LABEL} (underscore)",
                path=f"{nested}{base_name}_marker.md",
                legacy=True,
            ),
            VariantCandidate(
                key=f"{base_name}-marker-dash",
                label=f"{MARKER_LABEL} (dash)",
                path=f"{nested}{base_name}-marker.md",
                legacy=True,
            ),
        ]

    @staticmethod
    def _parser_candidates(rendered: str, base_name: str, parser: str) -> List[VariantCandidate]:
        red_base = base_name if base_name.endswith(RED_SUFFIX) else base_name + RED_SUFFIX
        return [
            VariantCandidate(
                key=f"{base_name}.{parser}",
                label=parser,
                path=f"{rendered}{base_name}.{parser}.md",
            ),
            VariantCandidate(
                key=f"{red_base}.{parser}",
                label=f"{parser} (red)",
                path=f"{rendered}{red_base}.{parser}.md",
                legacy=True,
            ),
            VariantCandidate(
                key=f"{base_name}.{parser.upper()}",
                label=f"{parser} (upper)",
                path=f"{rendered}{base_name}.{parser.upper()}.md",
                legacy=True,
            ),
        ]

    def _discover(
        self,
        rendered: str,
        base_name: str,
        declared: Set[str],
        candidates: _CandidateList,
        cancel: Optional[threading.Event],
    ) -> None:
        entries = self._list_quietly(rendered, cancel)
        if not entries:
            return
        pattern = re.compile(
            rf"^{re.escape(base_name)}(?P<suffix>_[^./]+)?\.(?P<token>[^./]+)\.md$"
        )
        for entry in entries:
            if entry.is_dir:
                continue
            match = pattern.match(entry.name)
            if not match or match.group("token").lower() in declared:
                continue
            token = match.group("token")
            suffix = match.group("suffix")
            label = f"{token} ({suffix[1:]})" if suffix else token
            if candidates.add(
                VariantCandidate(key=entry.name, label=label, path=entry.path, discovered=True)
            ):
                LOGGER.debug("Discovered unindexed output %s", entry.path)

    def build_candidates(
        self,
        document_path: str,
        index: ParserIndexFile,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> List[VariantCandidate]:
        """All hypothesized output locations for a document, in priority order."""
        directory, file_name = split_document_path(document_path)
        base_name = strip_extension(file_name)
        rendered = self.rendered_path(directory)

        entry = index.lookup(file_name)
        declared = _unique(entry.parsers.det) if entry is not None else [self.default_parser]

        candidates = _CandidateList()
        marker_found = self._find_nested_marker(rendered, base_name, candidates, cancel)
        if marker_found and MARKER not in {parser.lower() for parser in declared}:
            declared.append(MARKER)

        for parser in declared:
            lowered = parser.lower()
            if lowered == MARKER:
                if marker_found:
                    continue
                for candidate in self._marker_candidates(rendered, base_name):
                    candidates.add(candidate)
            elif lowered == PLAIN_MD:
                candidates.add(
                    VariantCandidate(key=f"{base_name}.md", label=parser, path=f"{rendered}{base_name}.md")
                )
            else:
                for candidate in self._parser_candidates(rendered, base_name, parser):
                    candidates.add(candidate)

        self._discover(rendered, base_name, {parser.lower() for parser in declared}, candidates, cancel)
        return candidates.items

    @staticmethod
    def choose_active(
        candidates: Sequence[VariantCandidate],
        *,
        previous_label: Optional[str] = None,
        default_parser: Optional[str] = None,
    ) -> Optional[VariantCandidate]:
        """Keep a still-valid previous choice, else the index default, else the first."""
        if not candidates:
            return None
        if previous_label:
            for candidate in candidates:
                if candidate.label == previous_label:
                    return candidate
        if default_parser:
            wanted = default_parser.lower()
            for candidate in candidates:
                if candidate.label.lower() == wanted:
                    return candidate
        return candidates[0]

    def load(
        self,
        document_path: str,
        candidates: Sequence[VariantCandidate],
        active: Optional[VariantCandidate],
        *,
        cancel: Optional[threading.Event] = None,
    ) -> ResolvedDocument:
        """Read the active candidate, falling back through the rest in list order."""
        if active is None:
            ordered = list(candidates)
        else:
            ordered = [active] + [candidate for candidate in candidates if candidate is not active]

        attempted: List[str] = []
        for candidate in ordered:
            self._check_cancel(cancel)
            attempted.append(candidate.path)
            try:
                content = self.client.read_text(candidate.path)
            except (NotFound, RemoteUnavailable) as exc:
                LOGGER.debug("Variant %s unavailable at %s: %s", candidate.label, candidate.path, exc)
                continue

            if active is not None and candidate is not active:
                LOGGER.info(
                    "Variant %s of %s failed, switched to %s", active.label, document_path, candidate.label
                )
            if candidate.legacy:
                LOGGER.warning("Served %s from legacy location %s", document_path, candidate.path)
            self._check_cancel(cancel)
            return ResolvedDocument(
                document_path=document_path,
                content=content,
                active=candidate,
                candidates=list(candidates),
                attempted=attempted,
            )

        raise NoRenderableVariant(document_path, attempted)

    def resolve(
        self,
        document_path: str,
        *,
        index: Optional[ParserIndexFile] = None,
        previous_label: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ResolvedDocument:
        """Find and load the rendered output to show for ``document_path``."""
        directory, file_name = split_document_path(document_path)
        self._check_cancel(cancel)
        if index is None:
            index = self.index_store.load(directory)

        candidates = self.build_candidates(document_path, index, cancel=cancel)
        entry = index.lookup(file_name)
        active = self.choose_active(
            candidates,
            previous_label=previous_label,
            default_parser=entry.parsers.default if entry is not None else None,
        )
        return self.load(document_path, candidates, active, cancel=cancel)

    def persist_default(self, document_path: str, label: str) -> ParserIndexFile:
        """Record the parser behind ``label`` as the document's default."""
        directory, file_name = split_document_path(document_path)
        return self.index_store.patch(directory, file_name, default_parser=parser_key(label))
