"""Exception hierarchy for tenderaudit.

Everything raised on purpose by this package derives from
:class:`TenderAuditError`, so callers can catch broad or narrow as needed.
Absence of an optional sidecar is never an error: the stores normalize it to
``None`` or to an empty index before it reaches a caller.
"""

from __future__ import annotations

from typing import Sequence


class TenderAuditError(Exception):
    """Base exception for all tenderaudit errors."""


class ConfigurationError(TenderAuditError):
    """Invalid or incomplete store settings."""


class RemoteError(TenderAuditError):
    """Failure tied to one remote path."""

    def __init__(self, path: str, *, status: int | None = None, detail: str | None = None) -> None:
        self.path = path
        self.status = status
        self.detail = detail
        message = f"{path}"
        if status is not None:
            message += f" (HTTP {status})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class RemoteUnavailable(RemoteError):
    """Transport or authentication failure talking to the remote store."""


class NotFound(RemoteError):
    """A single remote resource does not exist."""


class ProtocolError(TenderAuditError):
    """A remote response could not be parsed into the expected structure."""


class IndexSchemaError(ProtocolError):
    """A parser index declares a schema version this release cannot read."""


class IndexUpdateFailed(TenderAuditError):
    """The read-modify-write of a parser index did not complete."""

    def __init__(self, path: str, cause: Exception | str) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Updating index {path} failed: {cause}")


class NoRenderableVariant(TenderAuditError):
    """Every candidate location for a document's rendered output failed."""

    def __init__(self, document: str, attempted: Sequence[str]) -> None:
        self.document = document
        self.attempted = list(attempted)
        if self.attempted:
            tried = ", ".join(self.attempted)
            message = f"No renderable variant for {document}; tried: {tried}"
        else:
            message = f"No renderable variant for {document}; no candidates were found"
        super().__init__(message)


class ResolutionCancelled(TenderAuditError):
    """The caller abandoned an in-flight resolution."""
