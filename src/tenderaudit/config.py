"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

from tenderaudit.errors import ConfigurationError

INDEX_FILE_NAME = ".pdf2md_index.json"
DEFAULT_PARSER = "docling"
ENV_PREFIX = "TENDERAUDIT_"


@dataclass(slots=True)
class StoreSettings:
    """Connection settings for the remote document store."""

    type: str = "webdav"
    host: str | None = None
    username: str | None = None
    password: str | None = None
    base_path: str | None = None
    timeout: float = 30.0

    def is_complete(self) -> bool:
        return bool(self.host and self.username and self.password)

    def validate(self) -> None:
        if self.type != "webdav":
            raise ConfigurationError(f"Unsupported filesystem type: {self.type}")
        if not self.is_complete():
            raise ConfigurationError("Incomplete WebDAV settings: host, username and password are required")

    def __repr__(self) -> str:
        # Keep the password out of logs and tracebacks.
        return (
            f"StoreSettings(type={self.type!r}, host={self.host!r}, "
            f"username={self.username!r}, base_path={self.base_path!r})"
        )


@dataclass(slots=True)
class AppConfig:
    store: StoreSettings = field(default_factory=StoreSettings)
    index_file_name: str = INDEX_FILE_NAME
    rendered_dir: str = "rendered"
    default_parser: str = DEFAULT_PARSER
    hidden_marker: str = "."
    exclude_names: tuple[str, ...] = ("archive", ".archive")
    project_subdirs: tuple[str, ...] = ("A", "B")
    project_metadata_name: str = "projekt.json"
    metadata_suffix: str = ".meta.json"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Build a configuration from ``TENDERAUDIT_*`` environment variables."""
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        store = StoreSettings(
            type=get("FS_TYPE") or "webdav",
            host=get("HOST"),
            username=get("USERNAME"),
            password=get("PASSWORD"),
            base_path=get("BASE_PATH"),
            timeout=float(get("TIMEOUT") or 30.0),
        )
        config = cls(store=store)
        if get("RENDERED_DIR"):
            config.rendered_dir = get("RENDERED_DIR")  # type: ignore[assignment]
        if get("DEFAULT_PARSER"):
            config.default_parser = get("DEFAULT_PARSER")  # type: ignore[assignment]
        return config
