"""Tests for CLI commands."""

from __future__ import annotations

import json
import logging
from typing import Iterator
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from tenderaudit.cli import _setup_logging, app
from tenderaudit.remote.memory import MemoryStore
from tenderaudit.web.app import app as web_app
from tenderaudit.web.app import get_config

runner = CliRunner()

CREDENTIALS = ["--host", "https://dav.example.com", "-u", "auditor", "-p", "secret"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("FS_TYPE", "HOST", "USERNAME", "PASSWORD", "BASE_PATH", "RENDERED_DIR", "DEFAULT_PARSER"):
        monkeypatch.delenv(f"TENDERAUDIT_{name}", raising=False)


@pytest.fixture
def store() -> Iterator[MemoryStore]:
    memory = MemoryStore()
    memory.add_file("/P1/A/Spec.pdf", b"%PDF")
    memory.add_file("/P1/A/Plan.pdf", b"%PDF")
    memory.add_json(
        "/P1/A/.pdf2md_index.json",
        {
            "files": [
                {"name": "Spec.pdf", "parsers": {"det": ["docling"], "default": "docling", "status": "done"}}
            ]
        },
    )
    memory.add_file("/P1/A/rendered/Spec/Spec.marker.md", "Marker text")
    memory.add_dir("/P1/B")
    with patch("tenderaudit.cli.WebDAVClient", return_value=memory):
        yield memory


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        """Verbose mode sets DEBUG level."""
        with patch("tenderaudit.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            mock_config.assert_called_once()
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        """Normal mode sets INFO level."""
        with patch("tenderaudit.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            mock_config.assert_called_once()
            assert mock_config.call_args[1]["level"] == logging.INFO


class TestSettings:
    """Tests for connection settings handling."""

    def test_missing_credentials(self) -> None:
        """Refuses to run without a complete WebDAV configuration."""
        result = runner.invoke(app, ["ls", "/"])

        assert result.exit_code == 2

    @patch("tenderaudit.cli.WebDAVClient")
    def test_options_override_environment(
        self, mock_client_class: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TENDERAUDIT_HOST", "https://env.example.com")
        monkeypatch.setenv("TENDERAUDIT_BASE_PATH", "Projects")
        mock_client_class.return_value = MemoryStore()
        mock_client_class.return_value.add_dir("/Projects")

        result = runner.invoke(app, CREDENTIALS + ["ls"])

        assert result.exit_code == 0
        settings = mock_client_class.call_args[0][0]
        assert settings.host == "https://dav.example.com"
        assert settings.username == "auditor"
        assert settings.base_path == "Projects"


class TestListCommand:
    """Tests for the ls command."""

    def test_ls_shows_parser_columns(self, store: MemoryStore) -> None:
        result = runner.invoke(app, CREDENTIALS + ["ls", "/P1/A/"])

        assert result.exit_code == 0
        assert "Spec.pdf" in result.stdout
        assert "docling" in result.stdout
        assert ".pdf2md_index.json" not in result.stdout

    def test_ls_all(self, store: MemoryStore) -> None:
        result = runner.invoke(app, CREDENTIALS + ["ls", "/P1/A/", "--all"])

        assert result.exit_code == 0
        assert ".pdf2md_index.json" in result.stdout

    def test_ls_empty(self, store: MemoryStore) -> None:
        result = runner.invoke(app, CREDENTIALS + ["ls", "/P1/B/"])

        assert result.exit_code == 0
        assert "Directory is empty." in result.stdout

    def test_ls_missing_directory(self, store: MemoryStore) -> None:
        result = runner.invoke(app, CREDENTIALS + ["ls", "/P9/"])

        assert result.exit_code == 1


class TestResolveCommand:
    """Tests for the resolve command."""

    def test_resolve_falls_back(self, store: MemoryStore) -> None:
        """Prints the candidates and the marker output after the default failed."""
        result = runner.invoke(app, CREDENTIALS + ["resolve", "/P1/A/Spec.pdf"])

        assert result.exit_code == 0
        assert "Active variant: Marker" in result.stdout
        assert "Marker text" in result.stdout

    def test_resolve_without_content(self, store: MemoryStore) -> None:
        result = runner.invoke(app, CREDENTIALS + ["resolve", "/P1/A/Spec.pdf", "--no-content"])

        assert result.exit_code == 0
        assert "Marker text" not in result.stdout

    def test_resolve_nothing_renderable(self, store: MemoryStore) -> None:
        result = runner.invoke(app, CREDENTIALS + ["resolve", "/P1/A/Plan.pdf"])

        assert result.exit_code == 1
        assert "tried /P1/A/rendered/Plan.docling.md" in result.stdout


class TestDefaultCommand:
    """Tests for the set-default command."""

    def test_set_default(self, store: MemoryStore) -> None:
        result = runner.invoke(app, CREDENTIALS + ["set-default", "/P1/A/Spec.pdf", "Marker"])

        assert result.exit_code == 0
        index = store.read_json("/P1/A/.pdf2md_index.json")
        assert index["files"][0]["parsers"]["default"] == "marker"

    def test_set_default_without_index(self, store: MemoryStore) -> None:
        result = runner.invoke(app, CREDENTIALS + ["set-default", "/P1/B/Offer.pdf", "docling"])

        assert result.exit_code == 1


class TestMetadataCommands:
    """Tests for meta-get and meta-set."""

    def test_meta_get_missing(self, store: MemoryStore) -> None:
        result = runner.invoke(app, CREDENTIALS + ["meta-get", "/P1/projekt.json"])

        assert result.exit_code == 0
        assert "No metadata stored yet." in result.stdout

    def test_meta_set_and_get(self, store: MemoryStore) -> None:
        document = json.dumps({"auftraggeber": "Stadt"})

        saved = runner.invoke(app, CREDENTIALS + ["meta-set", "/P1/projekt.json", document])
        loaded = runner.invoke(app, CREDENTIALS + ["meta-get", "/P1/projekt.json"])

        assert saved.exit_code == 0
        assert store.read_json("/P1/projekt.json") == {"auftraggeber": "Stadt"}
        assert "auftraggeber" in loaded.stdout

    @pytest.mark.parametrize("document", ["{broken", "[1, 2]"])
    def test_meta_set_rejects_non_objects(self, store: MemoryStore, document: str) -> None:
        result = runner.invoke(app, CREDENTIALS + ["meta-set", "/P1/projekt.json", document])

        assert result.exit_code == 2
        assert not store.exists("/P1/projekt.json")


class TestInitProjectCommand:
    """Tests for the init-project command."""

    def test_init_project(self, store: MemoryStore) -> None:
        result = runner.invoke(app, CREDENTIALS + ["init-project", "P2"])

        assert result.exit_code == 0
        assert "Ensured /P2/A" in result.stdout
        assert store.exists("/P2/B")

    def test_init_project_under_base_path(self, store: MemoryStore) -> None:
        store.add_dir("/Projects")

        result = runner.invoke(app, CREDENTIALS + ["--base-path", "Projects", "init-project", "P2"])

        assert result.exit_code == 0
        assert store.exists("/Projects/P2/A")


class TestWebCommand:
    """Tests for the web command."""

    def test_web_starts_server(self) -> None:
        """Starts uvicorn server with correct parameters."""
        with patch("uvicorn.run") as mock_uvicorn_run:
            result = runner.invoke(app, CREDENTIALS + ["web", "--port", "9000"])

        try:
            assert result.exit_code == 0
            mock_uvicorn_run.assert_called_once()
            call_kwargs = mock_uvicorn_run.call_args[1]
            assert call_kwargs["host"] == "127.0.0.1"
            assert call_kwargs["port"] == 9000
            assert web_app.dependency_overrides[get_config]().store.username == "auditor"
        finally:
            web_app.dependency_overrides.clear()

    def test_web_warns_incomplete_settings(self) -> None:
        with patch("uvicorn.run"):
            result = runner.invoke(app, ["web"])

        web_app.dependency_overrides.clear()
        assert result.exit_code == 0
        assert "WebDAV settings incomplete" in result.stdout
