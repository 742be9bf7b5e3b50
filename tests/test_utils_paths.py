"""Tests for remote path helpers."""

from __future__ import annotations

from tenderaudit.utils.paths import (
    join_path,
    last_segment,
    normalize_path,
    project_name,
    remove_base_path,
    split_document_path,
    strip_extension,
)


class TestNormalizePath:
    def test_adds_trailing_slash(self) -> None:
        assert normalize_path("/A") == "/A/"

    def test_keeps_trailing_slash(self) -> None:
        assert normalize_path("/A/") == "/A/"


class TestSplitDocumentPath:
    """Test split_document_path function."""

    def test_split(self) -> None:
        assert split_document_path("/P/A/Spec.pdf") == ("/P/A/", "Spec.pdf")

    def test_decodes_file_name(self) -> None:
        assert split_document_path("/P/A/Leistungs%20Verzeichnis.pdf") == (
            "/P/A/",
            "Leistungs Verzeichnis.pdf",
        )

    def test_root_file(self) -> None:
        assert split_document_path("/Spec.pdf") == ("/", "Spec.pdf")


class TestStripExtension:
    def test_strips_last_extension(self) -> None:
        assert strip_extension("Spec.v2.pdf") == "Spec.v2"

    def test_no_extension(self) -> None:
        assert strip_extension("README") == "README"


class TestLastSegment:
    def test_directory_href(self) -> None:
        assert last_segment("/dav/P%201/") == "P 1"

    def test_empty(self) -> None:
        assert last_segment("/") == ""


class TestJoinPath:
    def test_join(self) -> None:
        assert join_path("/klark0/", "P1", "A") == "/klark0/P1/A"

    def test_root(self) -> None:
        assert join_path("/", "P1") == "/P1"

    def test_relative(self) -> None:
        assert join_path("klark0", "P1") == "klark0/P1"


class TestBasePath:
    """Test base path stripping and project name extraction."""

    def test_remove_base_path(self) -> None:
        assert remove_base_path("/klark0/P1/A/", "klark0") == "P1/A/"

    def test_remove_base_path_exact(self) -> None:
        assert remove_base_path("/klark0", "klark0") == ""

    def test_remove_base_path_unrelated(self) -> None:
        assert remove_base_path("/other/P1", "klark0") == "/other/P1"

    def test_remove_base_path_without_base(self) -> None:
        assert remove_base_path("/klark0/P1", None) == "/klark0/P1"

    def test_project_name(self) -> None:
        assert project_name("/klark0/P1/A/Spec.pdf", "klark0") == "P1"
