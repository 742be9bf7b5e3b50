"""Tests for the virtual directory view."""

from __future__ import annotations

import pytest

from tenderaudit.index.view import canonical_path, decorate, is_self_entry, present
from tenderaudit.models import DirectoryEntry


def _dir(name: str, path: str) -> DirectoryEntry:
    return DirectoryEntry(name=name, path=path, kind="directory")


def _file(name: str, path: str, size: int = 10) -> DirectoryEntry:
    return DirectoryEntry(name=name, path=path, kind="file", size=size)


@pytest.fixture
def listing() -> list[DirectoryEntry]:
    return [
        _dir("A", "/P1/A"),
        _file(".pdf2md_index.json", "/P1/A/.pdf2md_index.json"),
        _file("Spec.pdf", "/P1/A/Spec.pdf"),
        _dir("archive", "/P1/A/archive"),
        _dir("rendered", "/P1/A/rendered"),
        _file(".DS_Store", "/P1/A/.DS_Store"),
    ]


class TestPresent:
    """Test present function."""

    def test_hidden_entries_excluded_by_default(self, listing: list[DirectoryEntry]) -> None:
        names = [entry.name for entry in present(listing, "/P1/A/")]

        assert ".pdf2md_index.json" not in names
        assert ".DS_Store" not in names

    def test_hidden_entries_included_on_request(self, listing: list[DirectoryEntry]) -> None:
        names = [entry.name for entry in present(listing, "/P1/A/", show_hidden=True)]

        assert ".pdf2md_index.json" in names
        assert ".DS_Store" in names

    def test_exclude_names_case_sensitive(self, listing: list[DirectoryEntry]) -> None:
        names = [entry.name for entry in present(listing, "/P1/A/", exclude_names=["archive"])]
        assert "archive" not in names

        names = [entry.name for entry in present(listing, "/P1/A/", exclude_names=["Archive"])]
        assert "archive" in names

    def test_directories_get_trailing_slash(self, listing: list[DirectoryEntry]) -> None:
        paths = [entry.path for entry in present(listing, "/P1/A/")]

        assert "/P1/A/rendered/" in paths
        assert "/P1/A/Spec.pdf" in paths

    def test_order_preserved(self, listing: list[DirectoryEntry]) -> None:
        names = [entry.name for entry in present(listing, "/P1/A")]

        assert names == ["Spec.pdf", "archive", "rendered"]

    @pytest.mark.parametrize("self_path", ["/P1/A", "/P1/A/"])
    def test_self_entry_excluded_regardless_of_position(self, self_path: str) -> None:
        entries = [
            _file("Spec.pdf", "/P1/A/Spec.pdf"),
            _dir("B", "/P1/A/B/"),
            _dir("A", "/P1/A/"),
        ]

        paths = [entry.path for entry in present(entries, self_path)]

        assert paths == ["/P1/A/Spec.pdf", "/P1/A/B/"]

    def test_input_not_mutated(self, listing: list[DirectoryEntry]) -> None:
        present(listing, "/P1/A/")

        assert listing[4].path == "/P1/A/rendered"


class TestSelfEntry:
    """Test is_self_entry heuristics."""

    def test_encoded_and_decoded_paths_match(self) -> None:
        assert is_self_entry("/P%201/A/", "/P 1/A")

    def test_server_prefix(self) -> None:
        """A server-side prefix in front of the listed path still counts as self."""
        assert is_self_entry("/disk/klark0/", "klark0")

    def test_same_named_child_is_not_self(self) -> None:
        assert not is_self_entry("/klark0/klark0/", "/klark0")

    def test_sibling_is_not_self(self) -> None:
        assert not is_self_entry("/P1/B/", "/P1/A/")


class TestCanonicalPath:
    def test_file_without_trailing_slash(self) -> None:
        assert canonical_path(_file("x", "/A/x/")) == "/A/x"

    def test_directory_with_trailing_slash(self) -> None:
        assert canonical_path(_dir("x", "/A/x")) == "/A/x/"


class TestDecorate:
    """Test decorate function."""

    def test_decorates_files_only(self) -> None:
        entries = [_file("Spec.pdf", "/A/Spec.pdf"), _dir("Spec.pdf", "/A/Spec.pdf/")]
        info = {"Spec.pdf": {"det": ["docling", "marker"], "default": "marker", "status": "done"}}

        file_entry, dir_entry = decorate(entries, info)

        assert file_entry.has_parser
        assert file_entry.parser_det == ["docling", "marker"]
        assert file_entry.parser_default == "marker"
        assert file_entry.parser_status == "done"
        assert file_entry.size == 10
        assert not dir_entry.has_parser
        assert dir_entry.parser_det == []

    def test_default_alone_counts_as_parser(self) -> None:
        entries = [_file("Spec.pdf", "/A/Spec.pdf")]

        (entry,) = decorate(entries, {"Spec.pdf": {"det": [], "default": "ocr", "status": ""}})

        assert entry.has_parser

    def test_unknown_file(self) -> None:
        (entry,) = decorate([_file("Other.pdf", "/A/Other.pdf")], {})

        assert not entry.has_parser
        assert entry.parser_default == ""
