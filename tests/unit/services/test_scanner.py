"""Unit tests for the DirectoryScanner service."""

from pathlib import Path

import pytest

from orgfiles.models.record import FileRecord
from orgfiles.services.scanner import DirectoryScanner


@pytest.fixture
def tmp_directory_with_files(tmp_path: Path) -> Path:
    """Create a temporary directory with sample files for testing."""
    (tmp_path / "b.nottxt").write_text("b")
    (tmp_path / "a.txt").write_text("aaa")
    (tmp_path / "docmgt.sqlt").write_text("not really a database")

    subdir = tmp_path / "a"
    subdir.mkdir()
    (subdir / "nested.py").write_text("def foo(): pass")
    (subdir / "deeper").mkdir()
    (subdir / "deeper" / "x.md").write_text("# x")

    return tmp_path


def _paths(scanner: DirectoryScanner) -> list[str]:
    return [record["path"] for record in scanner]


class TestDirectoryScannerOrdering:
    """Tests for traversal and ordering."""

    def test_sorted_scan_matches_full_path_order(self, tmp_directory_with_files: Path) -> None:
        scanner = DirectoryScanner(tmp_directory_with_files)

        paths = _paths(scanner)

        assert paths == [
            "a.txt",
            "a/deeper/x.md",
            "a/nested.py",
            "b.nottxt",
            "docmgt.sqlt",
        ]
        assert paths == sorted(paths)

    def test_non_recursive_scan_skips_subdirectories(self, tmp_directory_with_files: Path) -> None:
        scanner = DirectoryScanner(tmp_directory_with_files, recursive=False)

        assert _paths(scanner) == ["a.txt", "b.nottxt", "docmgt.sqlt"]

    def test_yields_only_regular_files(self, tmp_directory_with_files: Path) -> None:
        (tmp_directory_with_files / "link").symlink_to(tmp_directory_with_files / "a.txt")

        records = list(DirectoryScanner(tmp_directory_with_files))

        assert {record["filetype"] for record in records} == {"-"}
        assert "link" not in [record["path"] for record in records]


class TestDirectoryScannerRecords:
    """Tests for the records the scanner produces."""

    def test_records_carry_metadata_fields(self, tmp_directory_with_files: Path) -> None:
        scanner = DirectoryScanner(tmp_directory_with_files)

        first = next(iter(scanner))

        assert scanner.fields == FileRecord.FIELDS
        assert tuple(first) == FileRecord.FIELDS
        assert first["name"] == "a.txt"
        assert first["ext"] == "txt"
        assert first["size"] == 3

    def test_records_method_yields_models(self, tmp_directory_with_files: Path) -> None:
        records = list(DirectoryScanner(tmp_directory_with_files).records())

        assert all(isinstance(record, FileRecord) for record in records)

    def test_excludes_listed_paths(self, tmp_directory_with_files: Path) -> None:
        scanner = DirectoryScanner(tmp_directory_with_files, exclude=["docmgt.sqlt", "a/nested.py"])

        assert _paths(scanner) == ["a.txt", "a/deeper/x.md", "b.nottxt"]

    def test_rescans_on_every_iteration(self, tmp_directory_with_files: Path) -> None:
        scanner = DirectoryScanner(tmp_directory_with_files, recursive=False)
        before = _paths(scanner)

        (tmp_directory_with_files / "c.txt").write_text("c")
        (tmp_directory_with_files / "a.txt").unlink()

        assert "c.txt" not in before
        assert _paths(scanner) == ["b.nottxt", "c.txt", "docmgt.sqlt"]


class TestDirectoryScannerErrorHandling:
    """Tests for error handling."""

    def test_raises_on_nonexistent_directory(self) -> None:
        scanner = DirectoryScanner(Path("/nonexistent/path"))
        with pytest.raises(FileNotFoundError):
            list(scanner)

    def test_raises_on_file_instead_of_directory(self, tmp_path: Path) -> None:
        file_path = tmp_path / "not_a_dir.txt"
        file_path.write_text("content")

        with pytest.raises(NotADirectoryError):
            list(DirectoryScanner(file_path))

    def test_handles_empty_directory(self, tmp_path: Path) -> None:
        assert list(DirectoryScanner(tmp_path)) == []
