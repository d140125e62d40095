"""Unit tests for metadata extraction."""

import os
from pathlib import Path

import pytest

from orgfiles.errors import FileMissingError, NotFoundError
from orgfiles.models.enums import FileType
from orgfiles.services.metadata import extension, extract_metadata


class TestExtractMetadata:
    """Tests for extract_metadata."""

    def test_describes_regular_file(self, tmp_path: Path) -> None:
        target = tmp_path / "notes.txt"
        target.write_bytes(b"hello world")
        target.chmod(0o640)

        record = extract_metadata(target)

        st = target.stat()
        assert record.path == target.as_posix()
        assert record.name == "notes.txt"
        assert record.ext == "txt"
        assert record.filetype == FileType.REGULAR
        assert record.modestr == "rw-r-----"
        assert record.size == 11
        assert record.uid == st.st_uid
        assert record.gid == st.st_gid
        assert record.mtime == int(st.st_mtime)

    def test_path_is_relative_to_root(self, tmp_path: Path) -> None:
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        (nested / "c.md").write_text("# c")

        record = extract_metadata(nested / "c.md", tmp_path)

        assert record.path == "a/b/c.md"
        assert record.name == "c.md"

    def test_directory_and_symlink_types(self, tmp_path: Path) -> None:
        (tmp_path / "sub").mkdir()
        (tmp_path / "target.txt").write_text("x")
        os.symlink(tmp_path / "target.txt", tmp_path / "link.txt")

        assert extract_metadata(tmp_path / "sub").filetype == FileType.DIRECTORY
        assert extract_metadata(tmp_path / "link.txt").filetype == FileType.SYMLINK

    def test_missing_file_raises_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(FileMissingError) as exc_info:
            extract_metadata(tmp_path / "gone.txt")

        assert isinstance(exc_info.value, NotFoundError)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("a.txt", "txt"),
        ("b.nottxt", "nottxt"),
        ("archive.tar.gz", "gz"),
        ("README", ""),
        (".profile", ""),
        ("file1", ""),
    ],
)
def test_extension(name: str, expected: str) -> None:
    assert extension(name) == expected
