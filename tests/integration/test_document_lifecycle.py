"""End-to-end tests for a persistent document store.

These exercise a real SQLite index file next to the managed files, across
manager instances and with the directory being changed behind the
manager's back.
"""

from pathlib import Path

import pytest

from orgfiles.errors import FileMissingError, NotFoundError
from orgfiles.models.options import DEFAULT_INDEX_NAME
from orgfiles.services.factory import create_document_manager


@pytest.fixture
def docs(tmp_path: Path) -> Path:
    directory = tmp_path / "docs"
    directory.mkdir()
    (directory / "a.txt").write_text("alpha")
    (directory / "b.nottxt").write_text("beta")
    return directory


def _snapshot(manager) -> list[tuple]:
    return [(r["path"], r["ext"], r["size"]) for r in manager.search()]


def _scan(manager) -> list[tuple]:
    return [(r["path"], r["ext"], r["size"]) for r in manager.iterator]


class TestDocumentLifecycle:
    """Create, mutate, and delete documents against a file-backed index."""

    def test_full_lifecycle(self, docs: Path, tmp_path: Path) -> None:
        source = tmp_path / "incoming.txt"
        source.write_bytes(b"first draft\n")

        with create_document_manager(directory=docs) as manager:
            assert [r["path"] for r in manager.search(None, "path")] == ["a.txt", "b.nottxt"]

            doc_id = manager.create_from(source, {"filename": "draft.txt"})
            with manager.appending(doc_id) as handle:
                handle.write(b"second line\n")

            with manager.creating() as (handle, streamed_id):
                handle.write(b"streamed")

        with create_document_manager(directory=docs) as manager:
            assert manager.retrieve_all(doc_id) == b"first draft\nsecond line\n"
            assert manager.metadata(doc_id)["size"] == len(b"first draft\nsecond line\n")
            assert manager.metadata(streamed_id)["path"] == f"file{streamed_id}"
            assert [r["path"] for r in manager.search("ext = 'txt'")] == ["a.txt", "draft.txt"]

            manager.delete(doc_id)

            with pytest.raises(NotFoundError):
                manager.retrieve_all(doc_id)
            assert list(manager.search(f"id = {doc_id}")) == []
            assert not (docs / "draft.txt").exists()

    def test_reload_reconciles_external_changes(self, docs: Path) -> None:
        with create_document_manager(directory=docs) as manager:
            (docs / "a.txt").unlink()
            (docs / "c.txt").write_text("gamma!")
            (docs / "sub").mkdir()
            (docs / "sub" / "d.md").write_text("delta")

            stale_id = next(r["id"] for r in manager.search("path = 'a.txt'"))
            with pytest.raises(FileMissingError):
                manager.retrieve(stale_id)

            manager.load_db()
            first = _snapshot(manager)
            manager.load_db()

            assert first == _snapshot(manager) == _scan(manager)
            assert [path for path, _, _ in first] == ["b.nottxt", "c.txt", "sub/d.md"]
            assert DEFAULT_INDEX_NAME not in [path for path, _, _ in first]

    def test_reload_does_not_reuse_ids(self, docs: Path) -> None:
        with create_document_manager(directory=docs) as manager:
            before = {r["id"] for r in manager.search()}
            manager.load_db()
            after = {r["id"] for r in manager.search()}

        assert before.isdisjoint(after)
        assert min(after) > max(before)
