"""Document manager over a filesystem directory and its metadata index.

The directory holds the content, the index table holds one row per document.
Every operation that changes content re-extracts the file's metadata and
writes it back to the row. Nothing here is transactional across the two:
a failure between the row write and the file write leaves them diverged,
and the divergence is logged rather than compensated.
"""

import shutil
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import Any, BinaryIO

import structlog
from sqlalchemy.engine import Engine

from orgfiles.errors import (
    DocumentIOError,
    DocumentStoreError,
    FileMissingError,
    IndexStoreError,
    NotFoundError,
    SourceNotAFileError,
    SourceNotFoundError,
)
from orgfiles.models.base import ensure_metadata_dict
from orgfiles.models.columns import IndexSchema
from orgfiles.models.options import ManagerOptions
from orgfiles.models.query import RawPredicate
from orgfiles.models.stream import RecordSource, RecordStream
from orgfiles.services.handles import HandleTable
from orgfiles.services.index_store import IndexStore, create_engine_from_path
from orgfiles.services.metadata import extract_metadata
from orgfiles.services.naming import SequentialNamePolicy
from orgfiles.services.scanner import DirectoryScanner
from orgfiles.services.schema import SchemaVerifier

# Fields refreshed from the file after every content change.
RESYNC_FIELDS = ("ext", "filetype", "modestr", "size", "uid", "gid", "mtime")

SQLITE_SIDE_FILES = ("", "-journal", "-wal", "-shm")


class DocumentManager:
    """Create, retrieve, update, append, and delete documents in a directory.

    Write operations that stream (``create``, ``update``, ``append``) hand
    back an open binary handle tracked by document id; the matching
    ``*_close`` call closes it and refreshes the index row. The
    ``creating``/``updating``/``appending`` context managers pair the two.
    """

    def __init__(
        self,
        options: ManagerOptions | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._options = options or ManagerOptions()
        self._logger = logger or structlog.get_logger(__name__)
        self._directory = Path(self._options.directory)
        self._directory.mkdir(parents=True, exist_ok=True)

        self._engine, self._owns_engine = self._open_engine()
        verifier = SchemaVerifier(
            engine=self._engine,
            table=self._options.table,
            coldef=self._options.coldef,
            columns=self._options.columns,
            logger=self._logger,
        )
        try:
            schema = verifier.verify()
        except DocumentStoreError:
            if self._owns_engine:
                self._engine.dispose()
            raise

        self._index = IndexStore(engine=self._engine, schema=schema, logger=self._logger)
        self._name_policy = self._options.name_policy or SequentialNamePolicy(
            prefix=self._options.create_name,
            extensions=self._options.extensions,
        )
        self._handles = HandleTable(logger=self._logger)
        self._iterator: RecordSource = (
            self._options.iterator if self._options.iterator is not None else self._build_scanner()
        )

        # An in-memory index starts empty every time; a freshly created table
        # under directory control is filled from what is already there.
        if self._options.no_index or (verifier.created and not self._options.index_controls_directory):
            self.load_db()

        self._logger.info(
            "document_manager_opened",
            directory=str(self._directory),
            table=schema.table,
            no_index=self._options.no_index,
        )

    def __enter__(self) -> "DocumentManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def options(self) -> ManagerOptions:
        return self._options

    @property
    def schema(self) -> IndexSchema:
        return self._index.schema

    @property
    def iterator(self) -> RecordSource:
        """The record source used to (re)load the index."""
        return self._iterator

    @property
    def open_handles(self) -> list[int]:
        return self._handles.ids()

    def iterate(self) -> Iterator[dict[str, Any]]:
        """Iterate documents from whichever side is authoritative."""
        if self._options.index_controls_directory:
            return iter(self.search())
        return (dict(record) for record in self._iterator)

    def load_db(self) -> int:
        """Replace the index contents with a fresh scan of the directory."""
        return self._index.load(self._iterator)

    def search(
        self,
        predicate: RawPredicate | str | None = None,
        order: str | Sequence[str] | None = "path",
    ) -> RecordStream:
        """Query the index.

        ``predicate`` is raw SQL placed in the WHERE clause without escaping;
        never build it from untrusted input.
        """
        return self._index.search(predicate, order)

    def metadata(self, doc_id: int) -> dict[str, Any]:
        """Return the index row for ``doc_id`` without touching the file."""
        row = self._index.get(doc_id)
        if row is None:
            raise NotFoundError(f"ID {doc_id} not found in store")
        return row

    # Create

    def create(self, metadata: Mapping[str, Any] | None = None) -> tuple[BinaryIO, int]:
        """Create an empty document and return a write handle and its id."""
        metadata = ensure_metadata_dict(metadata)
        doc_id, target = self._allocate(metadata)
        try:
            handle = target.open("wb")
        except OSError as e:
            self._logger.warning("orphaned_index_row", document_id=doc_id, path=str(target))
            raise DocumentIOError(f"Can't open created document {target}: {e}") from e

        self._handles.track(doc_id, handle, target)
        self._logger.debug("document_created", document_id=doc_id, path=str(target))
        return handle, doc_id

    def create_close(self, doc_id: int) -> None:
        self._close(doc_id)

    def create_from(self, source: str | Path, metadata: Mapping[str, Any] | None = None) -> int:
        """Create a document by copying ``source`` and return its id."""
        source = self._check_source(source)
        metadata = ensure_metadata_dict(metadata)
        doc_id, target = self._allocate(metadata)
        try:
            shutil.copyfile(source, target)
        except OSError as e:
            self._logger.warning("orphaned_index_row", document_id=doc_id, path=str(target))
            raise DocumentIOError(f"Can't copy {source} to {target}: {e}") from e

        self._sync_metadata(doc_id, target)
        self._logger.debug("document_created", document_id=doc_id, path=str(target), source=str(source))
        return doc_id

    @contextmanager
    def creating(self, metadata: Mapping[str, Any] | None = None) -> Iterator[tuple[BinaryIO, int]]:
        handle, doc_id = self.create(metadata)
        try:
            yield handle, doc_id
        finally:
            self.create_close(doc_id)

    # Retrieve

    def retrieve(self, doc_id: int) -> BinaryIO:
        """Open the document for reading. The caller closes the stream."""
        path = self._storage_path(doc_id)
        try:
            return path.open("rb")
        except OSError as e:
            raise DocumentIOError(f"Can't open ID {doc_id}: {e}") from e

    def retrieve_all(self, doc_id: int) -> bytes:
        path = self._storage_path(doc_id)
        try:
            return path.read_bytes()
        except OSError as e:
            raise DocumentIOError(f"Can't read ID {doc_id}: {e}") from e

    # Update / append

    def update(self, doc_id: int) -> BinaryIO:
        """Truncate the document and return a tracked write handle."""
        return self._open_tracked(doc_id, "wb")

    def update_close(self, doc_id: int) -> None:
        self._close(doc_id)

    def update_from(self, doc_id: int, source: str | Path) -> None:
        """Replace the document's content with a copy of ``source``."""
        path = self._storage_path(doc_id)
        source = self._check_source(source)
        try:
            shutil.copyfile(source, path)
        except OSError as e:
            raise DocumentIOError(f"Can't copy {source} to ID {doc_id}: {e}") from e
        self._sync_metadata(doc_id, path)
        self._logger.debug("document_updated", document_id=doc_id, source=str(source))

    @contextmanager
    def updating(self, doc_id: int) -> Iterator[BinaryIO]:
        handle = self.update(doc_id)
        try:
            yield handle
        finally:
            self.update_close(doc_id)

    def append(self, doc_id: int) -> BinaryIO:
        """Return a tracked handle positioned at the end of the document."""
        return self._open_tracked(doc_id, "ab")

    def append_close(self, doc_id: int) -> None:
        self._close(doc_id)

    def append_from(self, doc_id: int, source: str | Path) -> None:
        """Append the full content of ``source`` to the document."""
        path = self._storage_path(doc_id)
        source = self._check_source(source)
        try:
            data = source.read_bytes()
            with path.open("ab") as handle:
                handle.write(data)
        except OSError as e:
            raise DocumentIOError(f"Can't append {source} to ID {doc_id}: {e}") from e
        self._sync_metadata(doc_id, path)
        self._logger.debug("document_appended", document_id=doc_id, source=str(source), size=len(data))

    @contextmanager
    def appending(self, doc_id: int) -> Iterator[BinaryIO]:
        handle = self.append(doc_id)
        try:
            yield handle
        finally:
            self.append_close(doc_id)

    # Delete

    def delete(self, doc_id: int) -> None:
        """Remove the document's file, then its index row.

        The row is only deleted once the file is gone, so a failed removal
        leaves both in place.
        """
        path = self._storage_path(doc_id)
        tracked = self._handles.release(doc_id)
        if tracked is not None:
            tracked.handle.close()

        try:
            path.unlink()
        except OSError as e:
            raise DocumentIOError(f"Can't remove ID {doc_id}: {e}") from e

        try:
            self._index.delete(doc_id)
        except IndexStoreError:
            self._logger.error("index_row_orphaned", document_id=doc_id, path=str(path))
            raise
        self._logger.debug("document_deleted", document_id=doc_id, path=str(path))

    def close(self) -> None:
        """Close every tracked handle, then release the index connection."""
        failures: list[DocumentStoreError] = []
        for doc_id in self._handles.ids():
            try:
                self._close(doc_id)
            except DocumentStoreError as e:
                self._logger.warning("handle_close_failed", document_id=doc_id, error=str(e))
                failures.append(e)
        if self._owns_engine:
            self._engine.dispose()
        if failures:
            raise failures[0]

    # Internals

    def _open_engine(self) -> tuple[Engine, bool]:
        if self._options.engine is not None:
            return self._options.engine, False
        if self._options.no_index:
            return create_engine_from_path(":memory:"), True
        location = self._options.resolved_index_location()
        location.parent.mkdir(parents=True, exist_ok=True)
        return create_engine_from_path(str(location)), True

    def _index_file(self) -> Path | None:
        location = self._options.resolved_index_location()
        if location is not None:
            return location
        url = self._engine.url
        if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
            return Path(url.database)
        return None

    def _build_scanner(self) -> DirectoryScanner:
        exclude: list[str] = []
        index_file = self._index_file()
        if index_file is not None:
            root = self._directory.resolve()
            resolved = index_file.resolve()
            if resolved.is_relative_to(root):
                relpath = resolved.relative_to(root).as_posix()
                exclude = [relpath + suffix for suffix in SQLITE_SIDE_FILES]
        return DirectoryScanner(
            self._directory,
            recursive=self._options.recursive,
            sorted=True,
            exclude=exclude,
            logger=self._logger,
        )

    def _allocate(self, metadata: dict[str, Any]) -> tuple[int, Path]:
        """Insert the row, pick the filename, and record it on the row."""
        schema = self._index.schema
        consumed = getattr(self._name_policy, "metadata_keys", frozenset())
        dropped = sorted(key for key in metadata if not schema.knows(key) and key not in consumed)
        if dropped:
            self._logger.debug("metadata_fields_ignored", fields=dropped)

        doc_id = self._index.insert(metadata)
        filename = self._name_policy(self._directory, doc_id, metadata)
        if not self._index.update(doc_id, {"name": PurePosixPath(filename).name, "path": filename}):
            self._logger.warning("orphaned_index_row", document_id=doc_id, path=filename)
            raise IndexStoreError(f"Row for ID {doc_id} could not be found after insert")
        return doc_id, self._directory / filename

    def _storage_path(self, doc_id: int) -> Path:
        relpath = self._index.get_path(doc_id)
        if relpath is None:
            raise NotFoundError(f"ID {doc_id} not found in store")
        path = self._directory / relpath
        if not path.is_file():
            raise FileMissingError(f"File not found for ID {doc_id}: {relpath}")
        return path

    def _open_tracked(self, doc_id: int, mode: str) -> BinaryIO:
        path = self._storage_path(doc_id)
        try:
            handle = path.open(mode)
        except OSError as e:
            raise DocumentIOError(f"Can't open ID {doc_id}: {e}") from e
        self._handles.track(doc_id, handle, path)
        return handle

    def _close(self, doc_id: int) -> None:
        tracked = self._handles.release(doc_id)
        if tracked is None:
            return
        try:
            tracked.handle.close()
        except OSError as e:
            raise DocumentIOError(f"Can't close ID {doc_id}: {e}") from e
        self._sync_metadata(doc_id, tracked.path)

    def _sync_metadata(self, doc_id: int, path: Path) -> None:
        record = extract_metadata(path, self._directory).to_record()
        values = self._index.schema.project({name: record[name] for name in RESYNC_FIELDS})
        if values and not self._index.update(doc_id, values):
            self._logger.warning("index_row_missing", document_id=doc_id, path=str(path))
            raise NotFoundError(f"ID {doc_id} no longer in store; metadata for {path} not recorded")

    @staticmethod
    def _check_source(source: str | Path) -> Path:
        source = Path(source)
        if not source.exists():
            raise SourceNotFoundError(f"{source} does not exist")
        if not source.is_file():
            raise SourceNotAFileError(f"{source} is not a file")
        return source
