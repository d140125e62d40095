"""Directory scanner producing metadata records for managed files."""

import os
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

import structlog

from orgfiles.errors import FileMissingError
from orgfiles.models.record import FileRecord
from orgfiles.services.metadata import extract_metadata


class DirectoryScanner:
    """Walks a directory and yields one metadata record per regular file.

    The scan is lazy and restartable: every iteration walks the directory
    again, so consumers always see its current contents. With ``sorted`` the
    records come out in full relative-path order, the same order SQLite
    produces for ``ORDER BY path``.
    """

    fields: tuple[str, ...] = FileRecord.FIELDS

    def __init__(
        self,
        directory: Path,
        recursive: bool = True,
        sorted: bool = True,
        exclude: Iterable[str] = (),
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._directory = Path(directory)
        self._recursive = recursive
        self._sorted = sorted
        self._exclude = frozenset(exclude)
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def excluded(self) -> frozenset[str]:
        return self._exclude

    def __iter__(self) -> Iterator[dict[str, Any]]:
        for record in self.records():
            yield record.to_record()

    def records(self) -> Iterator[FileRecord]:
        """Walk the directory and yield FileRecords.

        Raises:
            FileNotFoundError: If the directory does not exist.
            NotADirectoryError: If the path is not a directory.
        """
        if not self._directory.exists():
            raise FileNotFoundError(f"Directory not found: {self._directory}")
        if not self._directory.is_dir():
            raise NotADirectoryError(f"Path is not a directory: {self._directory}")

        self._logger.debug(
            "directory_scan_started",
            directory=str(self._directory),
            recursive=self._recursive,
        )

        file_count = 0
        for record in self._walk(self._directory, ""):
            file_count += 1
            yield record

        self._logger.debug(
            "directory_scan_completed",
            directory=str(self._directory),
            file_count=file_count,
        )

    def _walk(self, directory: Path, prefix: str) -> Iterator[FileRecord]:
        with os.scandir(directory) as it:
            entries = list(it)
        if self._sorted:
            # A directory sorts as "name/" so its contents land where a full path sort puts them.
            entries.sort(key=lambda e: e.name + "/" if e.is_dir(follow_symlinks=False) else e.name)

        for entry in entries:
            relpath = prefix + entry.name
            if entry.is_dir(follow_symlinks=False):
                if self._recursive:
                    yield from self._walk(Path(entry.path), relpath + "/")
                continue
            if not entry.is_file(follow_symlinks=False) or relpath in self._exclude:
                continue
            try:
                yield extract_metadata(entry.path, self._directory)
            except FileMissingError:
                self._logger.debug("file_vanished_during_scan", path=relpath)
