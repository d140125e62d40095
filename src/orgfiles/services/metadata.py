"""Metadata extraction for a single filesystem entry."""

import os
import stat
from pathlib import Path, PurePosixPath

from orgfiles.errors import FileMissingError
from orgfiles.models.enums import FileType
from orgfiles.models.record import FileRecord

_FILETYPE_BY_MODE = (
    (stat.S_ISREG, FileType.REGULAR),
    (stat.S_ISDIR, FileType.DIRECTORY),
    (stat.S_ISLNK, FileType.SYMLINK),
    (stat.S_ISCHR, FileType.CHAR_DEVICE),
    (stat.S_ISBLK, FileType.BLOCK_DEVICE),
    (stat.S_ISFIFO, FileType.FIFO),
    (stat.S_ISSOCK, FileType.SOCKET),
)


def file_type(mode: int) -> FileType:
    for check, kind in _FILETYPE_BY_MODE:
        if check(mode):
            return kind
    raise ValueError(f"unknown file type for mode {mode:o}")


def extension(name: str) -> str:
    """Last suffix of ``name`` without the dot; empty for dotfiles and bare names."""
    return PurePosixPath(name).suffix[1:]


def extract_metadata(path: str | os.PathLike[str], root: str | os.PathLike[str] | None = None) -> FileRecord:
    """Build a FileRecord from the current state of ``path``.

    Symlinks are described, not followed. When ``root`` is given the record's
    path is relative to it in POSIX form.

    Raises:
        FileMissingError: If ``path`` does not exist at extraction time.
    """
    path = Path(path)
    try:
        st = os.lstat(path)
    except FileNotFoundError as e:
        raise FileMissingError(f"File not found: {path}") from e

    if root is not None:
        record_path = path.relative_to(root).as_posix()
    else:
        record_path = path.as_posix()

    return FileRecord(
        path=record_path,
        name=path.name,
        ext=extension(path.name),
        filetype=file_type(st.st_mode),
        modestr=stat.filemode(st.st_mode)[1:],
        size=st.st_size,
        uid=st.st_uid,
        gid=st.st_gid,
        mtime=int(st.st_mtime),
    )
