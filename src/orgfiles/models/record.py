from typing import ClassVar

from pydantic import Field

from orgfiles.models.base import RecordModel
from orgfiles.models.enums import FileType


class FileRecord(RecordModel):
    """Metadata derived from a single filesystem entry.

    Every field is recomputed from the file itself; none of it is
    authoritative in the index.
    """

    FIELDS: ClassVar[tuple[str, ...]] = (
        "path",
        "name",
        "ext",
        "filetype",
        "modestr",
        "size",
        "uid",
        "gid",
        "mtime",
    )

    path: str
    name: str
    ext: str = ""
    filetype: FileType
    modestr: str = Field(min_length=9, max_length=9)
    size: int = Field(ge=0)
    uid: int
    gid: int
    mtime: int


__all__ = ["FileRecord"]
