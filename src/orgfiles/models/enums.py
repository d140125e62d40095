from enum import StrEnum


class FileType(StrEnum):
    REGULAR = "-"
    DIRECTORY = "d"
    SYMLINK = "l"
    CHAR_DEVICE = "c"
    BLOCK_DEVICE = "b"
    FIFO = "p"
    SOCKET = "s"
