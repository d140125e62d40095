"""Per-manager table of open write handles."""

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import structlog


@dataclass(frozen=True)
class TrackedHandle:
    handle: BinaryIO
    path: Path


class HandleTable:
    """Maps a document id to the write handle awaiting its close call.

    Tracking a second handle for an id replaces the first without closing
    it; the replaced handle is logged and left to the caller.
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._handles: dict[int, TrackedHandle] = {}
        self._logger = logger or structlog.get_logger(__name__)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def ids(self) -> list[int]:
        return list(self._handles)

    def track(self, doc_id: int, handle: BinaryIO, path: Path) -> None:
        previous = self._handles.get(doc_id)
        if previous is not None and previous.handle is not handle:
            self._logger.warning(
                "tracked_handle_orphaned",
                document_id=doc_id,
                path=str(previous.path),
                closed=previous.handle.closed,
            )
        self._handles[doc_id] = TrackedHandle(handle=handle, path=path)

    def release(self, doc_id: int) -> TrackedHandle | None:
        """Stop tracking ``doc_id`` and return its handle, if any."""
        return self._handles.pop(doc_id, None)
