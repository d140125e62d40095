"""Filename allocation for newly created documents."""

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

WILDCARD_ROLE = "*"


class CreateNamePolicy(Protocol):
    """Chooses the stored filename of a new document."""

    def __call__(self, directory: Path, doc_id: int, metadata: Mapping[str, Any]) -> str: ...


class SequentialNamePolicy:
    """Names documents ``<prefix><id>``, adding ``_1``, ``_2``, ... on collision.

    An explicit ``filename`` in the metadata is used verbatim. If an
    ``extensions`` map is configured, the extension for the metadata's
    ``role`` (or the ``"*"`` entry) is appended after any suffix.

    The check-then-create sequence is not atomic: two creators working on
    the same directory can pick the same name. Swap in another policy if
    that matters.
    """

    # Metadata keys read here rather than stored as columns.
    metadata_keys = frozenset({"filename", "role"})

    def __init__(self, prefix: str = "file", extensions: Mapping[str, str] | None = None) -> None:
        self._prefix = prefix
        self._extensions = dict(extensions or {})

    def __call__(self, directory: Path, doc_id: int, metadata: Mapping[str, Any]) -> str:
        filename = metadata.get("filename")
        if filename:
            return str(filename)

        base = f"{self._prefix}{doc_id}"
        ext = self._extension_for(metadata.get("role"))
        candidate = self._with_ext(base, ext)
        offset = 0
        while (directory / candidate).exists():
            offset += 1
            candidate = self._with_ext(f"{base}_{offset}", ext)
        return candidate

    def _extension_for(self, role: Any) -> str:
        if role is not None and str(role) in self._extensions:
            return self._extensions[str(role)]
        return self._extensions.get(WILDCARD_ROLE, "")

    @staticmethod
    def _with_ext(stem: str, ext: str) -> str:
        return f"{stem}.{ext}" if ext else stem
