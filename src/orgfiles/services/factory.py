"""Factory functions for creating and wiring document managers.

Provides a production factory backed by an SQLite index file and a test
factory that keeps the index in memory for fast, isolated testing.
"""

from pathlib import Path
from typing import Any

import structlog

from orgfiles.models.options import ManagerOptions
from orgfiles.services.manager import DocumentManager


def create_document_manager(
    directory: Path,
    index_location: Path | None = None,
    table: str = "files",
    index_controls_directory: bool = False,
    **options: Any,
) -> DocumentManager:
    """Create a DocumentManager with a persistent SQLite index.

    Args:
        directory: Managed directory; created if missing.
        index_location: SQLite index file. Defaults to ``docmgt.sqlt``
            inside ``directory``, which is then hidden from scans.
        table: Name of the index table.
        index_controls_directory: Treat the index as authoritative.
        **options: Any other ManagerOptions field.

    Returns:
        Configured DocumentManager ready for use.
    """
    logger = structlog.get_logger(__name__)

    manager_options = ManagerOptions(
        directory=directory,
        index_location=index_location,
        table=table,
        index_controls_directory=index_controls_directory,
        **options,
    )
    return DocumentManager(options=manager_options, logger=logger)


def create_test_document_manager(directory: Path, **options: Any) -> DocumentManager:
    """Create a DocumentManager whose index lives in memory.

    The index is rebuilt from ``directory`` on open, and each call gets
    independent storage, so tests don't interfere.
    """
    logger = structlog.get_logger(__name__)

    manager_options = ManagerOptions(directory=directory, no_index=True, **options)
    return DocumentManager(options=manager_options, logger=logger)
