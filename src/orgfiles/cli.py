"""Document management CLI.

A thin command-line wrapper over DocumentManager for inspecting and editing
a managed directory by hand.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import structlog
import typer

from orgfiles.errors import DocumentStoreError
from orgfiles.services.factory import create_document_manager
from orgfiles.services.manager import DocumentManager

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    logger_factory=lambda name: structlog.PrintLogger(file=sys.stderr),
    wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
    context_class=dict,
    cache_logger_on_first_use=False,
)

logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="orgfiles",
    help="""Manage a directory of documents with an SQLite metadata index.

Examples:

  # Rebuild the index from the directory
  uv run orgfiles load -d ./docs

  # List text documents, newest first
  uv run orgfiles search "ext = 'txt'" --order "mtime desc"

  # Add a file and print its id
  uv run orgfiles add ./report.pdf

  # Print a document
  uv run orgfiles cat 3""",
    rich_markup_mode="markdown",
)

DirectoryOption = typer.Option(
    None,
    "--directory",
    "-d",
    help="Managed directory (default: current directory)",
)
IndexOption = typer.Option(
    None,
    "--index",
    "-i",
    help="SQLite index file (default: docmgt.sqlt in the managed directory)",
)


def _open(directory: Optional[str], index: Optional[str]) -> DocumentManager:
    target_dir = Path(directory) if directory else Path.cwd()
    if not target_dir.is_dir():
        logger.error("directory_not_found", directory=str(target_dir))
        raise typer.Exit(1)
    return create_document_manager(
        directory=target_dir,
        index_location=Path(index) if index else None,
    )


def _fail(error: DocumentStoreError) -> None:
    logger.error("command_failed", error=str(error), error_type=type(error).__name__)
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(1)


@app.command()
def load(
    directory: Optional[str] = DirectoryOption,
    index: Optional[str] = IndexOption,
) -> None:
    """Rebuild the index from the current contents of the directory."""
    try:
        with _open(directory, index) as manager:
            count = manager.load_db()
    except DocumentStoreError as e:
        _fail(e)
        return
    typer.echo(f"Indexed {count} files")


@app.command()
def search(
    where: Optional[str] = typer.Argument(
        None,
        help="SQL boolean expression for the WHERE clause (trusted input only)",
    ),
    order: str = typer.Option(
        "path",
        "--order",
        "-o",
        help="Comma-separated fields to order by",
    ),
    directory: Optional[str] = DirectoryOption,
    index: Optional[str] = IndexOption,
) -> None:
    """List indexed documents."""
    try:
        with _open(directory, index) as manager:
            for record in manager.search(where, order):
                typer.echo(f"{record['id']}\t{record['path']}\t{record.get('size', '')}")
    except DocumentStoreError as e:
        _fail(e)


@app.command()
def add(
    source: str = typer.Argument(..., help="File to copy into the managed directory"),
    filename: Optional[str] = typer.Option(
        None,
        "--filename",
        "-f",
        help="Stored filename (default: generated)",
    ),
    directory: Optional[str] = DirectoryOption,
    index: Optional[str] = IndexOption,
) -> None:
    """Copy a file into the store and print its id."""
    metadata = {"filename": filename} if filename else None
    try:
        with _open(directory, index) as manager:
            doc_id = manager.create_from(source, metadata)
    except DocumentStoreError as e:
        _fail(e)
        return
    typer.echo(str(doc_id))


@app.command()
def cat(
    doc_id: int = typer.Argument(..., help="Document id"),
    directory: Optional[str] = DirectoryOption,
    index: Optional[str] = IndexOption,
) -> None:
    """Write a document's content to stdout."""
    try:
        with _open(directory, index) as manager:
            content = manager.retrieve_all(doc_id)
    except DocumentStoreError as e:
        _fail(e)
        return
    typer.echo(content, nl=False)


@app.command()
def rm(
    doc_id: int = typer.Argument(..., help="Document id"),
    directory: Optional[str] = DirectoryOption,
    index: Optional[str] = IndexOption,
) -> None:
    """Delete a document and its index row."""
    try:
        with _open(directory, index) as manager:
            manager.delete(doc_id)
    except DocumentStoreError as e:
        _fail(e)
        return
    typer.echo(f"Deleted {doc_id}")


@app.command()
def version() -> None:
    """Show version information."""
    from orgfiles import __version__

    typer.echo(f"orgfiles {__version__}")
