"""orgfiles - Filesystem-backed document management with an SQLite metadata index."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("orgfiles")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = ["__version__"]
