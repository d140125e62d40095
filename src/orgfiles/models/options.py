from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from sqlalchemy.engine import Engine

from orgfiles.models.base import ensure_identifier, ensure_non_empty_text
from orgfiles.models.columns import DEFAULT_COLUMN_DEFINITION
from orgfiles.models.stream import RecordSource

DEFAULT_INDEX_NAME = "docmgt.sqlt"
DEFAULT_TABLE = "files"

NamePolicy = Callable[[Path, int, Mapping[str, Any]], str]


class ManagerOptions(BaseModel):
    """Construction options for a DocumentManager.

    ``index_location`` and ``engine`` are alternatives; ``no_index`` replaces
    both with an in-memory index that is rebuilt from the directory on open.
    """

    directory: Path = Field(default_factory=lambda: Path("."))
    iterator: Any = None
    name_policy: NamePolicy | None = None
    create_name: str = "file"
    extensions: dict[str, str] = Field(default_factory=dict)
    no_index: bool = False
    index_location: Path | None = None
    engine: Engine | None = None
    index_controls_directory: bool = False
    table: str = DEFAULT_TABLE
    coldef: str = DEFAULT_COLUMN_DEFINITION
    columns: tuple[str, ...] | None = None
    recursive: bool = True

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    @field_validator("iterator")
    @classmethod
    def _validate_iterator(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, RecordSource):
            raise ValueError("iterator must expose 'fields' and be iterable")
        return value

    @field_validator("table", mode="before")
    @classmethod
    def _validate_table(cls, value: Any) -> str:
        return ensure_identifier(value, "table")

    @field_validator("columns", mode="before")
    @classmethod
    def _validate_columns(cls, value: Any) -> tuple[str, ...] | None:
        if value is None:
            return None
        if isinstance(value, str):
            value = value.split(",")
        return tuple(ensure_identifier(name, "column") for name in value)

    @field_validator("create_name", "coldef")
    @classmethod
    def _ensure_non_empty(cls, value: str, info: ValidationInfo) -> str:
        return ensure_non_empty_text(value, info.field_name or "value")

    @field_validator("extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: Any) -> dict[str, str]:
        if value is None:
            return {}
        return {str(role): str(ext).lstrip(".") for role, ext in dict(value).items()}

    @model_validator(mode="after")
    def _validate_index_choice(self) -> "ManagerOptions":
        if self.engine is not None and self.index_location is not None:
            raise ValueError("engine and index_location are mutually exclusive")
        if self.no_index and (self.engine is not None or self.index_location is not None):
            raise ValueError("no_index cannot be combined with engine or index_location")
        return self

    def resolved_index_location(self) -> Path | None:
        """Path of the SQLite index file, or None when the index is not file-backed here."""
        if self.no_index or self.engine is not None:
            return None
        if self.index_location is not None:
            return self.index_location
        return self.directory / DEFAULT_INDEX_NAME


__all__ = ["DEFAULT_INDEX_NAME", "DEFAULT_TABLE", "ManagerOptions", "NamePolicy"]
