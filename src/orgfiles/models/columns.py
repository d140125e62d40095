"""Column definitions for the index table.

The table layout is data rather than a compiled schema: a column definition
string such as ``"path, name, size integer"`` is parsed into an ordered list
of :class:`ColumnSpec` and, once the table has been verified, frozen into an
:class:`IndexSchema` for the lifetime of a document manager.
"""

from typing import Any, Mapping

from pydantic import field_validator, model_validator

from orgfiles.models.base import RecordModel, ensure_identifier

DEFAULT_COLUMN_DEFINITION = (
    "path, name, ext, filetype, modestr, size integer, uid integer, gid integer, mtime integer"
)

ID_COLUMN_DEFINITION = "id integer primary key autoincrement"


class ColumnSpec(RecordModel):
    name: str
    type: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return ensure_identifier(value, "column name")

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        if value is None:
            return ""
        return " ".join(str(value).split()).lower()

    def ddl(self) -> str:
        return f"{self.name} {self.type}".strip()


def _split_top_level(coldef: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    start = 0
    for i, char in enumerate(coldef):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise ValueError(f"unbalanced parentheses in definition {coldef!r}")
        elif char == "," and depth == 0:
            parts.append(coldef[start:i])
            start = i + 1
    if depth != 0:
        raise ValueError(f"unbalanced parentheses in definition {coldef!r}")
    parts.append(coldef[start:])
    return parts


def parse_column_definition(coldef: str) -> list[ColumnSpec]:
    """Parse a comma-separated ``name [type]`` list into column specs.

    Commas inside parentheses belong to the type, as in ``decimal(10, 2)``.

    Raises:
        ValueError: If the string is empty, a name is not an identifier,
            a name appears twice, or parentheses are unbalanced.
    """
    columns: list[ColumnSpec] = []
    seen: set[str] = set()
    for part in _split_top_level(coldef):
        part = part.strip()
        if not part:
            raise ValueError(f"empty column in definition {coldef!r}")
        name, _, type_ = part.partition(" ")
        spec = ColumnSpec(name=name, type=type_)
        if spec.name.lower() in seen:
            raise ValueError(f"duplicate column {spec.name!r}")
        seen.add(spec.name.lower())
        columns.append(spec)
    return columns


class IndexSchema(RecordModel):
    """Verified layout of the index table.

    ``columns`` are the table's actual columns in table order, ``projection``
    the columns records are read and written through, and ``id_column`` the
    column holding the storage-assigned document id.
    """

    table: str
    columns: tuple[ColumnSpec, ...]
    projection: tuple[str, ...]
    id_column: str = "id"

    @field_validator("table", mode="before")
    @classmethod
    def _validate_table(cls, value: Any) -> str:
        return ensure_identifier(value, "table")

    @model_validator(mode="after")
    def _validate_projection(self) -> "IndexSchema":
        names = set(self.column_names)
        missing = [name for name in self.projection if name not in names]
        if missing:
            raise ValueError(f"projection columns not in table {self.table}: {missing}")
        return self

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def knows(self, name: str) -> bool:
        return name != self.id_column and name in self.projection

    def project(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Keep only the entries of ``values`` that map to projected columns."""
        return {name: values[name] for name in self.projection if name in values and name != self.id_column}


__all__ = [
    "ColumnSpec",
    "DEFAULT_COLUMN_DEFINITION",
    "ID_COLUMN_DEFINITION",
    "IndexSchema",
    "parse_column_definition",
]
