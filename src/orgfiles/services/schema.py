"""Schema verification for the index table."""

from collections.abc import Sequence

import structlog
from pydantic import ValidationError
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import NullType

from orgfiles.errors import SchemaError
from orgfiles.models.columns import (
    DEFAULT_COLUMN_DEFINITION,
    ID_COLUMN_DEFINITION,
    ColumnSpec,
    IndexSchema,
    parse_column_definition,
)

REQUIRED_COLUMNS = ("path",)


class SchemaVerifier:
    """Makes sure the index table exists and settles its working column list.

    If the table is missing it is created from the column definition string,
    with an autoincrementing ``id`` column in front unless the definition
    names one. If no explicit column list was requested, the table's own
    column order becomes the projection; otherwise every requested column
    must exist in the table.
    """

    def __init__(
        self,
        engine: Engine,
        table: str,
        coldef: str = DEFAULT_COLUMN_DEFINITION,
        columns: Sequence[str] | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._engine = engine
        self._table = table
        self._coldef = coldef
        self._columns = tuple(columns) if columns is not None else None
        self._logger = logger or structlog.get_logger(__name__)
        self.created = False

    def verify(self) -> IndexSchema:
        """Verify (creating if needed) the table and return its schema.

        Raises:
            SchemaError: If the table cannot be created or reflected, lacks a
                required column, or does not carry a requested column.
        """
        table_columns, rowid_alias = self._reflect()
        if not table_columns:
            self._create_table()
            table_columns, rowid_alias = self._reflect()
            if not table_columns:
                raise SchemaError(f"Table {self._table} still missing after creation")

        names = [column.name for column in table_columns]
        for required in REQUIRED_COLUMNS:
            if required not in names:
                raise SchemaError(f"Table {self._table} has no {required!r} column")

        # Documents are addressed by rowid; an "id" column that does not alias it
        # is left out of the projection so it cannot shadow the document id.
        id_column = rowid_alias or "rowid"
        hidden = {"id", id_column}
        if self._columns is None:
            projection = tuple(name for name in names if name not in hidden)
        else:
            missing = [name for name in self._columns if name not in names]
            if missing:
                raise SchemaError(f"Columns {missing} are not defined in table {self._table}")
            absent = [name for name in REQUIRED_COLUMNS if name not in self._columns]
            if absent:
                raise SchemaError(f"Column list {list(self._columns)} must include {absent}")
            projection = tuple(name for name in self._columns if name not in hidden)

        try:
            schema = IndexSchema(
                table=self._table,
                columns=tuple(table_columns),
                projection=projection,
                id_column=id_column,
            )
        except ValidationError as e:
            raise SchemaError(str(e)) from e

        self._logger.debug(
            "schema_verified",
            table=self._table,
            columns=list(names),
            projection=list(projection),
            id_column=id_column,
        )
        return schema

    def _reflect(self) -> tuple[list[ColumnSpec], str | None]:
        """Return the table's columns and the name of its rowid alias, if any."""
        try:
            inspector = inspect(self._engine)
            if not inspector.has_table(self._table):
                return [], None
            reflected = inspector.get_columns(self._table)
            primary_key = inspector.get_pk_constraint(self._table)["constrained_columns"]
        except SQLAlchemyError as e:
            raise SchemaError(f"Unable to inspect table {self._table}: {e}") from e

        rowid_alias = None
        if len(primary_key) == 1:
            pk_column = next(column for column in reflected if column["name"] == primary_key[0])
            pk_type = pk_column["type"]
            if not isinstance(pk_type, NullType) and str(pk_type).upper() == "INTEGER":
                rowid_alias = pk_column["name"]

        try:
            columns = [
                ColumnSpec(
                    name=column["name"],
                    type="" if isinstance(column["type"], NullType) else str(column["type"]),
                )
                for column in reflected
            ]
        except ValidationError as e:
            raise SchemaError(f"Table {self._table} has unusable column names: {e}") from e
        return columns, rowid_alias

    def _create_table(self) -> None:
        try:
            specs = parse_column_definition(self._coldef)
        except (ValueError, ValidationError) as e:
            raise SchemaError(f"Invalid column definition {self._coldef!r}: {e}") from e

        definitions = [spec.ddl() for spec in specs]
        if not any(spec.name.lower() == "id" for spec in specs):
            definitions.insert(0, ID_COLUMN_DEFINITION)

        ddl = f"CREATE TABLE {self._table} ({', '.join(definitions)})"
        try:
            with self._engine.begin() as conn:
                conn.execute(text(ddl))
        except SQLAlchemyError as e:
            raise SchemaError(f"Unable to create table {self._table}: {e}") from e

        self.created = True
        self._logger.info("schema_table_created", table=self._table, ddl=ddl)
