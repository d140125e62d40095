"""Index store: row-level access, full reloads, and queries over the index table.

Table and column names come from a verified IndexSchema and are interpolated
into SQL; values are always bound. Search predicates are the one exception:
they are trusted raw SQL (see RawPredicate).
"""

from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from orgfiles.errors import IndexStoreError, SchemaError
from orgfiles.models.columns import IndexSchema
from orgfiles.models.query import RawPredicate, ensure_predicate, normalize_order
from orgfiles.models.stream import RecordSource, RecordStream


def _bind(name: str) -> str:
    return f"c_{name}"


class IndexStore:
    """Reads and writes document rows in the index table."""

    def __init__(
        self,
        engine: Engine,
        schema: IndexSchema,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._engine = engine
        self._schema = schema
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def schema(self) -> IndexSchema:
        return self._schema

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def fields(self) -> tuple[str, ...]:
        return ("id", *self._schema.projection)

    def load(self, source: RecordSource) -> int:
        """Replace every row with the records currently produced by ``source``.

        Runs as a single transaction: a failure leaves the previous contents
        in place. Only fields that are also projected columns are stored.

        Returns:
            Number of rows inserted.
        """
        source_fields = set(source.fields)
        fields = [name for name in self._schema.projection if name in source_fields]
        if not fields:
            raise SchemaError(
                f"Record fields {sorted(source_fields)} share no column with table {self._schema.table}"
            )

        table = self._schema.table
        insert = text(
            f"INSERT INTO {table} ({', '.join(fields)}) VALUES ({', '.join(':' + _bind(f) for f in fields)})"
        )
        rows = [{_bind(f): record.get(f) for f in fields} for record in source]

        try:
            with self._engine.begin() as conn:
                conn.execute(text(f"DELETE FROM {table}"))
                if rows:
                    conn.execute(insert, rows)
        except SQLAlchemyError as e:
            raise IndexStoreError(f"Unable to load table {table}: {e}") from e

        self._logger.info("index_loaded", table=table, row_count=len(rows), fields=fields)
        return len(rows)

    def insert(self, values: Mapping[str, Any] | None = None) -> int:
        """Insert a row and return its storage-assigned id.

        Keys of ``values`` that are not projected columns are ignored.
        """
        table = self._schema.table
        row = self._schema.project(values or {})
        if row:
            statement = text(
                f"INSERT INTO {table} ({', '.join(row)}) VALUES ({', '.join(':' + _bind(name) for name in row)})"
            )
        else:
            statement = text(f"INSERT INTO {table} DEFAULT VALUES")

        try:
            with self._engine.begin() as conn:
                result = conn.execute(statement, {_bind(name): value for name, value in row.items()})
                doc_id = result.lastrowid
        except SQLAlchemyError as e:
            raise IndexStoreError(f"Unable to insert into {table}: {e}") from e

        if doc_id is None:
            raise IndexStoreError(f"Insert into {table} returned no row id")
        return int(doc_id)

    def update(self, doc_id: int, values: Mapping[str, Any]) -> int:
        """Set the given columns on one row; returns the number of rows changed."""
        row = self._schema.project(values)
        if not row:
            return 0
        table = self._schema.table
        assignments = ", ".join(f"{name} = :{_bind(name)}" for name in row)
        statement = text(f"UPDATE {table} SET {assignments} WHERE {self._schema.id_column} = :doc_id")
        params = {_bind(name): value for name, value in row.items()}
        params["doc_id"] = doc_id

        try:
            with self._engine.begin() as conn:
                return conn.execute(statement, params).rowcount
        except SQLAlchemyError as e:
            raise IndexStoreError(f"Unable to update row {doc_id} in {table}: {e}") from e

    def delete(self, doc_id: int) -> bool:
        table = self._schema.table
        statement = text(f"DELETE FROM {table} WHERE {self._schema.id_column} = :doc_id")
        try:
            with self._engine.begin() as conn:
                return conn.execute(statement, {"doc_id": doc_id}).rowcount > 0
        except SQLAlchemyError as e:
            raise IndexStoreError(f"Unable to delete row {doc_id} from {table}: {e}") from e

    def get(self, doc_id: int) -> dict[str, Any] | None:
        statement = text(f"{self._select_clause()} WHERE {self._schema.id_column} = :doc_id")
        try:
            with self._engine.connect() as conn:
                row = conn.execute(statement, {"doc_id": doc_id}).mappings().first()
        except SQLAlchemyError as e:
            raise IndexStoreError(f"Unable to read row {doc_id} from {self._schema.table}: {e}") from e
        return dict(row) if row is not None else None

    def get_path(self, doc_id: int) -> str | None:
        statement = text(
            f"SELECT path FROM {self._schema.table} WHERE {self._schema.id_column} = :doc_id"
        )
        try:
            with self._engine.connect() as conn:
                return conn.execute(statement, {"doc_id": doc_id}).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise IndexStoreError(f"Unable to read row {doc_id} from {self._schema.table}: {e}") from e

    def search(
        self,
        predicate: RawPredicate | str | None = None,
        order: str | Sequence[str] | None = "path",
    ) -> RecordStream:
        """Build a deferred query over the index.

        The statement runs each time the returned stream is iterated; rows of
        one pass are fetched together so no connection stays open between
        passes.
        """
        where = ensure_predicate(predicate)
        sql = self._select_clause()
        if where is not None:
            sql += f" WHERE {where}"
        sql += f" ORDER BY {normalize_order(order)}"
        statement = text(sql)

        def run() -> list[dict[str, Any]]:
            try:
                with self._engine.connect() as conn:
                    return [dict(row) for row in conn.execute(statement).mappings()]
            except SQLAlchemyError as e:
                raise IndexStoreError(f"Search failed ({sql}): {e}") from e

        self._logger.debug("search_prepared", sql=sql)
        return RecordStream(self.fields, run)

    def _select_clause(self) -> str:
        columns = ", ".join((f"{self._schema.id_column} AS id", *self._schema.projection))
        return f"SELECT {columns} FROM {self._schema.table}"


def create_engine_from_path(db_path: str) -> Engine:
    """Create a SQLAlchemy engine for an SQLite index.

    Args:
        db_path: Path to the SQLite database file, or ":memory:" for an
            in-memory index.

    Returns:
        Engine instance. In-memory engines share one connection so every
        statement sees the same database.
    """
    if db_path == ":memory:":
        return create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(f"sqlite:///{db_path}")
