from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple

from adapters.db.base import DBAdapter
from adapters.metrics.base import Metrics
from adapters.metrics.noop import NoOpMetrics
from querytool.dialects import SQLDialect
from querytool.errors.exceptions import (
    DatabaseNotFoundError,
    QueryError,
    TableNotFoundError,
)
from querytool.type_map import friendly_type
from querytool.types import ColumnDescriptor, Dialect, TableDescriptor

log = logging.getLogger(__name__)


# ------------------------------ catalogs ------------------------------


class _Catalog:
    """Catalog statements for one dialect. All take "?" placeholders."""

    namespace_sql: str
    tables_sql: str
    columns_sql: str
    estimate_sql: str

    def __init__(self, dialect: SQLDialect) -> None:
        self.dialect = dialect

    def namespace(self, database_name: str, mssql_schema: str) -> str:
        raise NotImplementedError

    def count_sql(self, namespace: str, table: str) -> str:
        return (
            "SELECT COUNT(*) AS row_count FROM "
            f"{self.dialect.qualified_table(table, namespace)}"
        )

    def column(self, row: Dict[str, Any]) -> ColumnDescriptor:
        raise NotImplementedError


class _MySQLCatalog(_Catalog):
    namespace_sql = (
        "SELECT schema_name AS name FROM information_schema.schemata "
        "WHERE schema_name = ?"
    )
    tables_sql = """
        SELECT table_name AS name, table_schema AS `schema`
        FROM information_schema.tables
        WHERE table_schema = ?
        ORDER BY table_name
    """
    columns_sql = """
        SELECT column_name AS name, data_type AS data_type,
               is_nullable AS nullable, column_key AS column_key
        FROM information_schema.columns
        WHERE table_schema = ? AND table_name = ?
        ORDER BY ordinal_position
    """
    estimate_sql = """
        SELECT table_rows AS row_count
        FROM information_schema.tables
        WHERE table_schema = ? AND table_name = ?
    """

    def namespace(self, database_name: str, mssql_schema: str) -> str:
        return database_name

    def column(self, row: Dict[str, Any]) -> ColumnDescriptor:
        native = str(row.get("data_type") or "")
        return ColumnDescriptor(
            name=str(row["name"]),
            native_type=native,
            friendly_type=friendly_type(native),
            nullable=str(row.get("nullable") or "").upper() == "YES",
            is_primary_key=str(row.get("column_key") or "").upper() == "PRI",
        )


class _MSSQLCatalog(_Catalog):
    namespace_sql = "SELECT name FROM sys.schemas WHERE name = ?"
    tables_sql = """
        SELECT t.name AS name, s.name AS [schema]
        FROM sys.tables t
        JOIN sys.schemas s ON t.schema_id = s.schema_id
        WHERE s.name = ?
        ORDER BY t.name
    """
    columns_sql = """
        SELECT c.name AS name, ty.name AS data_type, c.is_nullable AS nullable,
               CASE WHEN pk.column_id IS NULL THEN 0 ELSE 1 END AS is_primary_key
        FROM sys.columns c
        JOIN sys.tables t ON c.object_id = t.object_id
        JOIN sys.schemas s ON t.schema_id = s.schema_id
        JOIN sys.types ty ON c.user_type_id = ty.user_type_id
        LEFT JOIN (
            SELECT ic.object_id, ic.column_id
            FROM sys.index_columns ic
            JOIN sys.indexes i
              ON ic.object_id = i.object_id AND ic.index_id = i.index_id
            WHERE i.is_primary_key = 1
        ) pk ON pk.object_id = c.object_id AND pk.column_id = c.column_id
        WHERE s.name = ? AND t.name = ?
        ORDER BY c.column_id
    """
    # Heap (0) and clustered index (1) partitions hold each row exactly once.
    estimate_sql = """
        SELECT SUM(p.rows) AS row_count
        FROM sys.partitions p
        JOIN sys.tables t ON p.object_id = t.object_id
        JOIN sys.schemas s ON t.schema_id = s.schema_id
        WHERE s.name = ? AND t.name = ? AND p.index_id IN (0, 1)
    """

    def namespace(self, database_name: str, mssql_schema: str) -> str:
        return mssql_schema

    def column(self, row: Dict[str, Any]) -> ColumnDescriptor:
        native = str(row.get("data_type") or "")
        return ColumnDescriptor(
            name=str(row["name"]),
            native_type=native,
            friendly_type=friendly_type(native),
            nullable=bool(row.get("nullable")),
            is_primary_key=bool(row.get("is_primary_key")),
        )


_CATALOGS = {
    Dialect.MYSQL: _MySQLCatalog,
    Dialect.MSSQL: _MSSQLCatalog,
}


def _first_value(rows: List[Dict[str, Any]]) -> Any:
    if not rows:
        return None
    return next(iter(rows[0].values()), None)


# ---------------------------- introspector ----------------------------


class SchemaIntrospector:
    """
    Discover tables, columns and row counts from a live catalog.

    Listing fans out one task per table over the single open connection;
    the adapter serializes the statements themselves. A failed exact count
    degrades to the catalog estimate and then to 0 without aborting the
    listing.
    """

    def __init__(
        self, *, mssql_schema: str = "dbo", metrics: Optional[Metrics] = None
    ) -> None:
        self.mssql_schema = mssql_schema
        self.metrics = metrics or NoOpMetrics()

    def _catalog(self, db: DBAdapter) -> _Catalog:
        return _CATALOGS[db.dialect.name](db.dialect)

    def _namespace(self, db: DBAdapter, database_name: str) -> Tuple[_Catalog, str]:
        catalog = self._catalog(db)
        namespace = catalog.namespace(database_name, self.mssql_schema)
        rows, _ = db.execute(catalog.namespace_sql, [namespace])
        if not rows:
            raise DatabaseNotFoundError(
                f"Database or schema {namespace!r} not found",
                extra={"namespace": namespace},
            )
        return catalog, namespace

    def _columns(
        self, db: DBAdapter, catalog: _Catalog, namespace: str, table: str
    ) -> List[ColumnDescriptor]:
        rows, _ = db.execute(catalog.columns_sql, [namespace, table])
        return [catalog.column(r) for r in rows]

    def _row_count(
        self, db: DBAdapter, catalog: _Catalog, namespace: str, table: str
    ) -> int:
        try:
            rows, _ = db.execute(catalog.count_sql(namespace, table))
            return int(_first_value(rows) or 0)
        except QueryError as exc:
            log.warning(
                "Exact row count failed; using catalog estimate",
                extra={"table": table, "error": str(exc)},
            )

        try:
            rows, _ = db.execute(catalog.estimate_sql, [namespace, table])
            estimate = _first_value(rows)
        except QueryError as exc:
            log.warning(
                "Catalog row estimate failed; reporting 0",
                extra={"table": table, "error": str(exc)},
            )
            estimate = None

        if estimate is None:
            self.metrics.inc_row_count_fallback(level="zero")
            return 0
        self.metrics.inc_row_count_fallback(level="estimate")
        return int(estimate)

    def _describe(
        self, db: DBAdapter, catalog: _Catalog, namespace: str, row: Dict[str, Any]
    ) -> TableDescriptor:
        name = str(row["name"])
        columns = self._columns(db, catalog, namespace, name)
        return TableDescriptor(
            name=name,
            schema=str(row.get("schema") or namespace),
            row_count=self._row_count(db, catalog, namespace, name),
            columns=columns,
        )

    def list_tables(self, db: DBAdapter, database_name: str) -> List[TableDescriptor]:
        t0 = time.perf_counter()
        catalog, namespace = self._namespace(db, database_name)
        table_rows, _ = db.execute(catalog.tables_sql, [namespace])

        if not table_rows:
            return []

        with ThreadPoolExecutor(max_workers=len(table_rows)) as pool:
            tables = list(
                pool.map(
                    lambda r: self._describe(db, catalog, namespace, r), table_rows
                )
            )

        dt_ms = (time.perf_counter() - t0) * 1000
        self.metrics.observe_stage_duration_ms(stage="introspect", dt_ms=dt_ms)
        log.info(
            "Listed tables",
            extra={
                "dialect": db.dialect.name.value,
                "namespace": namespace,
                "table_count": len(tables),
                "duration_ms": round(dt_ms, 1),
            },
        )
        return tables

    def describe_table(
        self, db: DBAdapter, database_name: str, table_name: str
    ) -> TableDescriptor:
        """Columns of one table, without a row count."""
        catalog = self._catalog(db)
        namespace = catalog.namespace(database_name, self.mssql_schema)
        columns = self._columns(db, catalog, namespace, table_name)
        if not columns:
            raise TableNotFoundError(
                f"Table {table_name!r} not found in {namespace!r}",
                extra={"table": table_name, "namespace": namespace},
            )
        return TableDescriptor(
            name=table_name, schema=namespace, row_count=0, columns=columns
        )
