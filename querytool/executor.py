from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from adapters.db.base import DBAdapter
from adapters.metrics.base import Metrics
from adapters.metrics.noop import NoOpMetrics
from querytool.compiler import QueryCompiler
from querytool.errors.exceptions import (
    QueryError,
    QueryExecutionError,
    QueryToolError,
    UnsafeStatementError,
)
from querytool.identifiers import resolve_request
from querytool.introspector import SchemaIntrospector
from querytool.types import (
    CompiledQuery,
    ConnectionProfile,
    Filter,
    PageSpec,
    QueryResult,
    SortSpec,
    TableDescriptor,
)
from querytool.verifier import StatementVerifier

log = logging.getLogger(__name__)

Connector = Callable[[ConnectionProfile], DBAdapter]


class TableLookup:
    """Where the executor gets table descriptors for the allow-list."""

    def get(self, profile: ConnectionProfile, table: str) -> Optional[TableDescriptor]:
        return None

    def set(self, profile: ConnectionProfile, descriptor: TableDescriptor) -> None:
        return


def _extract_count(rows: List[Dict[str, Any]]) -> int:
    if not rows:
        return 0
    value = rows[0].get("total")
    if value is None:
        value = next(iter(rows[0].values()), 0)
    return int(value or 0)


class QueryExecutor:
    """
    Run one table query end to end: connect, resolve identifiers, compile,
    count, fetch the page, close.

    The connection is closed exactly once on every exit path. Statement
    failures surface as QueryExecutionError; connection and lookup failures
    keep their own types.
    """

    name = "executor"

    def __init__(
        self,
        connector: Connector,
        introspector: Optional[SchemaIntrospector] = None,
        *,
        metrics: Optional[Metrics] = None,
        tables: Optional[TableLookup] = None,
        verifier: Optional[StatementVerifier] = None,
        mssql_schema: str = "dbo",
    ) -> None:
        self.connector = connector
        self.introspector = introspector or SchemaIntrospector(
            mssql_schema=mssql_schema
        )
        self.metrics = metrics or NoOpMetrics()
        self.tables = tables or TableLookup()
        self.verifier = verifier
        self.mssql_schema = mssql_schema

    def _timed(self, stage: str, fn: Callable[[], Any]) -> Any:
        t0 = time.perf_counter()
        try:
            return fn()
        finally:
            self.metrics.observe_stage_duration_ms(
                stage=stage, dt_ms=(time.perf_counter() - t0) * 1000
            )

    def _describe(
        self, db: DBAdapter, profile: ConnectionProfile, table: str
    ) -> TableDescriptor:
        cached = self.tables.get(profile, table)
        if cached is not None:
            return cached
        descriptor = self._timed(
            "introspect",
            lambda: self.introspector.describe_table(db, profile.database_name, table),
        )
        self.tables.set(profile, descriptor)
        return descriptor

    def _verify(self, db: DBAdapter, compiled: CompiledQuery) -> None:
        if self.verifier is None:
            return
        for sql in (compiled.count_sql, compiled.data_sql):
            res = self.verifier.verify(sql, dialect=db.dialect.sqlglot_name)
            if not res.ok:
                raise UnsafeStatementError(
                    "Compiled statement failed verification",
                    details=[res.reason],
                    extra=res.notes,
                )

    def _compile(
        self,
        db: DBAdapter,
        profile: ConnectionProfile,
        table: str,
        columns: Sequence[str],
        filters: Optional[Mapping[str, Filter]],
        sort: Optional[SortSpec],
        page: PageSpec,
    ) -> CompiledQuery:
        descriptor = self._describe(db, profile, table)
        resolved = resolve_request(descriptor, columns, filters, sort)
        compiled = QueryCompiler(db.dialect).compile(
            resolved.table,
            resolved.columns,
            resolved.filters,
            resolved.sort,
            page,
            schema=descriptor.schema or None,
        )
        self._verify(db, compiled)
        log.debug(
            "Compiled statements",
            extra={"data_sql": compiled.data_sql, "count_sql": compiled.count_sql},
        )
        return compiled

    def run(
        self,
        profile: ConnectionProfile,
        table: str,
        columns: Sequence[str],
        filters: Optional[Mapping[str, Filter]] = None,
        sort: Optional[SortSpec] = None,
        page: Optional[PageSpec] = None,
    ) -> QueryResult:
        page = page or PageSpec()
        db = self._timed("connect", lambda: self.connector(profile))
        stage = "compile"
        try:
            compiled = self._compile(db, profile, table, columns, filters, sort, page)

            stage = "count"
            count_rows, _ = self._timed(
                stage, lambda: db.execute(compiled.count_sql, compiled.params)
            )
            total_rows = _extract_count(count_rows)

            stage = "data"
            rows, _ = self._timed(
                stage, lambda: db.execute(compiled.data_sql, compiled.data_params)
            )
        except QueryError as exc:
            self.metrics.inc_stage_error(stage=stage, error_code=exc.code.value)
            self.metrics.inc_query_run(status="error")
            raise QueryExecutionError(
                f"Query execution failed: {exc.message}",
                details=[exc.message],
                extra={
                    "table": table,
                    "page": page.page,
                    "page_size": page.page_size,
                    "no_limit": page.no_limit,
                    "stage": stage,
                },
            ) from exc
        except QueryToolError as exc:
            self.metrics.inc_stage_error(stage=stage, error_code=exc.code.value)
            self.metrics.inc_query_run(status="error")
            raise
        finally:
            db.close()

        result = QueryResult.build(rows, total_rows, page)
        self.metrics.inc_query_run(status="ok")
        log.info(
            "Query completed",
            extra={
                "table": table,
                "total_rows": result.total_rows,
                "returned_rows": len(result.rows),
                "page": result.page,
            },
        )
        return result
