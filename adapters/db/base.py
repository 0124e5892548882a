from __future__ import annotations

import base64
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from querytool.dialects import SQLDialect
from querytool.errors.exceptions import QueryError

log = logging.getLogger(__name__)

Rows = List[Dict[str, Any]]


def _cell(value: Any) -> Any:
    """Binary cells (BLOB, varbinary, rowversion) come back base64-encoded."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value


class DBAdapter(Protocol):
    """One open connection to a target database."""

    name: str
    dialect: SQLDialect

    def execute(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> Tuple[Rows, List[str]]:
        """Run one statement with "?" placeholders; return (rows, columns)."""

    def ping(self) -> None:
        """Round-trip a trivial statement. Raise on failure."""

    def close(self) -> None:
        """Release the connection. Safe to call more than once."""


@dataclass(frozen=True)
class ConnectOptions:
    connect_timeout_sec: int = 30
    query_timeout_sec: int = 30
    mssql_odbc_driver: str = "ODBC Driver 18 for SQL Server"


class DBAPIAdapter:
    """
    Shared plumbing for adapters that wrap a DB-API 2.0 connection.

    Subclasses provide the dialect and `_run(cursor, sql, params)`. Statements
    are serialized through a lock because a DB-API connection must not be
    used by two threads at once.
    """

    name = "dbapi"
    dialect: SQLDialect

    def __init__(self, conn: Any) -> None:
        self._conn = conn
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _run(self, cursor: Any, sql: str, params: Sequence[Any]) -> None:
        raise NotImplementedError

    def _rows(self, cursor: Any) -> Tuple[Rows, List[str]]:
        desc = cursor.description or ()
        cols: List[str] = [d[0] for d in desc if d]
        fetched = cursor.fetchall() if desc else []
        rows: Rows = []
        for r in fetched or []:
            if isinstance(r, dict):
                rows.append({k: _cell(v) for k, v in r.items()})
            else:
                rows.append({k: _cell(v) for k, v in zip(cols, r)})
        return rows, cols

    def execute(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> Tuple[Rows, List[str]]:
        if self._closed:
            raise QueryError("Connection is already closed")
        with self._lock:
            cursor = self._conn.cursor()
            try:
                log.debug(
                    "Executing SQL: %s",
                    sql.strip().replace("\n", " "),
                    extra={"adapter": self.name, "param_count": len(params or ())},
                )
                self._run(cursor, sql, list(params or ()))
                return self._rows(cursor)
            except QueryError:
                raise
            except Exception as exc:
                raise QueryError(str(exc), details=[type(exc).__name__]) from exc
            finally:
                cursor.close()

    def ping(self) -> None:
        self.execute("SELECT 1")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._conn.close()
        except Exception as exc:
            log.debug("Error while closing connection", exc_info=exc)
        else:
            log.debug("Closed data source connection", extra={"adapter": self.name})
