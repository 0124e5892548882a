from __future__ import annotations

import datetime as dt
import decimal
import logging
from typing import Any, List, Sequence

from adapters.db.base import ConnectOptions, DBAPIAdapter
from querytool.dialects import MSSQLDialect
from querytool.errors.exceptions import (
    DatabaseNotFoundError,
    DataSourceConnectionError,
)
from querytool.types import ConnectionProfile

log = logging.getLogger(__name__)

# "Cannot open database requested by the login"
UNKNOWN_DATABASE = 4060


def _is_unknown_database(exc: Exception) -> bool:
    # pyodbc reports the native error number in parentheses inside the message
    return f"({UNKNOWN_DATABASE})" in str(exc)


def sql_type_for(value: Any) -> str:
    """Declared T-SQL type used when binding one named parameter."""
    if isinstance(value, bool):
        return "bit"
    if isinstance(value, int):
        return "bigint"
    if isinstance(value, float):
        return "float"
    if isinstance(value, decimal.Decimal):
        return "decimal(38, 10)"
    if isinstance(value, dt.datetime):
        return "datetime2"
    if isinstance(value, dt.date):
        return "date"
    if isinstance(value, dt.time):
        return "time"
    if isinstance(value, (bytes, bytearray)):
        return "varbinary(max)"
    return "nvarchar(max)"


def _bindable(value: Any) -> Any:
    if value is None or isinstance(
        value,
        (bool, int, float, decimal.Decimal, dt.date, dt.time, bytes, bytearray, str),
    ):
        return value
    return str(value)


class MSSQLAdapter(DBAPIAdapter):
    """
    SQL Server adapter over pyodbc.

    Parameterized statements are rewritten from "?" to @p1..@pN and sent
    through sp_executesql with one declared type per parameter, so every
    value is bound as an explicitly typed named input.
    """

    name = "mssql"
    dialect = MSSQLDialect()

    @classmethod
    def connect(
        cls, profile: ConnectionProfile, options: ConnectOptions | None = None
    ) -> "MSSQLAdapter":
        opts = options or ConnectOptions()
        # Imported here: pyodbc needs the unixODBC runtime at import time.
        import pyodbc

        conn_str = ";".join(
            [
                f"DRIVER={{{opts.mssql_odbc_driver}}}",
                f"SERVER={profile.host},{int(profile.port)}",
                f"DATABASE={profile.database_name}",
                f"UID={profile.username}",
                f"PWD={{{(profile.password or '').replace('}', '}}')}}}",
                "Encrypt=yes",
                "TrustServerCertificate=yes",
            ]
        )
        try:
            conn = pyodbc.connect(
                conn_str, timeout=opts.connect_timeout_sec, autocommit=True
            )
            conn.timeout = opts.query_timeout_sec
        except Exception as exc:
            log.debug(
                "MSSQL handshake failed",
                extra={"host": profile.host, "port": profile.port},
                exc_info=exc,
            )
            if _is_unknown_database(exc):
                raise DatabaseNotFoundError(
                    f"Database {profile.database_name!r} not found",
                    extra={"dialect": "mssql", "database": profile.database_name},
                ) from exc
            raise DataSourceConnectionError(
                f"Database connection failed: {exc}",
                extra={"dialect": "mssql", "host": profile.host},
            ) from exc
        log.debug(
            "Opened MSSQL connection",
            extra={"host": profile.host, "database": profile.database_name},
        )
        return cls(conn)

    def _run(self, cursor: Any, sql: str, params: Sequence[Any]) -> None:
        if not params:
            cursor.execute(sql)
            return

        statement, named = self.dialect.rewrite_params(sql, params)
        declarations: List[str] = []
        assignments: List[str] = []
        values: List[Any] = []
        for key, value in named.items():
            declarations.append(f"{key} {sql_type_for(value)}")
            assignments.append(f"{key} = ?")
            values.append(_bindable(value))

        wrapper = "EXEC sp_executesql ?, ?, " + ", ".join(assignments)
        cursor.execute(wrapper, statement, ", ".join(declarations), *values)
