from __future__ import annotations

import logging
from typing import Any, Sequence

import pymysql
import pymysql.cursors

from adapters.db.base import ConnectOptions, DBAPIAdapter
from querytool.dialects import MySQLDialect
from querytool.errors.exceptions import (
    DatabaseNotFoundError,
    DataSourceConnectionError,
)
from querytool.types import ConnectionProfile

log = logging.getLogger(__name__)

# ER_BAD_DB_ERROR
UNKNOWN_DATABASE = 1049


class MySQLAdapter(DBAPIAdapter):
    """MySQL-family adapter over PyMySQL (MySQL, MariaDB and compatibles)."""

    name = "mysql"
    dialect = MySQLDialect()

    @classmethod
    def connect(
        cls, profile: ConnectionProfile, options: ConnectOptions | None = None
    ) -> "MySQLAdapter":
        opts = options or ConnectOptions()
        try:
            conn = pymysql.connect(
                host=profile.host,
                port=int(profile.port),
                user=profile.username,
                password=profile.password or "",
                database=profile.database_name,
                charset="utf8mb4",
                cursorclass=pymysql.cursors.DictCursor,
                connect_timeout=opts.connect_timeout_sec,
                read_timeout=opts.query_timeout_sec,
                autocommit=True,
            )
        except Exception as exc:
            log.debug(
                "MySQL handshake failed",
                extra={"host": profile.host, "port": profile.port},
                exc_info=exc,
            )
            if exc.args and exc.args[0] == UNKNOWN_DATABASE:
                raise DatabaseNotFoundError(
                    f"Database {profile.database_name!r} not found",
                    extra={"dialect": "mysql", "database": profile.database_name},
                ) from exc
            raise DataSourceConnectionError(
                f"Database connection failed: {exc}",
                extra={"dialect": "mysql", "host": profile.host},
            ) from exc
        log.debug(
            "Opened MySQL connection",
            extra={"host": profile.host, "database": profile.database_name},
        )
        return cls(conn)

    def _run(self, cursor: Any, sql: str, params: Sequence[Any]) -> None:
        statement, args = self.dialect.rewrite_params(sql, params)
        cursor.execute(statement, args)
