from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from querytool.errors.exceptions import DataSourceNotFoundError
from querytool.types import ConnectionProfile, Dialect

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS data_sources (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    host TEXT NOT NULL,
    port INTEGER NOT NULL,
    database_name TEXT NOT NULL,
    username TEXT NOT NULL,
    password TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""

_COLUMNS = "id, name, type, host, port, database_name, username, password"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_profile(row: sqlite3.Row) -> ConnectionProfile:
    return ConnectionProfile(
        id=int(row["id"]),
        name=row["name"],
        dialect=Dialect(row["type"]),
        host=row["host"],
        port=int(row["port"]),
        database_name=row["database_name"],
        username=row["username"],
        password=row["password"] or "",
    )


class DataSourceStore:
    """
    SQLite-backed registry of saved connection profiles.

    Responsibilities:
    - Persist profiles (including credentials) under an integer id.
    - Hand out immutable ConnectionProfile snapshots for request handling.

    One connection is shared across request threads; every statement runs
    under a lock.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        with self._lock:
            self._conn.execute(_SCHEMA)
            self._conn.commit()
        log.debug("Initialized DataSourceStore", extra={"path": path})

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def list_profiles(self) -> List[ConnectionProfile]:
        rows = self._query(f"SELECT {_COLUMNS} FROM data_sources ORDER BY id")
        return [_to_profile(r) for r in rows]

    def get_profile_by_id(self, data_source_id: int) -> Optional[ConnectionProfile]:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM data_sources WHERE id = ?", (data_source_id,)
        )
        return _to_profile(rows[0]) if rows else None

    def require(self, data_source_id: int) -> ConnectionProfile:
        profile = self.get_profile_by_id(data_source_id)
        if profile is None:
            raise DataSourceNotFoundError(
                f"Data source {data_source_id} not found",
                extra={"data_source_id": data_source_id},
            )
        return profile

    def create(
        self, fields: Dict[str, Any], data_source_id: Optional[int] = None
    ) -> ConnectionProfile:
        """Insert a profile; an explicit id is used as-is (upsert path)."""
        ts = _now()
        with self._lock:
            cur = self._conn.execute(
                """
                INSERT INTO data_sources
                    (id, name, type, host, port, database_name, username,
                     password, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data_source_id,
                    fields["name"],
                    Dialect(fields["type"]).value,
                    fields["host"],
                    int(fields["port"]),
                    fields["database_name"],
                    fields["username"],
                    fields.get("password") or "",
                    ts,
                    ts,
                ),
            )
            self._conn.commit()
            new_id = int(
                data_source_id if data_source_id is not None else cur.lastrowid
            )
        log.info(
            "Created data source",
            extra={"data_source_id": new_id, "type": str(fields["type"])},
        )
        return self.require(new_id)

    def update(
        self, data_source_id: int, fields: Dict[str, Any]
    ) -> Optional[ConnectionProfile]:
        """Overwrite a profile in place; returns None when the id is unknown."""
        with self._lock:
            cur = self._conn.execute(
                """
                UPDATE data_sources
                SET name = ?, type = ?, host = ?, port = ?, database_name = ?,
                    username = ?, password = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    fields["name"],
                    Dialect(fields["type"]).value,
                    fields["host"],
                    int(fields["port"]),
                    fields["database_name"],
                    fields["username"],
                    fields.get("password") or "",
                    _now(),
                    data_source_id,
                ),
            )
            self._conn.commit()
            changed = cur.rowcount
        if not changed:
            return None
        log.info("Updated data source", extra={"data_source_id": data_source_id})
        return self.get_profile_by_id(data_source_id)

    def delete(self, data_source_id: int) -> bool:
        with self._lock:
            cur = self._conn.execute(
                "DELETE FROM data_sources WHERE id = ?", (data_source_id,)
            )
            self._conn.commit()
            deleted = cur.rowcount > 0
        if deleted:
            log.info("Deleted data source", extra={"data_source_id": data_source_id})
        return deleted

    def ping(self) -> None:
        self._query("SELECT 1")

    def close(self) -> None:
        with self._lock:
            self._conn.close()
