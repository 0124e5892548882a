from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Type

from adapters.db.base import ConnectOptions, DBAPIAdapter, DBAdapter
from adapters.db.mssql_adapter import MSSQLAdapter
from adapters.db.mysql_adapter import MySQLAdapter
from querytool.errors.exceptions import UnsupportedDialectError
from querytool.types import ConnectionProfile, Dialect

ADAPTERS: Dict[Dialect, Type[DBAPIAdapter]] = {
    Dialect.MYSQL: MySQLAdapter,
    Dialect.MSSQL: MSSQLAdapter,
}


def open_adapter(
    profile: ConnectionProfile, options: Optional[ConnectOptions] = None
) -> DBAdapter:
    """Open a fresh connection for the profile's dialect (real handshake)."""
    adapter_cls = ADAPTERS.get(profile.dialect)
    if adapter_cls is None:
        raise UnsupportedDialectError(f"Unsupported dialect: {profile.dialect!r}")
    return adapter_cls.connect(profile, options)  # type: ignore[attr-defined]


@contextmanager
def connect(
    profile: ConnectionProfile, options: Optional[ConnectOptions] = None
) -> Iterator[DBAdapter]:
    """Scoped connection: closed on every exit path."""
    db = open_adapter(profile, options)
    try:
        yield db
    finally:
        db.close()
