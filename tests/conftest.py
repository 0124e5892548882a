import sqlite3
from types import SimpleNamespace
from typing import Any, List, Sequence

import pytest
from fastapi.testclient import TestClient

from adapters.db.base import DBAPIAdapter
from adapters.metrics.base import Metrics
from adapters.metrics.noop import NoOpMetrics
from app.cache import TableCache
from app.dependencies import get_query_service, get_store, require_api_key
from app.main import app
from app.services.query_service import DataQueryService
from app.settings import Settings
from app.state import DataSourceStore
from querytool.dialects import MySQLDialect
from querytool.type_map import friendly_type
from querytool.types import (
    ColumnDescriptor,
    ConnectionProfile,
    Dialect,
    TableDescriptor,
)

USERS_COLUMNS = [
    ("id", "int", False, True),
    ("name", "varchar", False, False),
    ("age", "int", True, False),
    ("email", "varchar", True, False),
]


class SQLiteTestAdapter(DBAPIAdapter):
    """
    Runs MySQL-dialect statements against SQLite.

    SQLite accepts backtick identifiers, "?" placeholders and
    LIMIT ? OFFSET ?, so compiled MySQL statements execute unchanged.
    """

    name = "sqlite"
    dialect = MySQLDialect()

    def _run(self, cursor: Any, sql: str, params: Sequence[Any]) -> None:
        cursor.execute(sql, list(params))


class RecordingMetrics(Metrics):
    def __init__(self) -> None:
        self.stages: List[str] = []
        self.runs: List[str] = []
        self.errors: List[tuple] = []
        self.fallbacks: List[str] = []

    def observe_stage_duration_ms(self, *, stage: str, dt_ms: float) -> None:
        self.stages.append(stage)

    def inc_query_run(self, *, status) -> None:
        self.runs.append(status)

    def inc_stage_error(self, *, stage: str, error_code: str) -> None:
        self.errors.append((stage, error_code))

    def inc_row_count_fallback(self, *, level) -> None:
        self.fallbacks.append(level)


@pytest.fixture(autouse=True)
def disable_api_key_auth():
    """Disable X-API-Key auth for tests."""
    prev = app.dependency_overrides.get(require_api_key)
    app.dependency_overrides[require_api_key] = lambda: None
    try:
        yield
    finally:
        if prev is None:
            app.dependency_overrides.pop(require_api_key, None)
        else:
            app.dependency_overrides[require_api_key] = prev


@pytest.fixture
def users_db(tmp_path) -> str:
    """25 users; every fifth one is named John, ages run 21..45."""
    p = tmp_path / "users.db"
    conn = sqlite3.connect(str(p))
    conn.execute(
        "CREATE TABLE users(id INTEGER PRIMARY KEY, name TEXT NOT NULL, "
        "age INTEGER, email TEXT);"
    )
    conn.executemany(
        "INSERT INTO users VALUES (?, ?, ?, ?);",
        [
            (i, "John" if i % 5 == 0 else f"user{i:02d}", 20 + i, f"u{i}@example.com")
            for i in range(1, 26)
        ],
    )
    conn.commit()
    conn.close()
    return str(p)


@pytest.fixture
def opened():
    """Adapters handed out by sqlite_connector, in order."""
    return []


@pytest.fixture
def sqlite_connector(users_db, opened):
    def _connect(profile: ConnectionProfile) -> SQLiteTestAdapter:
        db = SQLiteTestAdapter(sqlite3.connect(users_db, check_same_thread=False))
        opened.append(db)
        return db

    return _connect


@pytest.fixture
def users_descriptor() -> TableDescriptor:
    return TableDescriptor(
        name="users",
        schema="main",
        row_count=25,
        columns=[
            ColumnDescriptor(
                name=name,
                native_type=native,
                friendly_type=friendly_type(native),
                nullable=nullable,
                is_primary_key=pk,
            )
            for name, native, nullable, pk in USERS_COLUMNS
        ],
    )


@pytest.fixture
def mysql_profile() -> ConnectionProfile:
    return ConnectionProfile(
        id=1,
        name="local",
        dialect=Dialect.MYSQL,
        host="127.0.0.1",
        port=3306,
        database_name="main",
        username="root",
        password="secret",
    )


@pytest.fixture
def recording_metrics() -> RecordingMetrics:
    return RecordingMetrics()


@pytest.fixture
def sqlite_adapter_cls():
    return SQLiteTestAdapter


@pytest.fixture
def meta_store(tmp_path):
    s = DataSourceStore(str(tmp_path / "querytool.db"))
    yield s
    s.close()


@pytest.fixture
def api(meta_store, sqlite_connector, users_descriptor):
    """
    TestClient wired to a temp metadata store and a SQLite-backed service.

    One saved MySQL profile points at the users table; its descriptor is
    pre-cached so no catalog introspection is needed.
    """
    cache = TableCache(ttl=60)
    svc = DataQueryService(
        settings=Settings(max_page_size=20),
        store=meta_store,
        cache=cache,
        metrics=NoOpMetrics(),
        connector=sqlite_connector,
    )
    profile = meta_store.create(
        {
            "name": "local",
            "type": "mysql",
            "host": "127.0.0.1",
            "port": 3306,
            "database_name": "main",
            "username": "root",
            "password": "secret",
        }
    )
    cache.set(profile, users_descriptor)

    app.dependency_overrides[get_store] = lambda: meta_store
    app.dependency_overrides[get_query_service] = lambda: svc
    try:
        yield SimpleNamespace(
            client=TestClient(app), store=meta_store, service=svc, profile=profile
        )
    finally:
        app.dependency_overrides.pop(get_store, None)
        app.dependency_overrides.pop(get_query_service, None)
