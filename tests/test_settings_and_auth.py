import pytest
from fastapi import HTTPException

from app import dependencies
from app.settings import REPO_ROOT, Settings
from querytool.errors import ErrorCode, map_error


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("QUERYTOOL_DB_PATH", "var/meta.db")
    monkeypatch.setenv("MAX_PAGE_SIZE", "500")
    monkeypatch.setenv("DEFAULT_PAGE_SIZE", "not-a-number")
    monkeypatch.setenv("VERIFY_SQL", "false")
    monkeypatch.setenv("TABLE_CACHE_TTL_SEC", "0")
    monkeypatch.setenv("MSSQL_SCHEMA", "sales")

    s = Settings.from_env()
    assert s.app_db_path == str(REPO_ROOT / "var/meta.db")
    assert s.max_page_size == 500
    assert s.default_page_size == 100
    assert s.verify_sql is False
    assert s.table_cache_ttl_sec == 0
    assert s.mssql_schema == "sales"
    assert s.connect_options().connect_timeout_sec == 30


@pytest.mark.parametrize(
    "code, expected",
    [
        (ErrorCode.DATA_SOURCE_NOT_FOUND, (404, False)),
        (ErrorCode.UNKNOWN_COLUMN, (400, False)),
        (ErrorCode.CONNECTION_FAILED, (502, True)),
        (ErrorCode.QUERY_EXECUTION_FAILED, (500, False)),
        (None, (500, False)),
    ],
)
def test_map_error(code, expected):
    assert map_error(code) == expected


def test_require_api_key(monkeypatch):
    monkeypatch.setattr(
        dependencies, "get_settings", lambda: Settings(api_keys_raw="k1, k2")
    )
    assert dependencies.require_api_key("k2") is None
    with pytest.raises(HTTPException) as ei:
        dependencies.require_api_key("nope")
    assert ei.value.status_code == 401
    with pytest.raises(HTTPException):
        dependencies.require_api_key(None)


def test_api_key_disabled_when_unset(monkeypatch):
    monkeypatch.setattr(dependencies, "get_settings", lambda: Settings(api_keys_raw=""))
    assert dependencies.require_api_key(None) is None
