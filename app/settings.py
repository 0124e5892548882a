from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from adapters.db.base import ConnectOptions

# Resolve repo root from this file's location:
# app/settings.py → parent = app/ → parent = repo root
REPO_ROOT = Path(__file__).resolve().parents[1]

# Metadata store (saved data source profiles)
DEFAULT_APP_DB = REPO_ROOT / "data" / "querytool.db"


@dataclass
class Settings:
    """
    Centralized application configuration.

    Does NOT depend on pydantic. Values are loaded from environment
    variables via Settings.from_env().
    """

    # --- Metadata store ---
    app_db_path: str = str(DEFAULT_APP_DB)

    # --- Target data sources ---
    mssql_schema: str = "dbo"
    mssql_odbc_driver: str = "ODBC Driver 18 for SQL Server"
    connect_timeout_sec: int = 30
    query_timeout_sec: int = 30

    # --- Paging ---
    default_page_size: int = 100
    max_page_size: int = 10_000

    # --- Table descriptor cache (0 disables) ---
    table_cache_ttl_sec: int = 60

    # --- Compiled SQL verification ---
    verify_sql: bool = True

    # --- API keys (comma-separated) ---
    api_keys_raw: str = ""

    # --- App version ---
    app_version: str = "dev"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build Settings from environment variables with sane fallbacks.

        - QUERYTOOL_DB_PATH can be absolute or relative to REPO_ROOT.
        """

        def getenv_int(name: str, default: int) -> int:
            raw = os.getenv(name)
            if raw is None or raw.strip() == "":
                return default
            try:
                return int(raw)
            except ValueError:
                return default

        def getenv_bool(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None or raw.strip() == "":
                return default
            return raw.strip().lower() in {"1", "true", "yes", "on"}

        raw_db = os.getenv("QUERYTOOL_DB_PATH", "").strip()
        if raw_db:
            db_candidate = Path(raw_db)
            if not db_candidate.is_absolute():
                db_candidate = REPO_ROOT / raw_db
        else:
            db_candidate = DEFAULT_APP_DB

        return cls(
            app_db_path=str(db_candidate),
            mssql_schema=os.getenv("MSSQL_SCHEMA", cls.mssql_schema),
            mssql_odbc_driver=os.getenv("MSSQL_ODBC_DRIVER", cls.mssql_odbc_driver),
            connect_timeout_sec=getenv_int(
                "CONNECT_TIMEOUT_SEC", cls.connect_timeout_sec
            ),
            query_timeout_sec=getenv_int("QUERY_TIMEOUT_SEC", cls.query_timeout_sec),
            default_page_size=getenv_int("DEFAULT_PAGE_SIZE", cls.default_page_size),
            max_page_size=getenv_int("MAX_PAGE_SIZE", cls.max_page_size),
            table_cache_ttl_sec=getenv_int(
                "TABLE_CACHE_TTL_SEC", cls.table_cache_ttl_sec
            ),
            verify_sql=getenv_bool("VERIFY_SQL", cls.verify_sql),
            api_keys_raw=os.getenv("API_KEYS", cls.api_keys_raw),
            app_version=os.getenv("APP_VERSION", cls.app_version),
        )

    def connect_options(self) -> ConnectOptions:
        return ConnectOptions(
            connect_timeout_sec=self.connect_timeout_sec,
            query_timeout_sec=self.query_timeout_sec,
            mssql_odbc_driver=self.mssql_odbc_driver,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
