from functools import lru_cache
from typing import Optional

from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader

from app.cache import TableCache
from app.services.query_service import DataQueryService
from app.settings import get_settings
from app.state import DataSourceStore

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def require_api_key(key: Optional[str] = Security(api_key_header)):
    """
    Simple API key check using X-API-Key header and configured API keys.

    - Settings.api_keys_raw is a comma-separated list of keys.
    - If api_keys_raw is empty → auth disabled (dev mode).
    """
    raw = get_settings().api_keys_raw or ""
    allowed = {k.strip() for k in raw.split(",") if k.strip()}
    if not allowed:
        return
    if not key or key not in allowed:
        raise HTTPException(status_code=401, detail="invalid API key")


@lru_cache()
def get_store() -> DataSourceStore:
    """Process-wide metadata store (QUERYTOOL_DB_PATH)."""
    return DataSourceStore(get_settings().app_db_path)


@lru_cache()
def get_table_cache() -> TableCache:
    """
    Singleton in-memory cache for table descriptors.

    TTL is loaded from Settings (TABLE_CACHE_TTL_SEC).
    """
    return TableCache(ttl=float(get_settings().table_cache_ttl_sec))


@lru_cache()
def get_query_service() -> DataQueryService:
    """
    Singleton-ish DataQueryService for the FastAPI app.

    Uses centralized Settings so configuration is loaded once and injected.
    """
    return DataQueryService(
        settings=get_settings(),
        store=get_store(),
        cache=get_table_cache(),
    )
