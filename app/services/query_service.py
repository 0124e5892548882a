from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from adapters.db.factory import open_adapter
from adapters.metrics.base import Metrics
from adapters.metrics.prometheus import PrometheusMetrics
from app.cache import TableCache
from app.settings import Settings
from app.state import DataSourceStore
from querytool.errors.exceptions import QueryToolError
from querytool.executor import Connector, QueryExecutor
from querytool.introspector import SchemaIntrospector
from querytool.types import (
    ConnectionProfile,
    Dialect,
    Filter,
    PageSpec,
    QueryResult,
    SortSpec,
    TableDescriptor,
)
from querytool.verifier import StatementVerifier

log = logging.getLogger(__name__)


@dataclass
class DataQueryService:
    """
    Application-level service for browsing and querying saved data sources.

    Responsibilities:
        - Resolve data source ids to stored connection profiles.
        - Open one scoped connection per request via the dialect factory.
        - Run introspection and paged queries, keeping the table cache fresh.
    """

    settings: Settings
    store: DataSourceStore
    cache: TableCache
    metrics: Metrics = field(default_factory=PrometheusMetrics)
    connector: Optional[Connector] = None

    def _connect(self, profile: ConnectionProfile):
        if self.connector is not None:
            return self.connector(profile)
        return open_adapter(profile, self.settings.connect_options())

    def _introspector(self) -> SchemaIntrospector:
        return SchemaIntrospector(
            mssql_schema=self.settings.mssql_schema, metrics=self.metrics
        )

    def _page(self, page: int, page_size: Optional[int], no_limit: bool) -> PageSpec:
        size = page_size or self.settings.default_page_size
        if not no_limit:
            size = min(size, self.settings.max_page_size)
        return PageSpec(page=page, page_size=size, no_limit=no_limit)

    # -------------------------------
    # Tables
    # -------------------------------

    def list_tables(self, data_source_id: int) -> List[TableDescriptor]:
        profile = self.store.require(data_source_id)
        db = self._connect(profile)
        try:
            tables = self._introspector().list_tables(db, profile.database_name)
        finally:
            db.close()
        for table in tables:
            self.cache.set(profile, table)
        return tables

    # -------------------------------
    # Queries
    # -------------------------------

    def run_query(
        self,
        *,
        data_source_id: int,
        table: str,
        columns: Sequence[str],
        filters: Optional[Mapping[str, Filter]] = None,
        sort: Optional[SortSpec] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        no_limit: bool = False,
    ) -> QueryResult:
        profile = self.store.require(data_source_id)
        executor = QueryExecutor(
            self._connect,
            self._introspector(),
            metrics=self.metrics,
            tables=self.cache,
            verifier=StatementVerifier() if self.settings.verify_sql else None,
        )
        return executor.run(
            profile,
            table,
            columns,
            filters,
            sort,
            self._page(page, page_size, no_limit),
        )

    # -------------------------------
    # Connection checks
    # -------------------------------

    def test_connection(self, fields: Dict[str, Any]) -> ConnectionProfile:
        """Open, ping and close a connection for unsaved profile fields."""
        profile = ConnectionProfile(
            id=None,
            name=str(fields.get("name") or ""),
            dialect=Dialect(fields["type"]),
            host=fields["host"],
            port=int(fields["port"]),
            database_name=fields["database_name"],
            username=fields["username"],
            password=fields.get("password") or "",
        )
        db = self._connect(profile)
        try:
            db.ping()
        except QueryToolError:
            log.warning(
                "Connection test failed",
                extra={"host": profile.host, "dialect": profile.dialect.value},
            )
            raise
        finally:
            db.close()
        return profile

    def forget(self, data_source_id: int) -> None:
        dropped = self.cache.invalidate(data_source_id)
        log.debug(
            "Invalidated table cache",
            extra={"data_source_id": data_source_id, "dropped": dropped},
        )
