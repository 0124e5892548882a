from __future__ import annotations

from prometheus_client import Counter, Histogram
from querytool.prom import REGISTRY

from adapters.metrics.base import FallbackLevel, Metrics, QueryStatus

# -----------------------------------------------------------------------------
# Stage-level metrics
# -----------------------------------------------------------------------------
stage_duration_ms = Histogram(
    "stage_duration_ms",
    "Duration (ms) of each query stage",
    ["stage"],  # connect | introspect | count | data
    buckets=(1, 2, 5, 10, 20, 50, 100, 200, 500, 1000, 2000, 5000, 10000, 30000),
    registry=REGISTRY,
)

stage_errors_total = Counter(
    "stage_errors_total",
    "Count of stage errors labeled by stage and error_code",
    ["stage", "error_code"],
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Query-level metrics
# -----------------------------------------------------------------------------
query_runs_total = Counter(
    "query_runs_total",
    "Total number of table query runs",
    ["status"],  # ok | error
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Introspection metrics
# -----------------------------------------------------------------------------
row_count_fallbacks_total = Counter(
    "row_count_fallbacks_total",
    "Tables whose exact COUNT(*) failed, by fallback reached",
    ["level"],  # estimate | zero
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Table cache metrics
# -----------------------------------------------------------------------------
cache_events_total = Counter(
    "cache_events_total",
    "Table descriptor cache hit/miss events",
    ["hit"],  # "true" | "false"
    registry=REGISTRY,
)


class PrometheusMetrics(Metrics):
    def observe_stage_duration_ms(self, *, stage: str, dt_ms: float) -> None:
        stage_duration_ms.labels(stage=stage).observe(float(dt_ms))

    def inc_query_run(self, *, status: QueryStatus) -> None:
        query_runs_total.labels(status=status).inc()

    def inc_stage_error(self, *, stage: str, error_code: str) -> None:
        stage_errors_total.labels(stage=stage, error_code=str(error_code)).inc()

    def inc_row_count_fallback(self, *, level: FallbackLevel) -> None:
        row_count_fallbacks_total.labels(level=level).inc()


# -----------------------------------------------------------------------------
# Label priming to keep /metrics stable
# -----------------------------------------------------------------------------
for status in ("ok", "error"):
    query_runs_total.labels(status=status).inc(0)

for hit in ("true", "false"):
    cache_events_total.labels(hit=hit).inc(0)

for level in ("estimate", "zero"):
    row_count_fallbacks_total.labels(level=level).inc(0)
