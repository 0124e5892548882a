from __future__ import annotations

from adapters.metrics.base import FallbackLevel, Metrics, QueryStatus


class NoOpMetrics(Metrics):
    def observe_stage_duration_ms(self, *, stage: str, dt_ms: float) -> None:
        return

    def inc_query_run(self, *, status: QueryStatus) -> None:
        return

    def inc_stage_error(self, *, stage: str, error_code: str) -> None:
        return

    def inc_row_count_fallback(self, *, level: FallbackLevel) -> None:
        return
