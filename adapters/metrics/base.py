from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal

QueryStatus = Literal["ok", "error"]
FallbackLevel = Literal["estimate", "zero"]


class Metrics(ABC):
    @abstractmethod
    def observe_stage_duration_ms(self, *, stage: str, dt_ms: float) -> None: ...

    @abstractmethod
    def inc_query_run(self, *, status: QueryStatus) -> None: ...

    @abstractmethod
    def inc_stage_error(self, *, stage: str, error_code: str) -> None: ...

    @abstractmethod
    def inc_row_count_fallback(self, *, level: FallbackLevel) -> None: ...
