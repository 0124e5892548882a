from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from querytool.dialects import SQLDialect, get_dialect
from querytool.errors.exceptions import (
    InvalidFilterError,
    InvalidQueryError,
    InvalidSortError,
)
from querytool.types import (
    CompiledQuery,
    Dialect,
    Filter,
    FilterOperator,
    PageSpec,
    SortDirection,
    SortSpec,
)

log = logging.getLogger(__name__)


# operator -> (SQL comparison, value template)
_OPERATORS = {
    FilterOperator.EQUALS: ("=", "{}"),
    FilterOperator.CONTAINS: ("LIKE", "%{}%"),
    FilterOperator.STARTS_WITH: ("LIKE", "{}%"),
    FilterOperator.ENDS_WITH: ("LIKE", "%{}"),
    FilterOperator.GREATER_THAN: (">", "{}"),
    FilterOperator.LESS_THAN: ("<", "{}"),
}


def _parse_operator(raw: FilterOperator | str, column: str) -> FilterOperator:
    if isinstance(raw, FilterOperator):
        return raw
    try:
        return FilterOperator(raw)
    except ValueError as exc:
        raise InvalidFilterError(
            f"Unsupported filter operator {raw!r} for column {column!r}",
            extra={"column": column, "operator": str(raw)},
        ) from exc


def _parse_direction(raw: SortDirection | str) -> SortDirection:
    if isinstance(raw, SortDirection):
        return raw
    try:
        return SortDirection(str(raw).lower())
    except ValueError as exc:
        raise InvalidSortError(
            f"Unsupported sort direction {raw!r}; expected 'asc' or 'desc'"
        ) from exc


class QueryCompiler:
    """
    Build the data and count statements for one table request.

    Both statements share the FROM and WHERE text and the leading filter
    parameters, so the count always describes the same filtered set the
    data page is cut from. Callers always see "?" placeholders; adapters
    rewrite them for their driver.
    """

    def __init__(self, dialect: SQLDialect | Dialect | str) -> None:
        self.dialect = (
            dialect if isinstance(dialect, SQLDialect) else get_dialect(dialect)
        )

    def _where(
        self, table: str, filters: Mapping[str, Filter]
    ) -> Tuple[str, List[Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        for column, flt in filters.items():
            op = _parse_operator(flt.operator, column)
            if flt.value is None or flt.value == "":
                continue
            comparison, template = _OPERATORS[op]
            clauses.append(
                f"{self.dialect.qualified_column(table, column)} {comparison} ?"
            )
            params.append(template.format(flt.value))
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    def compile(
        self,
        table: str,
        columns: Sequence[str],
        filters: Optional[Mapping[str, Filter]] = None,
        sort: Optional[SortSpec] = None,
        page: Optional[PageSpec] = None,
        schema: Optional[str] = None,
    ) -> CompiledQuery:
        if not columns:
            raise InvalidQueryError("At least one column must be selected")

        page = page or PageSpec()
        d = self.dialect

        projection = ", ".join(d.qualified_column(table, c) for c in columns)
        from_clause = f" FROM {d.qualified_table(table, schema)}"
        where_clause, params = self._where(table, filters or {})

        order_clause = ""
        if sort is not None:
            direction = _parse_direction(sort.direction)
            order_clause = (
                f" ORDER BY {d.qualified_column(table, sort.column)} "
                f"{direction.value.upper()}"
            )
        elif d.requires_order_by_for_pagination and not page.no_limit:
            order_clause = f" ORDER BY {d.qualified_column(table, columns[0])}"

        page_clause = ""
        page_params: List[Any] = []
        if not page.no_limit:
            clause, page_params = d.pagination_clause(page.page_size, page.offset)
            page_clause = f" {clause}"

        data_sql = (
            f"SELECT {projection}{from_clause}{where_clause}{order_clause}{page_clause}"
        )
        count_sql = f"SELECT COUNT(*) AS total{from_clause}{where_clause}"

        log.debug(
            "Compiled table query",
            extra={
                "dialect": d.name.value,
                "table": table,
                "filter_count": len(params),
                "no_limit": page.no_limit,
            },
        )
        return CompiledQuery(
            data_sql=data_sql,
            count_sql=count_sql,
            params=params,
            page_params=list(page_params),
        )
