from __future__ import annotations

import logging
import re
from typing import Dict, List, Mapping, Optional

from fastapi import APIRouter, Depends, Query, Request

from app.dependencies import get_query_service, require_api_key
from app.schemas import QueryRequest, QueryResponse
from app.services.query_service import DataQueryService
from querytool.types import Filter, FilterOperator, QueryResult, SortSpec

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/query", dependencies=[Depends(require_api_key)])

# filter[<column>][value] / filter[<column>][operator]
_FILTER_PARAM = re.compile(r"^filter\[(?P<column>[^\]]+)\]\[(?P<field>value|operator)\]$")


def parse_filter_params(items: List[tuple]) -> Dict[str, Filter]:
    """Collect bracketed filter query params; a repeated field keeps its last value."""
    raw: Dict[str, Dict[str, str]] = {}
    for key, value in items:
        m = _FILTER_PARAM.match(key)
        if not m:
            continue
        fields = raw.setdefault(m.group("column"), {})
        fields[m.group("field")] = value
    return {
        column: Filter(
            value=fields.get("value", ""),
            operator=fields.get("operator") or FilterOperator.EQUALS.value,
        )
        for column, fields in raw.items()
    }


def _to_response(result: QueryResult) -> QueryResponse:
    return QueryResponse(
        rows=result.rows,
        total_rows=result.total_rows,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


def _sort(column: Optional[str], direction: str) -> Optional[SortSpec]:
    if not column:
        return None
    return SortSpec(column=column, direction=direction or "asc")


def _run(
    svc: DataQueryService,
    *,
    data_source_id: int,
    table_name: str,
    columns: List[str],
    filters: Mapping[str, Filter],
    sort: Optional[SortSpec],
    page: int,
    page_size: Optional[int],
    no_limit: bool,
) -> QueryResponse:
    logger.debug(
        "Query request",
        extra={
            "data_source_id": data_source_id,
            "table": table_name,
            "column_count": len(columns),
            "filter_count": len(filters),
        },
    )
    result = svc.run_query(
        data_source_id=data_source_id,
        table=table_name,
        columns=columns,
        filters=filters,
        sort=sort,
        page=page,
        page_size=page_size,
        no_limit=no_limit,
    )
    return _to_response(result)


@router.post("", name="query_post", response_model=QueryResponse)
def query_post(
    body: QueryRequest,
    svc: DataQueryService = Depends(get_query_service),
):
    filters = {
        column: Filter(value=f.value, operator=f.operator)
        for column, f in body.filters.items()
    }
    return _run(
        svc,
        data_source_id=body.data_source_id,
        table_name=body.table_name,
        columns=body.columns,
        filters=filters,
        sort=_sort(body.sort_column, body.sort_direction),
        page=body.page,
        page_size=body.page_size,
        no_limit=body.no_limit,
    )


@router.get("", name="query_get", response_model=QueryResponse)
def query_get(
    request: Request,
    data_source_id: int = Query(alias="dataSourceId"),
    table_name: str = Query(alias="tableName", min_length=1),
    columns: List[str] = Query(alias="columns"),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    sort_column: Optional[str] = Query(None, alias="sortColumn"),
    sort_direction: str = Query("asc", alias="sortDirection"),
    no_limit: bool = Query(False, alias="noLimit"),
    svc: DataQueryService = Depends(get_query_service),
):
    return _run(
        svc,
        data_source_id=data_source_id,
        table_name=table_name,
        columns=columns,
        filters=parse_filter_params(request.query_params.multi_items()),
        sort=_sort(sort_column, sort_direction),
        page=page,
        page_size=page_size,
        no_limit=no_limit,
    )
