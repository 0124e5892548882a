from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from app.dependencies import get_query_service, require_api_key
from app.schemas import TableModel
from app.services.query_service import DataQueryService

router = APIRouter(prefix="/tables", dependencies=[Depends(require_api_key)])


@router.get("/{data_source_id}", response_model=List[TableModel])
def list_tables(
    data_source_id: int,
    svc: DataQueryService = Depends(get_query_service),
):
    return [TableModel.from_descriptor(t) for t in svc.list_tables(data_source_id)]
