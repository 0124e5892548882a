from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from app.dependencies import get_query_service, get_store, require_api_key
from app.schemas import (
    ConnectionIn,
    ConnectionTestResponse,
    DataSourceIn,
    DataSourceOut,
)
from app.services.query_service import DataQueryService
from app.state import DataSourceStore
from querytool.errors.exceptions import DataSourceNotFoundError, QueryToolError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/datasources", dependencies=[Depends(require_api_key)])


@router.get("", response_model=List[DataSourceOut])
def list_datasources(store: DataSourceStore = Depends(get_store)):
    return [p.public_dict() for p in store.list_profiles()]


@router.post("/test-connection", response_model=ConnectionTestResponse)
def test_connection(
    body: ConnectionIn,
    svc: DataQueryService = Depends(get_query_service),
):
    try:
        svc.test_connection(body.model_dump())
    except QueryToolError as exc:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": f"Connection failed: {exc.message}"},
        )
    return {"success": True, "message": "Connection successful!"}


@router.post("", response_model=DataSourceOut, status_code=status.HTTP_201_CREATED)
def create_datasource(
    body: DataSourceIn,
    store: DataSourceStore = Depends(get_store),
    svc: DataQueryService = Depends(get_query_service),
):
    fields = body.model_dump()
    svc.test_connection(fields)
    return store.create(fields).public_dict()


@router.put("/{data_source_id}", response_model=DataSourceOut)
def upsert_datasource(
    data_source_id: int,
    body: DataSourceIn,
    response: Response,
    store: DataSourceStore = Depends(get_store),
    svc: DataQueryService = Depends(get_query_service),
):
    fields = body.model_dump()
    profile = store.update(data_source_id, fields)
    if profile is None:
        profile = store.create(fields, data_source_id=data_source_id)
        response.status_code = status.HTTP_201_CREATED
    svc.forget(data_source_id)
    return profile.public_dict()


@router.delete("/{data_source_id}")
def delete_datasource(
    data_source_id: int,
    store: DataSourceStore = Depends(get_store),
    svc: DataQueryService = Depends(get_query_service),
):
    if not store.delete(data_source_id):
        raise DataSourceNotFoundError(
            f"Data source {data_source_id} not found",
            extra={"data_source_id": data_source_id},
        )
    svc.forget(data_source_id)
    return {"message": "Data source deleted successfully"}
