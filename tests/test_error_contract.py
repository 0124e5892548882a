from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_query_service
from app.main import app
from querytool.errors import (
    DataSourceConnectionError,
    ErrorCode,
    QueryExecutionError,
    TableNotFoundError,
    UnsafeStatementError,
)

client = TestClient(app)

QUERY = {"dataSourceId": 1, "tableName": "t", "columns": ["a"]}


class DummyService:
    def __init__(self, exc: Exception):
        self._exc = exc

    def run_query(self, **kwargs):
        raise self._exc


@pytest.mark.parametrize(
    "exc, status, retryable",
    [
        (TableNotFoundError("Table 't' not found"), 404, False),
        (DataSourceConnectionError("Database connection failed: timeout"), 502, True),
        (
            QueryExecutionError(
                "Query execution failed: lock wait timeout",
                details=["lock wait timeout"],
                extra={"stage": "data"},
            ),
            500,
            False,
        ),
        (UnsafeStatementError("Compiled statement failed verification"), 500, False),
    ],
)
def test_error_contract(exc, status, retryable):
    app.dependency_overrides[get_query_service] = lambda: DummyService(exc)
    try:
        resp = client.post("/api/v1/query", json=QUERY)

        assert resp.status_code == status, resp.text
        body = resp.json()

        assert "error" in body and isinstance(body["error"], dict)
        err = body["error"]
        assert err["code"] == exc.code.value
        assert err["message"] == exc.message
        assert err["retryable"] is retryable
        assert err["request_id"] == resp.headers["X-Request-ID"]
        assert ("Retry-After" in resp.headers) is retryable
        assert err["details"] == exc.details
        assert err["extra"] == exc.extra
    finally:
        app.dependency_overrides.pop(get_query_service, None)


def test_query_execution_error_keeps_context():
    exc = QueryExecutionError(
        "Query execution failed: boom", details=["boom"], extra={"stage": "count"}
    )
    assert exc.code is ErrorCode.QUERY_EXECUTION_FAILED
    assert str(exc) == "Query execution failed: boom"
