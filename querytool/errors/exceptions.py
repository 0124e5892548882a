from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from querytool.errors.codes import ErrorCode


@dataclass
class QueryToolError(Exception):
    """Base class for every error raised by the query engine."""

    message: str
    code: ErrorCode = ErrorCode.INTERNAL
    details: Optional[List[str]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


# --- Not found (404) ---
@dataclass
class NotFoundError(QueryToolError):
    code: ErrorCode = ErrorCode.TABLE_NOT_FOUND


@dataclass
class DataSourceNotFoundError(NotFoundError):
    code: ErrorCode = ErrorCode.DATA_SOURCE_NOT_FOUND


@dataclass
class DatabaseNotFoundError(NotFoundError):
    code: ErrorCode = ErrorCode.DATABASE_NOT_FOUND


@dataclass
class TableNotFoundError(NotFoundError):
    code: ErrorCode = ErrorCode.TABLE_NOT_FOUND


# --- Malformed requests (400) ---
@dataclass
class InvalidQueryError(QueryToolError):
    code: ErrorCode = ErrorCode.INVALID_REQUEST


@dataclass
class UnknownColumnError(InvalidQueryError):
    code: ErrorCode = ErrorCode.UNKNOWN_COLUMN


@dataclass
class InvalidFilterError(InvalidQueryError):
    code: ErrorCode = ErrorCode.INVALID_FILTER_OPERATOR


@dataclass
class InvalidSortError(InvalidQueryError):
    code: ErrorCode = ErrorCode.INVALID_SORT


@dataclass
class InvalidPageError(InvalidQueryError):
    code: ErrorCode = ErrorCode.INVALID_PAGE


@dataclass
class UnsupportedDialectError(InvalidQueryError):
    code: ErrorCode = ErrorCode.UNSUPPORTED_DIALECT


# --- Adapter level ---
@dataclass
class DataSourceConnectionError(QueryToolError):
    """Handshake, authentication or network failure opening a data source."""

    code: ErrorCode = ErrorCode.CONNECTION_FAILED


@dataclass
class QueryError(QueryToolError):
    """A single statement was malformed or rejected by the server."""

    code: ErrorCode = ErrorCode.QUERY_FAILED


@dataclass
class QueryExecutionError(QueryToolError):
    """Wraps a QueryError with the request context it happened in."""

    code: ErrorCode = ErrorCode.QUERY_EXECUTION_FAILED


@dataclass
class UnsafeStatementError(QueryToolError):
    code: ErrorCode = ErrorCode.UNSAFE_STATEMENT
