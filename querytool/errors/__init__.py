from querytool.errors.codes import ErrorCode
from querytool.errors.exceptions import (
    DatabaseNotFoundError,
    DataSourceConnectionError,
    DataSourceNotFoundError,
    InvalidFilterError,
    InvalidPageError,
    InvalidQueryError,
    InvalidSortError,
    NotFoundError,
    QueryError,
    QueryExecutionError,
    QueryToolError,
    TableNotFoundError,
    UnknownColumnError,
    UnsafeStatementError,
    UnsupportedDialectError,
)
from querytool.errors.mapper import ERROR_MAP, map_error

__all__ = [
    "ERROR_MAP",
    "ErrorCode",
    "DatabaseNotFoundError",
    "DataSourceConnectionError",
    "DataSourceNotFoundError",
    "InvalidFilterError",
    "InvalidPageError",
    "InvalidQueryError",
    "InvalidSortError",
    "NotFoundError",
    "QueryError",
    "QueryExecutionError",
    "QueryToolError",
    "TableNotFoundError",
    "UnknownColumnError",
    "UnsafeStatementError",
    "UnsupportedDialectError",
    "map_error",
]
