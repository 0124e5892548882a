from enum import Enum


class ErrorCode(str, Enum):
    # --- Lookup ---
    DATA_SOURCE_NOT_FOUND = "DATA_SOURCE_NOT_FOUND"
    DATABASE_NOT_FOUND = "DATABASE_NOT_FOUND"
    TABLE_NOT_FOUND = "TABLE_NOT_FOUND"

    # --- Request shape ---
    INVALID_REQUEST = "INVALID_REQUEST"
    UNKNOWN_COLUMN = "UNKNOWN_COLUMN"
    INVALID_FILTER_OPERATOR = "INVALID_FILTER_OPERATOR"
    INVALID_SORT = "INVALID_SORT"
    INVALID_PAGE = "INVALID_PAGE"
    UNSUPPORTED_DIALECT = "UNSUPPORTED_DIALECT"

    # --- Adapter / DB ---
    CONNECTION_FAILED = "CONNECTION_FAILED"
    QUERY_FAILED = "QUERY_FAILED"
    QUERY_EXECUTION_FAILED = "QUERY_EXECUTION_FAILED"
    UNSAFE_STATEMENT = "UNSAFE_STATEMENT"

    # --- Internal ---
    INTERNAL = "INTERNAL"
