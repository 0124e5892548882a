from querytool.errors.codes import ErrorCode

ERROR_MAP = {
    ErrorCode.DATA_SOURCE_NOT_FOUND: (404, False),
    ErrorCode.DATABASE_NOT_FOUND: (404, False),
    ErrorCode.TABLE_NOT_FOUND: (404, False),
    ErrorCode.INVALID_REQUEST: (400, False),
    ErrorCode.UNKNOWN_COLUMN: (400, False),
    ErrorCode.INVALID_FILTER_OPERATOR: (400, False),
    ErrorCode.INVALID_SORT: (400, False),
    ErrorCode.INVALID_PAGE: (400, False),
    ErrorCode.UNSUPPORTED_DIALECT: (400, False),
    ErrorCode.CONNECTION_FAILED: (502, True),
    ErrorCode.QUERY_FAILED: (400, False),
    ErrorCode.QUERY_EXECUTION_FAILED: (500, False),
    ErrorCode.UNSAFE_STATEMENT: (500, False),
    ErrorCode.INTERNAL: (500, False),
}


def map_error(code: ErrorCode | None) -> tuple[int, bool]:
    if code is None:
        return (500, False)
    return ERROR_MAP.get(code, (500, False))
