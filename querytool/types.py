from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from querytool.errors.exceptions import InvalidPageError


# =====================
# Enumerations
# =====================


class Dialect(str, Enum):
    MYSQL = "mysql"
    MSSQL = "mssql"


class FilterOperator(str, Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class FriendlyType(str, Enum):
    NUMBER = "Number"
    CURRENCY = "Currency"
    TEXT = "Text"
    LONG_TEXT = "Long Text"
    DATE_TIME = "Date & Time"
    DATE = "Date"
    TIME = "Time"
    YES_NO = "Yes/No"
    JSON = "JSON"


# =====================
# Connection profile
# =====================


@dataclass(frozen=True)
class ConnectionProfile:
    """
    Stored credentials for one target database.

    Borrowed read-only for a single request; the password never leaves the
    process except through the driver handshake.
    """

    id: Optional[int]
    name: str
    dialect: Dialect
    host: str
    port: int
    database_name: str
    username: str
    password: str = field(default="", repr=False)

    def public_dict(self) -> Dict[str, Any]:
        """Profile fields safe to return to clients (no password)."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.dialect.value,
            "host": self.host,
            "port": self.port,
            "database_name": self.database_name,
            "username": self.username,
        }


# =====================
# Introspection results
# =====================


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    native_type: str
    friendly_type: FriendlyType
    nullable: bool
    is_primary_key: bool = False


@dataclass(frozen=True)
class TableDescriptor:
    name: str
    schema: str
    row_count: int
    columns: List[ColumnDescriptor] = field(default_factory=list)

    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


# =====================
# Query request pieces
# =====================


@dataclass(frozen=True)
class Filter:
    """One FilterSpec entry: the value is always compared as bound text."""

    value: Optional[str]
    operator: FilterOperator | str = FilterOperator.EQUALS


@dataclass(frozen=True)
class SortSpec:
    column: str
    direction: SortDirection | str = SortDirection.ASC


@dataclass(frozen=True)
class PageSpec:
    page: int = 1
    page_size: int = 100
    no_limit: bool = False

    def __post_init__(self) -> None:
        if self.page < 1:
            raise InvalidPageError(f"page must be >= 1, got {self.page}")
        if self.page_size < 1:
            raise InvalidPageError(f"page_size must be >= 1, got {self.page_size}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


# =====================
# Compiler / executor output
# =====================


@dataclass(frozen=True)
class CompiledQuery:
    data_sql: str
    count_sql: str
    # Filter parameters, shared by both statements.
    params: List[Any] = field(default_factory=list)
    # Pagination parameters appended to the data statement only.
    page_params: List[Any] = field(default_factory=list)

    @property
    def data_params(self) -> List[Any]:
        return [*self.params, *self.page_params]


@dataclass(frozen=True)
class QueryResult:
    rows: List[Dict[str, Any]]
    total_rows: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def build(
        cls, rows: List[Dict[str, Any]], total_rows: int, page: PageSpec
    ) -> "QueryResult":
        return cls(
            rows=rows,
            total_rows=total_rows,
            page=page.page,
            page_size=page.page_size,
            total_pages=math.ceil(total_rows / page.page_size),
        )
