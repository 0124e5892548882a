from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from querytool.types import (
    ColumnDescriptor,
    Dialect,
    FilterOperator,
    SortDirection,
    TableDescriptor,
)


# -------------------------------
# Data sources (snake_case on the wire)
# -------------------------------


class ConnectionIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Dialect
    host: str = Field(min_length=1)
    port: int = Field(ge=1, le=65535)
    database_name: str = Field(min_length=1)
    username: str = Field(min_length=1)
    password: str = ""


class DataSourceIn(ConnectionIn):
    name: str = Field(min_length=1)


class DataSourceOut(BaseModel):
    id: int
    name: str
    type: Dialect
    host: str
    port: int
    database_name: str
    username: str


class ConnectionTestResponse(BaseModel):
    success: bool
    message: str


# -------------------------------
# Tables and queries (camelCase on the wire)
# -------------------------------


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class ColumnModel(CamelModel):
    name: str
    data_type: str
    friendly_type: str
    nullable: bool
    is_primary_key: bool = False

    @classmethod
    def from_descriptor(cls, col: ColumnDescriptor) -> "ColumnModel":
        return cls(
            name=col.name,
            data_type=col.native_type,
            friendly_type=col.friendly_type.value,
            nullable=col.nullable,
            is_primary_key=col.is_primary_key,
        )


class TableModel(CamelModel):
    name: str
    # "schema" shadows a BaseModel attribute; exposed through its alias.
    schema_name: str = Field(alias="schema")
    row_count: int
    columns: List[ColumnModel] = Field(default_factory=list)

    @classmethod
    def from_descriptor(cls, table: TableDescriptor) -> "TableModel":
        return cls(
            name=table.name,
            schema_name=table.schema,
            row_count=table.row_count,
            columns=[ColumnModel.from_descriptor(c) for c in table.columns],
        )


class FilterModel(CamelModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    value: Optional[str] = ""
    operator: str = FilterOperator.EQUALS.value


class QueryRequest(CamelModel):
    data_source_id: int
    table_name: str = Field(min_length=1)
    columns: List[str] = Field(min_length=1)
    page: int = Field(default=1, ge=1)
    page_size: Optional[int] = Field(default=None, ge=1)
    filters: Dict[str, FilterModel] = Field(default_factory=dict)
    sort_column: Optional[str] = None
    sort_direction: str = SortDirection.ASC.value
    no_limit: bool = False


class QueryResponse(CamelModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    total_rows: int
    page: int
    page_size: int
    total_pages: int
