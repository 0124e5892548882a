"""
Identifier allow-list.

Table and column names cannot be bound as parameters, so every name that ends
up in generated SQL is first resolved against the introspected descriptor of
the target table. Resolution returns the catalog spelling of each name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

from querytool.errors.exceptions import InvalidQueryError, UnknownColumnError
from querytool.types import Filter, SortSpec, TableDescriptor


@dataclass(frozen=True)
class ResolvedRequest:
    table: str
    columns: List[str]
    filters: Dict[str, Filter]
    sort: Optional[SortSpec]


def _build_lookup(descriptor: TableDescriptor) -> Dict[str, Optional[str]]:
    lookup: Dict[str, Optional[str]] = {}
    for name in descriptor.column_names():
        folded = name.lower()
        # Two catalog names differing only by case: require the exact spelling.
        lookup[folded] = None if folded in lookup else name
    return lookup


def _resolve_column(
    name: str,
    exact: set[str],
    folded: Dict[str, Optional[str]],
    descriptor: TableDescriptor,
) -> str:
    if name in exact:
        return name
    match = folded.get(name.lower())
    if match is None:
        raise UnknownColumnError(
            f"Unknown column {name!r} for table {descriptor.name!r}",
            extra={"table": descriptor.name, "column": name},
        )
    return match


def resolve_request(
    descriptor: TableDescriptor,
    columns: Sequence[str],
    filters: Optional[Mapping[str, Filter]] = None,
    sort: Optional[SortSpec] = None,
) -> ResolvedRequest:
    if not columns:
        raise InvalidQueryError("At least one column must be selected")

    exact = set(descriptor.column_names())
    folded = _build_lookup(descriptor)

    resolved_columns = [
        _resolve_column(c, exact, folded, descriptor) for c in columns
    ]

    resolved_filters: Dict[str, Filter] = {}
    for key, flt in (filters or {}).items():
        # Keys that collapse onto the same column: last write wins.
        resolved_filters[_resolve_column(key, exact, folded, descriptor)] = flt

    resolved_sort: Optional[SortSpec] = None
    if sort is not None:
        resolved_sort = SortSpec(
            column=_resolve_column(sort.column, exact, folded, descriptor),
            direction=sort.direction,
        )

    return ResolvedRequest(
        table=descriptor.name,
        columns=resolved_columns,
        filters=resolved_filters,
        sort=resolved_sort,
    )
