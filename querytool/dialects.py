"""
Dialect strategies.

One strategy object is chosen per request and answers every syntax question
the compiler and adapters have: identifier quoting, placeholder rewriting and
the pagination clause. Nothing outside this module branches on the dialect
name when building SQL.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from querytool.errors.exceptions import QueryError, UnsupportedDialectError
from querytool.types import Dialect


# ------------------------- placeholder scanning -------------------------

# Quoted regions in which a "?" is literal text, not a placeholder.
_QUOTE_PAIRS = {"'": "'", '"': '"', "`": "`", "[": "]"}


def rewrite_placeholders(sql: str, make_marker: Callable[[int], str]) -> str:
    """
    Replace every "?" outside quoted regions with make_marker(index).

    Index is 1-based and follows statement order. Doubled closing quotes
    ('' or ]] etc.) are treated as escapes and stay inside the region.
    """
    out: List[str] = []
    i = 0
    n = len(sql)
    index = 0
    while i < n:
        ch = sql[i]
        closer = _QUOTE_PAIRS.get(ch)
        if closer is not None:
            j = i + 1
            while j < n:
                if sql[j] == closer:
                    if j + 1 < n and sql[j + 1] == closer:
                        j += 2
                        continue
                    break
                j += 1
            out.append(sql[i : j + 1])
            i = j + 1
            continue
        if ch == "?":
            index += 1
            out.append(make_marker(index))
        else:
            out.append(ch)
        i += 1
    return "".join(out)


# ------------------------------ strategies ------------------------------


class SQLDialect:
    """Capability set shared by every dialect strategy."""

    name: Dialect
    # sqlglot dialect name, used by the verifier.
    sqlglot_name: str
    requires_order_by_for_pagination: bool = False

    def quote_identifier(self, name: str) -> str:
        raise NotImplementedError

    def qualified_table(self, table: str, schema: Optional[str] = None) -> str:
        if schema:
            return f"{self.quote_identifier(schema)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table)

    def qualified_column(self, table: str, column: str) -> str:
        return f"{self.quote_identifier(table)}.{self.quote_identifier(column)}"

    def rewrite_params(
        self, sql: str, params: Sequence[Any]
    ) -> Tuple[str, Any]:
        """Turn "?" placeholders into the driver's own binding syntax."""
        raise NotImplementedError

    def pagination_clause(self, page_size: int, offset: int) -> Tuple[str, List[Any]]:
        """Return (clause, extra params) for one page window."""
        raise NotImplementedError


class MySQLDialect(SQLDialect):
    name = Dialect.MYSQL
    sqlglot_name = "mysql"
    requires_order_by_for_pagination = False

    def quote_identifier(self, name: str) -> str:
        return "`" + name.replace("`", "``") + "`"

    def rewrite_params(self, sql: str, params: Sequence[Any]) -> Tuple[str, Any]:
        # PyMySQL interpolates with "%" formatting only when args are given.
        if not params:
            return sql, None
        escaped = sql.replace("%", "%%")
        return rewrite_placeholders(escaped, lambda _i: "%s"), tuple(params)

    def pagination_clause(self, page_size: int, offset: int) -> Tuple[str, List[Any]]:
        return "LIMIT ? OFFSET ?", [page_size, offset]


class MSSQLDialect(SQLDialect):
    name = Dialect.MSSQL
    sqlglot_name = "tsql"
    # OFFSET ... FETCH is only valid after an ORDER BY.
    requires_order_by_for_pagination = True

    def quote_identifier(self, name: str) -> str:
        return "[" + name.replace("]", "]]") + "]"

    def rewrite_params(self, sql: str, params: Sequence[Any]) -> Tuple[str, Any]:
        if not params:
            return sql, None
        named: Dict[str, Any] = {}
        values = list(params)
        markers: List[str] = []

        def _marker(idx: int) -> str:
            key = f"@p{idx}"
            markers.append(key)
            if idx <= len(values):
                named[key] = values[idx - 1]
            return key

        rewritten = rewrite_placeholders(sql, _marker)
        if len(markers) != len(values):
            raise QueryError(
                f"Statement has a different number of placeholders than the "
                f"{len(values)} bound parameter(s)"
            )
        return rewritten, named

    def pagination_clause(self, page_size: int, offset: int) -> Tuple[str, List[Any]]:
        # Inlined as literals: both are ints computed from a validated PageSpec.
        return (
            f"OFFSET {int(offset)} ROWS FETCH NEXT {int(page_size)} ROWS ONLY",
            [],
        )


_DIALECTS: Dict[Dialect, SQLDialect] = {
    Dialect.MYSQL: MySQLDialect(),
    Dialect.MSSQL: MSSQLDialect(),
}


def get_dialect(name: Dialect | str) -> SQLDialect:
    try:
        key = name if isinstance(name, Dialect) else Dialect(str(name).lower())
    except ValueError as exc:
        raise UnsupportedDialectError(f"Unsupported dialect: {name!r}") from exc
    return _DIALECTS[key]
