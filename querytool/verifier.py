from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

import sqlglot
from sqlglot import exp

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifyResult:
    ok: bool
    reason: str = "ok"
    notes: Dict[str, Any] = field(default_factory=dict)


class StatementVerifier:
    """
    Read-only check on compiled statements before they are dispatched.

    - Exactly one statement, and it must be a SELECT.
    - Parse failures are reported as `parse_unavailable` but stay ok: the
      compiler, not sqlglot, is the authority on dialect syntax.
    """

    name = "verifier"

    def verify(self, sql: str, *, dialect: str) -> VerifyResult:
        sql_stripped = (sql or "").strip().rstrip(";")
        notes: Dict[str, Any] = {"sql_length": len(sql_stripped), "dialect": dialect}
        if not sql_stripped:
            return VerifyResult(ok=False, reason="empty_sql", notes=notes)

        try:
            trees = [t for t in sqlglot.parse(sql_stripped, read=dialect) if t]
        except Exception as e:
            notes.update({"parse_error": str(e), "parse_error_type": type(e).__name__})
            log.warning("Compiled SQL could not be parsed for verification", extra=notes)
            return VerifyResult(ok=True, reason="parse_unavailable", notes=notes)

        notes["statement_count"] = len(trees)
        if len(trees) != 1:
            return VerifyResult(ok=False, reason="multiple_statements", notes=notes)

        root = trees[0]
        if not isinstance(root, exp.Select):
            notes["root"] = type(root).__name__
            return VerifyResult(ok=False, reason="non_select", notes=notes)

        return VerifyResult(ok=True, notes=notes)
