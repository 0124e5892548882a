"""Portable smoke requests for the Query Tool API.

- Registers (or reuses) a data source from SMOKE_DB_* env vars
- Lists its tables
- Runs a paged query on the first table, then an unknown-column query
- Exits non-zero on failure (so Make/CI can trust it)

Env:
  API_BASE: base URL of API (default: http://127.0.0.1:8000)
  API_KEY:  API key header value (default: dev-key)
  SMOKE_DB_TYPE / SMOKE_DB_HOST / SMOKE_DB_PORT / SMOKE_DB_NAME /
  SMOKE_DB_USER / SMOKE_DB_PASSWORD: target database (default: local MySQL)
"""

from __future__ import annotations

import json
import os
import time

import requests


API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000").rstrip("/")
API_KEY = os.getenv("API_KEY", "dev-key")
HEADERS = {"X-API-Key": API_KEY, "Content-Type": "application/json"}
TIMEOUT_S = float(os.getenv("SMOKE_TIMEOUT", "60"))


def _profile() -> dict:
    return {
        "name": "smoke",
        "type": os.getenv("SMOKE_DB_TYPE", "mysql"),
        "host": os.getenv("SMOKE_DB_HOST", "127.0.0.1"),
        "port": int(os.getenv("SMOKE_DB_PORT", "3306")),
        "database_name": os.getenv("SMOKE_DB_NAME", "sakila"),
        "username": os.getenv("SMOKE_DB_USER", "root"),
        "password": os.getenv("SMOKE_DB_PASSWORD", ""),
    }


def _call(method: str, path: str, **kwargs) -> dict:
    t0 = time.time()
    resp = requests.request(
        method, f"{API_BASE}{path}", headers=HEADERS, timeout=TIMEOUT_S, **kwargs
    )
    dt_ms = int(round((time.time() - t0) * 1000))

    out: object
    try:
        out = resp.json()
    except ValueError:
        out = {"raw": resp.text}
    return {"status": resp.status_code, "latency_ms": dt_ms, "body": out}


def _get_error_code(body: object) -> str | None:
    """Extract error.code from the API response shape if present."""
    if not isinstance(body, dict):
        return None
    err = body.get("error")
    if isinstance(err, dict) and err.get("code") is not None:
        return str(err["code"])
    return None


def _ensure_data_source() -> int:
    profile = _profile()
    listed = _call("GET", "/api/v1/datasources")
    if listed["status"] != 200:
        raise RuntimeError(f"List failed: {listed['status']} {listed['body']}")
    for ds in listed["body"]:
        if ds.get("name") == profile["name"]:
            return int(ds["id"])

    created = _call("POST", "/api/v1/datasources", json=profile)
    if created["status"] != 201:
        raise RuntimeError(f"Create failed: {created['status']} {created['body']}")
    return int(created["body"]["id"])


def _report(label: str, r: dict) -> None:
    print(f"\n{label}")
    print(f"HTTP {r['status']} | {r['latency_ms']} ms")
    print(json.dumps(r["body"], indent=2, default=str)[:800])


def main() -> int:
    try:
        ds_id = _ensure_data_source()
    except Exception as e:
        print(f"❌ Failed to register data source: {e}")
        return 2

    tables = _call("GET", f"/api/v1/tables/{ds_id}")
    _report("List tables", tables)
    if tables["status"] != 200 or not tables["body"]:
        print("\n❌ no tables returned")
        return 3

    first = tables["body"][0]
    columns = [c["name"] for c in first["columns"]]

    ok_all = True
    paged = _call(
        "POST",
        "/api/v1/query",
        json={
            "dataSourceId": ds_id,
            "tableName": first["name"],
            "columns": columns,
            "page": 1,
            "pageSize": 5,
        },
    )
    _report(f"Query {first['name']} (page 1, size 5)", paged)
    if paged["status"] != 200 or len(paged["body"].get("rows", [])) > 5:
        ok_all = False

    rejected = _call(
        "POST",
        "/api/v1/query",
        json={
            "dataSourceId": ds_id,
            "tableName": first["name"],
            "columns": ["no_such_column; DROP TABLE x"],
        },
    )
    _report("Unknown column (must be rejected)", rejected)
    if rejected["status"] != 400 or _get_error_code(rejected["body"]) != "UNKNOWN_COLUMN":
        ok_all = False

    if ok_all:
        print("\n✅ smoke passed")
        return 0

    print("\n❌ smoke failed (see output above)")
    return 4


if __name__ == "__main__":
    raise SystemExit(main())
