#!/usr/bin/env python3
"""Lightweight HTTP smoke test of the dashboard without a database.

Starts the dashboard in-process, instruments a tiny host app, drives a few
requests through it and checks the metrics endpoints reflect them.
"""
import os
import sys
from pathlib import Path

import httpx

# Ensure repository root is on sys.path when running from tools/
ROOT = str(Path(__file__).resolve().parents[1])
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


def main() -> int:
    port = int(os.getenv("PORT", "8091"))

    try:
        from fastapi import FastAPI
        from fastapi.testclient import TestClient
        from boardb.core import BoarDB
        from boardb.errors import DashboardStartError
    except Exception as e:
        print(f"Smoke prerequisites missing: {e}", file=sys.stderr)
        return 1

    boardb = BoarDB({"host": "127.0.0.1", "port": port, "max_entries": 100, "exclude_paths": ["/health"]})
    host = FastAPI()

    @host.get("/ping")
    def ping():
        return {"pong": True}

    boardb.api_wrapper(host)
    try:
        boardb.start()
    except DashboardStartError as e:
        print(f"Dashboard did not become ready: {e}", file=sys.stderr)
        return 1

    base = f"http://127.0.0.1:{port}"

    def _check(path: str, allow=(200,)):
        r = httpx.get(base + path, timeout=1.0)
        if r.status_code not in allow:
            raise RuntimeError(f"{path} -> {r.status_code}")
        print(path, "->", r.status_code)
        return r.json()

    try:
        with TestClient(host) as c:
            for _ in range(3):
                c.get("/ping")
            c.get("/missing")
        _check("/healthz")
        summary = _check("/api/metrics/summary")
        if summary.get("totalRequests") != 4:
            raise RuntimeError(f"unexpected summary: {summary}")
        _check("/api/metrics/endpoints")
        _check("/api/metrics/recent?limit=2")
        _check("/api/db/status")
    finally:
        boardb.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
