"""Dashboard application.

Provides:
- `create_app()`: builds the FastAPI app serving the metrics and database
  explorer API for one BoarDB instance.
- Request context middleware: IDs and structured access logs.

Google-style docstrings to ease automatic documentation.
"""

import time
from pathlib import Path
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import FileResponse, JSONResponse

from .api import router as api_router
from .errors import DatabaseError, InvalidRequestError, NotConnectedError
from .logging_utils import get_logger, new_request_id, set_request_id


def create_app(boardb: Any) -> FastAPI:
    """Create the dashboard application for ``boardb``.

    Args:
        boardb (Any): The owning `BoarDB` instance; routes read its
            collector and database connector from ``app.state.boardb``.

    Returns:
        FastAPI: Ready to be served by uvicorn or a test client.
    """
    cfg: Dict[str, Any] = boardb.config
    app = FastAPI(title="BoarDB", version="0.1.0")
    log = get_logger("boardb.dashboard")

    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cfg.get("cors_origins") or ["*"]),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID + structured access logs
    @app.middleware("http")
    async def request_context(request, call_next):  # type: ignore[no-redef]
        rid = request.headers.get("x-request-id") or new_request_id()
        request.state.request_id = rid
        set_request_id(rid)
        start = time.time()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            response.headers["X-Request-Id"] = rid
            return response
        finally:
            dur = (time.time() - start) * 1000.0
            log.info(
                "request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "dur_ms": round(dur, 2),
                    "request_id": rid,
                    "status": status,
                },
            )
            # Clear context var
            set_request_id(None)

    @app.exception_handler(NotConnectedError)
    async def _not_connected(_request: Request, exc: NotConnectedError):
        return JSONResponse({"success": False, "message": str(exc)}, status_code=400)

    @app.exception_handler(InvalidRequestError)
    async def _invalid_request(_request: Request, exc: InvalidRequestError):
        return JSONResponse({"success": False, "message": str(exc)}, status_code=400)

    @app.exception_handler(DatabaseError)
    async def _database_error(_request: Request, exc: DatabaseError):
        return JSONResponse({"success": False, "message": str(exc)}, status_code=500)

    @app.get("/healthz")
    def healthz() -> Dict[str, Any]:
        conn = boardb.db_connector
        return {
            "status": "ok",
            "metrics_count": boardb.metrics.get_count(),
            "db_connected": bool(conn is not None and conn.is_connected),
        }

    app.include_router(api_router)

    # Pre-built dashboard bundle, when one is configured. Unknown non-API
    # paths get index.html so client-side routes survive a reload.
    frontend_dir = cfg.get("frontend_dir")
    if frontend_dir and Path(frontend_dir).is_dir():
        bundle = Path(frontend_dir).resolve()
        index = bundle / "index.html"

        @app.get("/{path:path}", include_in_schema=False)
        def dashboard_bundle(path: str):
            if path == "api" or path.startswith("api/"):
                return JSONResponse({"detail": "Not Found"}, status_code=404)
            target = (bundle / path).resolve()
            if path and bundle in target.parents and target.is_file():
                return FileResponse(target)
            if index.is_file():
                return FileResponse(index)
            return JSONResponse({"detail": "Not Found"}, status_code=404)

    app.state.boardb = boardb  # type: ignore[attr-defined]
    app.state.config = cfg  # type: ignore[attr-defined]
    return app
