"""API monitoring middleware for FastAPI/Starlette host applications.

`install_api_wrapper()` registers an HTTP middleware that turns every request
(outside the excluded path prefixes) into one `MetricEvent` and hands it to
the collector once the downstream handler has produced a response.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fastapi import Request

from .logging_utils import get_logger
from .metrics import MetricEvent, MetricsCollector

log = get_logger("boardb.middleware")


@dataclass
class ApiWrapperOptions:
    exclude_paths: List[str] = field(default_factory=lambda: ["/health", "/favicon.ico"])
    include_body: bool = False
    include_headers: bool = False

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "ApiWrapperOptions":
        return cls(
            exclude_paths=list(cfg.get("exclude_paths", ["/health", "/favicon.ico"])),
            include_body=bool(cfg.get("include_body", False)),
            include_headers=bool(cfg.get("include_headers", False)),
        )

    def is_excluded(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.exclude_paths)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _decode_body(raw: bytes, content_type: str) -> Any:
    if not raw:
        return None
    text = raw.decode("utf-8", errors="replace")
    if "json" in content_type:
        try:
            return json.loads(text)
        except ValueError:
            return text
    return text


def build_event(
    request: Request,
    status_code: int,
    start_ms: int,
    end_ms: int,
    options: ApiWrapperOptions,
    body: Optional[bytes] = None,
) -> MetricEvent:
    """Assemble the event for one finished request.

    Args:
        request (Request): Incoming request.
        status_code (int): Final response status.
        start_ms (int): Request start, ms since epoch.
        end_ms (int): Response time, ms since epoch.
        options (ApiWrapperOptions): Controls body/header capture.
        body (Optional[bytes]): Raw request body, read only when
            ``options.include_body`` is set.

    Returns:
        MetricEvent: Ready to be added to the collector.
    """
    client = getattr(request, "client", None)
    extras: Dict[str, Any] = {
        "ip": getattr(client, "host", None) or "unknown",
        "user_agent": request.headers.get("user-agent") or "unknown",
    }
    if options.include_body and body:
        extras["request_body"] = _decode_body(body, request.headers.get("content-type", ""))
    if options.include_headers:
        extras["headers"] = dict(request.headers)
    return MetricEvent.build(
        method=request.method.upper(),
        path=request.url.path,
        status_code=status_code,
        response_time=end_ms - start_ms,
        timestamp=start_ms,
        **extras,
    )


def install_api_wrapper(app: Any, collector: MetricsCollector, options: Optional[ApiWrapperOptions] = None) -> None:
    """Instrument ``app`` so each request is recorded in ``collector``.

    Args:
        app (Any): FastAPI or Starlette application.
        collector (MetricsCollector): Destination of the events.
        options (Optional[ApiWrapperOptions]): Exclusions and capture flags.
    """
    opts = options or ApiWrapperOptions()

    @app.middleware("http")
    async def api_wrapper(request, call_next):  # type: ignore[no-redef]
        if opts.is_excluded(request.url.path):
            return await call_next(request)
        start = _now_ms()
        body = await request.body() if opts.include_body else None
        status = 500
        try:
            response = await call_next(request)
            status = getattr(response, "status_code", 200)
            return response
        finally:
            event = build_event(request, status, start, _now_ms(), opts, body)
            collector.add(event)
            log.debug(
                "api_metric",
                extra={"method": event.method, "path": event.path, "status": event.status_code, "dur_ms": event.response_time},
            )
