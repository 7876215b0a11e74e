"""In-memory API metrics for the BoarDB dashboard.

Keeps a bounded, newest-first history of request events together with global
summary counters, and answers the rollup queries the dashboard needs
(summary, per-endpoint, recent, time range). Nothing is persisted.

Google-style docstrings for automatic documentation.
"""

from __future__ import annotations

import math
import threading
from collections import deque
from dataclasses import dataclass, field
from itertools import islice
from typing import Any, Deque, Dict, List, Optional, Tuple

DEFAULT_MAX_ENTRIES = 1000
MIN_MAX_ENTRIES = 100


def _round(value: float) -> int:
    # half-up, matching how the dashboard has always displayed averages
    return int(math.floor(value + 0.5))


def _mean(total: float, count: int) -> int:
    if count <= 0:
        return 0
    return _round(total / count)


def is_success(status_code: int) -> bool:
    return 200 <= int(status_code) < 400


@dataclass(frozen=True)
class MetricEvent:
    """One completed HTTP request.

    Attributes:
        method (str): HTTP verb.
        path (str): Request path without query string.
        status_code (int): Response status.
        response_time (int): Milliseconds from request start to response.
        timestamp (int): Request start, milliseconds since epoch.
        success (bool): True iff ``200 <= status_code < 400``.
        ip (Optional[str]): Client address, diagnostic only.
        user_agent (Optional[str]): ``User-Agent`` header, diagnostic only.
        request_body (Any): Request payload when body capture is enabled.
        headers (Optional[Dict[str, str]]): Request headers when enabled.
    """

    method: str
    path: str
    status_code: int
    response_time: int
    timestamp: int
    success: bool
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    request_body: Any = field(default=None, hash=False)
    headers: Optional[Dict[str, str]] = field(default=None, hash=False, compare=False)

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        status_code: int,
        response_time: int,
        timestamp: int,
        **extras: Any,
    ) -> "MetricEvent":
        """Create an event, deriving ``success`` from the status code."""
        return cls(
            method=method,
            path=path,
            status_code=int(status_code),
            response_time=int(response_time),
            timestamp=int(timestamp),
            success=is_success(status_code),
            **extras,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "method": self.method,
            "path": self.path,
            "statusCode": self.status_code,
            "responseTime": self.response_time,
            "timestamp": self.timestamp,
            "success": self.success,
        }
        if self.ip is not None:
            data["ip"] = self.ip
        if self.user_agent is not None:
            data["userAgent"] = self.user_agent
        if self.request_body is not None:
            data["requestBody"] = self.request_body
        if self.headers is not None:
            data["headers"] = dict(self.headers)
        return data


@dataclass(frozen=True)
class Summary:
    total_requests: int = 0
    success_requests: int = 0
    failed_requests: int = 0
    average_response_time: int = 0

    @property
    def success_rate(self) -> int:
        if self.total_requests <= 0:
            return 0
        return _round(self.success_requests / self.total_requests * 100)

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalRequests": self.total_requests,
            "successRequests": self.success_requests,
            "failedRequests": self.failed_requests,
            "averageResponseTime": self.average_response_time,
            "successRate": self.success_rate,
        }


@dataclass
class EndpointMetric:
    method: str
    path: str
    count: int = 0
    success_count: int = 0
    failed_count: int = 0
    total_response_time: int = 0

    @property
    def average_response_time(self) -> int:
        return _mean(self.total_response_time, self.count)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "path": self.path,
            "count": self.count,
            "successCount": self.success_count,
            "failedCount": self.failed_count,
            "totalResponseTime": self.total_response_time,
            "averageResponseTime": self.average_response_time,
        }


class MetricsCollector:
    """Bounded, newest-first store of :class:`MetricEvent` with rollups.

    Main methods:
      - add: ingest one event, evicting the oldest past capacity.
      - get_summary / get_count: O(1) global counters.
      - get_all / get_recent / get_by_time_range: views of the history.
      - get_by_endpoint: per ``(method, path)`` aggregates, busiest first.
      - clear: drop everything.

    All operations take one lock, so a collector can be shared between the
    host application's request handlers and the dashboard server thread.

    Args:
        max_entries (int): Capacity. Values below 100 are raised to 100.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self.max_entries = max(MIN_MAX_ENTRIES, int(max_entries))
        self._lock = threading.Lock()
        self._events: Deque[MetricEvent] = deque()
        self._total = 0
        self._success = 0
        self._failed = 0
        self._response_time_sum = 0

    def add(self, event: MetricEvent) -> None:
        """Record ``event`` as the newest entry."""
        with self._lock:
            self._events.appendleft(event)
            if len(self._events) > self.max_entries:
                while len(self._events) > self.max_entries:
                    self._events.pop()
                self._recalculate()
                return
            self._total += 1
            if event.success:
                self._success += 1
            else:
                self._failed += 1
            self._response_time_sum += event.response_time

    def _recalculate(self) -> None:
        # caller holds the lock
        self._total = len(self._events)
        self._success = sum(1 for e in self._events if e.success)
        self._failed = self._total - self._success
        self._response_time_sum = sum(e.response_time for e in self._events)

    def get_summary(self) -> Summary:
        with self._lock:
            return Summary(
                total_requests=self._total,
                success_requests=self._success,
                failed_requests=self._failed,
                average_response_time=_mean(self._response_time_sum, len(self._events)),
            )

    def get_all(self) -> List[MetricEvent]:
        """Return the whole history, newest first, as a new list."""
        with self._lock:
            return list(self._events)

    def get_recent(self, limit: int = 10) -> List[MetricEvent]:
        """Return up to ``limit`` newest events. Negative limits yield nothing."""
        limit = max(0, int(limit))
        with self._lock:
            return list(islice(self._events, limit))

    def get_by_endpoint(self) -> List[EndpointMetric]:
        """Aggregate the history per exact ``(method, path)``.

        Returns:
            List[EndpointMetric]: Sorted by ``count`` descending. Equal counts
            keep the order in which the endpoint was first seen scanning from
            the newest event.
        """
        groups: Dict[Tuple[str, str], EndpointMetric] = {}
        with self._lock:
            for e in self._events:
                key = (e.method, e.path)
                ep = groups.get(key)
                if ep is None:
                    ep = groups[key] = EndpointMetric(method=e.method, path=e.path)
                ep.count += 1
                ep.total_response_time += e.response_time
                if e.success:
                    ep.success_count += 1
                else:
                    ep.failed_count += 1
        return sorted(groups.values(), key=lambda ep: ep.count, reverse=True)

    def get_by_time_range(self, start: int, end: int) -> List[MetricEvent]:
        """Return events with ``start <= timestamp <= end`` in store order."""
        with self._lock:
            return [e for e in self._events if start <= e.timestamp <= end]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
            self._total = 0
            self._success = 0
            self._failed = 0
            self._response_time_sum = 0

    def get_count(self) -> int:
        with self._lock:
            return len(self._events)

    def __len__(self) -> int:
        return self.get_count()
