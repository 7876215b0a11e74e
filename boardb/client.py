from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from .errors import DashboardAPIError
from .logging_utils import get_logger


class DashboardClient:
    """HTTP client for a running BoarDB dashboard.

    Every method returns the decoded JSON body. Non-2xx answers raise
    `DashboardAPIError` carrying the server's ``message`` (or ``detail``).

    Args:
        base_url (str): Dashboard root, e.g. ``http://localhost:3333``.
        timeout (float): Per-request timeout in seconds.
        http (Optional[httpx.Client]): Pre-built client (for instance a
            FastAPI ``TestClient``); ``base_url`` is ignored when given.
    """

    def __init__(self, base_url: str = "http://localhost:3333", timeout: float = 30.0, http: Optional[httpx.Client] = None) -> None:
        self._owns_http = http is None
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self._log = get_logger("boardb.client")

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "DashboardClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            r = self.http.request(method, "/api" + path, **kwargs)
        except httpx.HTTPError as e:
            self._log.error("client.request_failed", extra={"method": method, "path": path, "error": str(e)})
            raise DashboardAPIError(f"{method} {path} failed: {e}") from e
        if r.status_code >= 400:
            try:
                body = r.json()
                message = body.get("message") or body.get("detail") or r.text
            except ValueError:
                message = r.text
            raise DashboardAPIError(str(message), status_code=r.status_code)
        return r.json()

    # metrics

    def get_summary(self) -> Dict[str, Any]:
        return self._request("GET", "/metrics/summary")

    def get_endpoints(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/metrics/endpoints")

    def get_recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        return self._request("GET", "/metrics/recent", params={"limit": limit})

    def get_all(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/metrics/all")

    def get_by_time_range(self, start: int, end: int) -> List[Dict[str, Any]]:
        return self._request("GET", "/metrics/range", params={"start": start, "end": end})

    def get_count(self) -> int:
        return int(self._request("GET", "/metrics/count")["count"])

    def clear_metrics(self) -> None:
        self._request("DELETE", "/metrics")

    # database

    def connect(self, **db: Any) -> Dict[str, Any]:
        return self._request("POST", "/db/connect", json=db)

    def get_status(self) -> Dict[str, Any]:
        return self._request("GET", "/db/status")

    def get_tables(self) -> List[str]:
        return self._request("GET", "/db/tables")["tables"]

    def get_table_schema(self, table: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/db/table/{table}/schema")["schema"]

    def get_table_data(self, table: str, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        return self._request("GET", f"/db/table/{table}/data", params={"limit": limit, "offset": offset})["data"]

    def execute_query(self, sql: str) -> Dict[str, Any]:
        return self._request("POST", "/db/query", json={"sql": sql})["result"]

    def insert_row(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", f"/db/table/{table}/row", json={"data": data})["result"]

    def update_row(self, table: str, data: Dict[str, Any], where: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/db/table/{table}/row", json={"data": data, "where": where})["result"]

    def delete_row(self, table: str, where: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("DELETE", f"/db/table/{table}/row", json={"where": where})["result"]

    def create_table(self, table: str, columns: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._request("POST", "/db/table", json={"tableName": table, "columns": columns})["result"]

    def drop_table(self, table: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/db/table/{table}")["result"]

    def get_columns(self, table: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/db/table/{table}/columns")["columns"]

    def add_column(self, table: str, column: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", f"/db/table/{table}/column", json={"columnDefinition": column})["result"]

    def drop_column(self, table: str, column: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/db/table/{table}/column/{column}")["result"]

    def modify_column(self, table: str, column: str, definition: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/db/table/{table}/column/{column}", json={"columnDefinition": definition})["result"]

    def rename_column(self, table: str, column: str, new_name: str, definition: Dict[str, Any]) -> Dict[str, Any]:
        body = {"newColumnName": new_name, "columnDefinition": definition}
        return self._request("PATCH", f"/db/table/{table}/column/{column}", json=body)["result"]
