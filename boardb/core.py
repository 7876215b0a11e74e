"""BoarDB facade.

One `BoarDB` instance owns the metrics collector for an embedding
application, the optional database connection and the optional dashboard
server. Nothing here is global: create the instance, then hand it to the
host app with `api_wrapper()`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Union

from .app import create_app
from .config_loader import build_effective_config
from .db import DatabaseConfig, DBConnector
from .logging_utils import get_logger, set_level
from .metrics import MetricEvent, MetricsCollector
from .middleware import ApiWrapperOptions, install_api_wrapper
from .server import DashboardServer


class BoarDB:
    """Entry point for embedding API monitoring and the dashboard.

    Args:
        config (Optional[Dict[str, Any]]): Effective configuration. Built from
            defaults, `BOARDB_CONFIG` and the environment when omitted.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        self.config: Dict[str, Any] = config if config is not None else build_effective_config()
        self.metrics = MetricsCollector(int(self.config.get("max_entries", 1000)))
        self.db_connector: Optional[DBConnector] = None
        self.dashboard: Optional[DashboardServer] = None
        self._log = get_logger("boardb")
        set_level(self.config.get("log_level"))

    def api_wrapper(self, app: Any, options: Optional[ApiWrapperOptions] = None) -> None:
        """Instrument a host FastAPI/Starlette app with this instance's collector."""
        install_api_wrapper(app, self.metrics, options or ApiWrapperOptions.from_config(self.config))

    def create_dashboard_app(self) -> Any:
        return create_app(self)

    def start(self, port: Optional[int] = None, host: Optional[str] = None) -> DashboardServer:
        """Serve the dashboard in a background thread. A second call is a no-op."""
        if self.dashboard is not None and self.dashboard.is_running():
            self._log.info("dashboard.already_running", extra={"url": self.dashboard.url})
            return self.dashboard
        server = DashboardServer(
            self.create_dashboard_app(),
            host=host or self.config.get("host", "127.0.0.1"),
            port=int(port if port is not None else self.config.get("port", 3333)),
            log_level=self.config.get("log_level", "warning"),
        )
        server.start()
        self.dashboard = server
        return server

    def connect_db(self, db_config: Union[DatabaseConfig, Mapping[str, Any]]) -> DBConnector:
        """Connect (or reconnect) the database explorer.

        Raises:
            DatabaseError: When the database cannot be reached.
        """
        cfg = db_config if isinstance(db_config, DatabaseConfig) else DatabaseConfig.from_dict(db_config)
        connector = DBConnector(cfg)
        connector.connect()
        if self.db_connector is not None:
            self.db_connector.disconnect()
        self.db_connector = connector
        return connector

    def get_metrics(self) -> List[MetricEvent]:
        return self.metrics.get_all()

    def get_db_connector(self) -> Optional[DBConnector]:
        return self.db_connector

    def stop(self) -> None:
        if self.dashboard is not None:
            self.dashboard.stop()
            self.dashboard = None
        if self.db_connector is not None:
            self.db_connector.disconnect()
