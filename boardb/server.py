from __future__ import annotations

import threading
import time
from typing import Any, Optional

import uvicorn

from .errors import DashboardStartError
from .logging_utils import get_logger


class DashboardServer:
    """Runs the dashboard app under uvicorn in a background thread.

    Args:
        app (Any): ASGI application to serve.
        host (str): Bind address.
        port (int): Bind port.
        startup_timeout_s (float): How long `start()` waits for the socket.
        log_level (str): uvicorn log level for its own loggers.

    A stopped server can be started again.
    """

    def __init__(
        self,
        app: Any,
        host: str = "127.0.0.1",
        port: int = 3333,
        startup_timeout_s: float = 10.0,
        log_level: str = "warning",
    ) -> None:
        self.app = app
        self.host = host
        self.port = int(port)
        self.startup_timeout_s = float(startup_timeout_s)
        config = uvicorn.Config(app, host=host, port=self.port, log_level=str(log_level).lower(), log_config=None)
        self._server = uvicorn.Server(config)
        self._thread: Optional[threading.Thread] = None
        self._log = get_logger("boardb.server")

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive() and self._server.started)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        # uvicorn keeps its shutdown flags after a previous run
        self._server.should_exit = False
        self._server.force_exit = False
        self._server.started = False
        t = threading.Thread(target=self._server.run, name="boardb-dashboard", daemon=True)
        self._thread = t
        t.start()
        deadline = time.monotonic() + self.startup_timeout_s
        while not self._server.started:
            if not t.is_alive():
                raise DashboardStartError(f"Dashboard server exited during startup on {self.url}")
            if time.monotonic() > deadline:
                self.stop()
                raise DashboardStartError(f"Dashboard server did not start within {self.startup_timeout_s}s")
            time.sleep(0.05)
        self._log.info("dashboard.started", extra={"url": self.url})

    def stop(self) -> None:
        self._server.should_exit = True
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        self._thread = None
        self._log.info("dashboard.stopped", extra={"url": self.url})
