from __future__ import annotations

from typing import Optional


class BoarDBError(Exception):
    """Base class for errors raised at the BoarDB boundaries."""


class DatabaseError(BoarDBError):
    """A connect or query against the configured database failed."""


class NotConnectedError(BoarDBError):
    def __init__(self, message: str = "Database not connected") -> None:
        super().__init__(message)


class DashboardStartError(BoarDBError):
    pass


class DashboardAPIError(BoarDBError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidRequestError(BoarDBError, ValueError):
    """Caller supplied an unusable identifier or an incomplete row operation."""
