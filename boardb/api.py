from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .db import ColumnDefinition, DatabaseConfig, DBConnector
from .errors import DatabaseError, NotConnectedError
from .logging_utils import get_logger


class ConnectRequest(BaseModel):
    host: Optional[str] = None
    port: Optional[int] = 3306
    user: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    url: Optional[str] = None


class QueryRequest(BaseModel):
    sql: Optional[str] = None


class RowRequest(BaseModel):
    data: Optional[Dict[str, Any]] = None
    where: Optional[Dict[str, Any]] = None


class ColumnModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    type: Optional[str] = None
    primary: bool = False
    auto_increment: bool = Field(False, alias="autoIncrement")
    not_null: bool = Field(False, alias="notNull")
    default_value: Optional[Any] = Field(None, alias="defaultValue")
    after: Optional[str] = None

    def to_definition(self, name: Optional[str] = None) -> ColumnDefinition:
        return ColumnDefinition(
            name=name or self.name or "",
            type=self.type or "",
            primary=self.primary,
            auto_increment=self.auto_increment,
            not_null=self.not_null,
            default_value=self.default_value,
            after=self.after,
        )


class CreateTableRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    table_name: Optional[str] = Field(None, alias="tableName")
    columns: Optional[List[ColumnModel]] = None


class ColumnRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    column_definition: Optional[ColumnModel] = Field(None, alias="columnDefinition")
    new_column_name: Optional[str] = Field(None, alias="newColumnName")


router = APIRouter(prefix="/api")
log = get_logger("boardb.api")


def get_boardb(request: Request):
    return request.app.state.boardb


def require_db(request: Request) -> DBConnector:
    conn = get_boardb(request).db_connector
    if conn is None or not conn.is_connected:
        raise NotConnectedError()
    return conn


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=400)


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _int_or(raw: Optional[str], default: int) -> int:
    # leading integer ("5abc" -> 5); missing, non-numeric and zero fall back
    m = _LEADING_INT.match(raw or "")
    return (int(m.group(1)) if m else 0) or default


# -- metrics ---------------------------------------------------------------


@router.get("/metrics/summary")
def metrics_summary(request: Request):
    return JSONResponse(get_boardb(request).metrics.get_summary().to_dict())


@router.get("/metrics/endpoints")
def metrics_endpoints(request: Request):
    return JSONResponse([ep.to_dict() for ep in get_boardb(request).metrics.get_by_endpoint()])


@router.get("/metrics/recent")
def metrics_recent(request: Request, limit: Optional[str] = None):
    metrics = get_boardb(request).metrics
    n = _int_or(limit, 10)
    # negative limits drop that many of the oldest events
    events = metrics.get_recent(n) if n > 0 else metrics.get_all()[:n]
    return JSONResponse([e.to_dict() for e in events])


@router.get("/metrics/all")
def metrics_all(request: Request):
    return JSONResponse([e.to_dict() for e in get_boardb(request).metrics.get_all()])


@router.get("/metrics/range")
def metrics_range(request: Request, start: int = Query(...), end: int = Query(...)):
    events = get_boardb(request).metrics.get_by_time_range(start, end)
    return JSONResponse([e.to_dict() for e in events])


@router.get("/metrics/count")
def metrics_count(request: Request):
    return {"count": get_boardb(request).metrics.get_count()}


@router.delete("/metrics")
def metrics_clear(request: Request):
    get_boardb(request).metrics.clear()
    log.info("metrics.cleared")
    return {"success": True}


# -- database connection ----------------------------------------------------


@router.post("/db/connect")
def db_connect(req: ConnectRequest, request: Request):
    if not req.url and not (req.host and req.user and req.password and req.database):
        return _bad_request("Missing required database connection parameters")
    cfg = DatabaseConfig(
        host=req.host or "",
        port=int(req.port or 3306),
        user=req.user or "",
        password=req.password or "",
        database=req.database or "",
        url=req.url,
    )
    try:
        get_boardb(request).connect_db(cfg)
    except DatabaseError as e:
        return JSONResponse({"success": False, "message": f"Database connection failed: {e}"}, status_code=500)
    return {"success": True, "message": "Database connected successfully"}


@router.get("/db/status")
def db_status(request: Request):
    conn = get_boardb(request).db_connector
    if conn is None:
        return {"connected": False}
    return {"connected": conn.is_connected, "info": conn.get_connection_info()}


# -- tables -----------------------------------------------------------------


@router.get("/db/tables")
def db_tables(request: Request):
    return {"success": True, "tables": require_db(request).get_tables()}


@router.get("/db/table/{table_name}/schema")
def db_table_schema(table_name: str, request: Request):
    return {"success": True, "schema": require_db(request).get_table_schema(table_name)}


@router.get("/db/table/{table_name}/data")
def db_table_data(table_name: str, request: Request, limit: Optional[str] = None, offset: Optional[str] = None):
    conn = require_db(request)
    rows = conn.get_table_data(table_name, max(0, _int_or(limit, 100)), max(0, _int_or(offset, 0)))
    return {"success": True, "data": rows}


@router.post("/db/query")
def db_query(req: QueryRequest, request: Request):
    conn = require_db(request)
    if not req.sql:
        return _bad_request("SQL query is required")
    result = conn.execute_query(req.sql)
    log.info("db.query", extra={"fields": len(result.fields), "affected_rows": result.affected_rows})
    return {"success": True, "result": result.to_dict()}


@router.post("/db/table")
def db_create_table(req: CreateTableRequest, request: Request):
    conn = require_db(request)
    if not req.table_name or not req.columns:
        return _bad_request("Table name and columns are required")
    if any(not c.name or not c.type for c in req.columns):
        return _bad_request("Column name and type are required")
    result = conn.create_table(req.table_name, [c.to_definition() for c in req.columns])
    return {"success": True, "result": result.to_dict()}


@router.delete("/db/table/{table_name}")
def db_drop_table(table_name: str, request: Request):
    result = require_db(request).drop_table(table_name)
    return {"success": True, "result": result.to_dict()}


# -- rows -------------------------------------------------------------------


@router.post("/db/table/{table_name}/row")
def db_insert_row(table_name: str, req: RowRequest, request: Request):
    conn = require_db(request)
    if req.data is None:
        return _bad_request("Row data is required")
    result = conn.insert_row(table_name, req.data)
    return {"success": True, "result": result.to_dict()}


@router.put("/db/table/{table_name}/row")
def db_update_row(table_name: str, req: RowRequest, request: Request):
    conn = require_db(request)
    if not req.data or not req.where:
        return _bad_request("Row data and where condition are required")
    result = conn.update_row(table_name, req.data, req.where)
    return {"success": True, "result": result.to_dict()}


@router.delete("/db/table/{table_name}/row")
def db_delete_row(table_name: str, req: RowRequest, request: Request):
    conn = require_db(request)
    if not req.where:
        return _bad_request("Where condition is required")
    result = conn.delete_row(table_name, req.where)
    return {"success": True, "result": result.to_dict()}


# -- columns ----------------------------------------------------------------


@router.get("/db/table/{table_name}/columns")
def db_columns(table_name: str, request: Request):
    return {"success": True, "columns": require_db(request).get_column_info(table_name)}


@router.post("/db/table/{table_name}/column")
def db_add_column(table_name: str, req: ColumnRequest, request: Request):
    conn = require_db(request)
    col = req.column_definition
    if col is None or not col.name or not col.type:
        return _bad_request("Column name and type are required")
    result = conn.add_column(table_name, col.to_definition())
    return {"success": True, "result": result.to_dict()}


@router.delete("/db/table/{table_name}/column/{column_name}")
def db_drop_column(table_name: str, column_name: str, request: Request):
    result = require_db(request).drop_column(table_name, column_name)
    return {"success": True, "result": result.to_dict()}


@router.put("/db/table/{table_name}/column/{column_name}")
def db_modify_column(table_name: str, column_name: str, req: ColumnRequest, request: Request):
    conn = require_db(request)
    col = req.column_definition
    if col is None or not col.type:
        return _bad_request("Column type is required")
    result = conn.modify_column(table_name, column_name, col.to_definition(column_name))
    return {"success": True, "result": result.to_dict()}


@router.patch("/db/table/{table_name}/column/{column_name}")
def db_rename_column(table_name: str, column_name: str, req: ColumnRequest, request: Request):
    conn = require_db(request)
    col = req.column_definition
    if not req.new_column_name or col is None or not col.type:
        return _bad_request("New column name and type are required")
    result = conn.rename_column(table_name, column_name, req.new_column_name, col.to_definition(req.new_column_name))
    return {"success": True, "result": result.to_dict()}
