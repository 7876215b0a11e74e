"""Database explorer backend for the dashboard.

`DBConnector` wraps a SQLAlchemy engine (MySQL through PyMySQL unless an
explicit URL is given) and provides the table, row and column operations
the dashboard exposes. Table and column names are reduced to
``[A-Za-z0-9_]`` and quoted by the dialect; values go through bound
parameters.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from .errors import DatabaseError, InvalidRequestError, NotConnectedError
from .logging_utils import get_logger

log = get_logger("boardb.db")

_IDENT_RE = re.compile(r"[^a-zA-Z0-9_]")


@dataclass
class DatabaseConfig:
    host: str = ""
    user: str = ""
    password: str = ""
    database: str = ""
    port: int = 3306
    # Any SQLAlchemy URL; takes precedence over the MySQL fields above.
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DatabaseConfig":
        return cls(
            host=str(data.get("host") or ""),
            user=str(data.get("user") or ""),
            password=str(data.get("password") or ""),
            database=str(data.get("database") or ""),
            port=int(data.get("port") or 3306),
            url=data.get("url") or None,
        )

    def sqlalchemy_url(self) -> URL:
        if self.url:
            return make_url(self.url)
        return URL.create(
            "mysql+pymysql",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
        )


@dataclass
class ColumnDefinition:
    name: str
    type: str
    primary: bool = False
    auto_increment: bool = False
    not_null: bool = False
    default_value: Optional[Any] = None
    after: Optional[str] = None


@dataclass
class QueryResult:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    fields: List[Dict[str, Any]] = field(default_factory=list)
    affected_rows: Optional[int] = None
    insert_id: Optional[int] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"rows": self.rows, "fields": self.fields}
        if self.affected_rows is not None:
            data["affectedRows"] = self.affected_rows
            data["insertId"] = self.insert_id
        if self.message is not None:
            data["message"] = self.message
        return data


@dataclass
class WriteResult:
    affected_rows: int = 0
    insert_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"affectedRows": self.affected_rows}
        if self.insert_id is not None:
            data["insertId"] = self.insert_id
        return data


def escape_identifier(name: str) -> str:
    cleaned = _IDENT_RE.sub("", str(name))
    if not cleaned:
        raise InvalidRequestError(f"Invalid identifier: {name!r}")
    return cleaned


def _sql_literal(value: Any) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def _type_name(type_: Any, engine: Engine) -> str:
    try:
        return type_.compile(dialect=engine.dialect)
    except SQLAlchemyError:
        return str(type_)


def result_message(sql: str, affected_rows: int, insert_id: Optional[int]) -> str:
    """Human readable outcome for a statement that returns no rows."""
    verb = sql.strip().split(None, 1)[0].upper() if sql.strip() else ""
    if verb == "INSERT":
        return f"Inserted {affected_rows} row(s). Insert ID: {insert_id if insert_id else 'N/A'}"
    if verb == "UPDATE":
        return f"Updated {affected_rows} row(s)"
    if verb == "DELETE":
        return f"Deleted {affected_rows} row(s)"
    if verb == "CREATE":
        return "Table created successfully"
    if verb == "DROP":
        return "Table dropped successfully"
    if verb == "ALTER":
        return "Table altered successfully"
    return f"Query executed successfully. Affected rows: {affected_rows}"


class DBConnector:
    """Connection to one database plus the dashboard's CRUD helpers.

    Args:
        config (DatabaseConfig): Where to connect.
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self.config = config
        self._engine: Optional[Engine] = None
        self.is_connected = False

    # -- connection -----------------------------------------------------

    def _engine_kwargs(self, url: URL) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"pool_pre_ping": True}
        if url.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                # one shared connection, otherwise every thread sees its own empty db
                kwargs["poolclass"] = StaticPool
        return kwargs

    def connect(self) -> bool:
        url = self.config.sqlalchemy_url()
        try:
            engine = create_engine(url, **self._engine_kwargs(url))
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            self.is_connected = False
            log.error("db.connect_failed", extra={"db_url": url.render_as_string(hide_password=True), "error": str(e)})
            raise DatabaseError(str(getattr(e, "orig", None) or e)) from e
        self._engine = engine
        self.is_connected = True
        log.info("db.connected", extra={"db_url": url.render_as_string(hide_password=True)})
        return True

    def disconnect(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            log.info("db.disconnected")
        self.is_connected = False

    @property
    def engine(self) -> Engine:
        if not self.is_connected or self._engine is None:
            raise NotConnectedError()
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def _quote(self, name: str) -> str:
        return self.engine.dialect.identifier_preparer.quote_identifier(escape_identifier(name))

    def test_connection(self) -> bool:
        try:
            self.query("SELECT 1")
            return True
        except (DatabaseError, NotConnectedError):
            return False

    def get_connection_info(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "host": self.config.host,
            "port": self.config.port,
            "user": self.config.user,
            "password": "****" if self.config.password else "",
            "database": self.config.database,
            "isConnected": self.is_connected,
        }
        if self.config.url:
            info["url"] = make_url(self.config.url).render_as_string(hide_password=True)
        return info

    # -- statements -----------------------------------------------------

    def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> QueryResult:
        """Run one statement in its own transaction.

        Args:
            sql (str): Statement text. With ``params`` it is compiled via
                ``text()`` and uses ``:name`` placeholders; without, it is
                handed to the driver as-is.
            params (Optional[Mapping[str, Any]]): Bound values.

        Returns:
            QueryResult: Rows and fields for row-returning statements,
            otherwise affected rows and insert id.
        """
        engine = self.engine
        try:
            with engine.begin() as conn:
                if params:
                    result = conn.execute(text(sql), dict(params))
                else:
                    result = conn.exec_driver_sql(sql)
                if result.returns_rows:
                    description = getattr(result.cursor, "description", None) or []
                    fields = [{"name": d[0], "type": d[1]} for d in description]
                    if not fields:
                        fields = [{"name": k, "type": None} for k in result.keys()]
                    rows = [dict(r) for r in result.mappings()]
                    return QueryResult(rows=rows, fields=fields)
                affected = max(int(result.rowcount or 0), 0)
                insert_id = getattr(result, "lastrowid", None) or None
                return QueryResult(affected_rows=affected, insert_id=insert_id)
        except SQLAlchemyError as e:
            log.error("db.query_failed", extra={"sql": sql[:200], "error": str(e)})
            raise DatabaseError(str(getattr(e, "orig", None) or e)) from e

    def execute_query(self, sql: str) -> QueryResult:
        res = self.query(sql)
        if res.fields:
            return res
        res.message = result_message(sql, res.affected_rows or 0, res.insert_id)
        return res

    # -- tables ---------------------------------------------------------

    def get_tables(self) -> List[str]:
        try:
            return list(inspect(self.engine).get_table_names())
        except SQLAlchemyError as e:
            raise DatabaseError(str(e)) from e

    def _describe(self, table: str, with_comment: bool) -> List[Dict[str, Any]]:
        name = escape_identifier(table)
        engine = self.engine
        try:
            insp = inspect(engine)
            cols = insp.get_columns(name)
            pk = set(insp.get_pk_constraint(name).get("constrained_columns") or [])
            unique = {
                c
                for uc in insp.get_unique_constraints(name)
                for c in (uc.get("column_names") or [])
                if len(uc.get("column_names") or []) == 1
            }
        except SQLAlchemyError as e:
            raise DatabaseError(str(e)) from e
        out = []
        for col in cols:
            key = "PRI" if col["name"] in pk else ("UNI" if col["name"] in unique else "")
            default = col.get("default")
            row: Dict[str, Any] = {
                "Field": col["name"],
                "Type": _type_name(col["type"], engine),
                "Null": "YES" if col.get("nullable", True) else "NO",
                "Key": key,
                "Default": None if default is None else str(default),
                "Extra": "auto_increment" if col.get("autoincrement") is True else "",
            }
            if with_comment:
                row["Comment"] = col.get("comment") or ""
            out.append(row)
        return out

    def get_table_schema(self, table: str) -> List[Dict[str, Any]]:
        return self._describe(table, with_comment=False)

    def get_column_info(self, table: str) -> List[Dict[str, Any]]:
        return self._describe(table, with_comment=True)

    def get_table_data(self, table: str, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        sql = f"SELECT * FROM {self._quote(table)} LIMIT :limit OFFSET :offset"
        return self.query(sql, {"limit": int(limit), "offset": int(offset)}).rows

    def create_table(self, table: str, columns: List[ColumnDefinition]) -> WriteResult:
        if not columns:
            raise InvalidRequestError("At least one column is required")
        defs = ", ".join(self._column_sql(c, with_keys=True) for c in columns)
        res = self.query(f"CREATE TABLE {self._quote(table)} ({defs})")
        return WriteResult(affected_rows=res.affected_rows or 0)

    def drop_table(self, table: str) -> WriteResult:
        res = self.query(f"DROP TABLE {self._quote(table)}")
        return WriteResult(affected_rows=res.affected_rows or 0)

    # -- rows -----------------------------------------------------------

    def _bind(self, data: Mapping[str, Any], prefix: str) -> Tuple[List[str], Dict[str, Any]]:
        names: List[str] = []
        params: Dict[str, Any] = {}
        for i, (col, value) in enumerate(data.items()):
            p = f"{prefix}{i}"
            names.append(f"{self._quote(col)} = :{p}")
            params[p] = value
        return names, params

    def insert_row(self, table: str, data: Mapping[str, Any]) -> WriteResult:
        """Insert ``data``; an empty auto-increment value is left to the database."""
        values = dict(data)
        for col in self.get_table_schema(table):
            if "auto_increment" in col["Extra"] and values.get(col["Field"]) in ("", None):
                values.pop(col["Field"], None)
        quoted = self._quote(table)
        if not values:
            if self.dialect_name == "mysql":
                sql = f"INSERT INTO {quoted} () VALUES ()"
            else:
                sql = f"INSERT INTO {quoted} DEFAULT VALUES"
            res = self.query(sql)
        else:
            cols = ", ".join(self._quote(c) for c in values)
            placeholders = ", ".join(f":v{i}" for i in range(len(values)))
            params = {f"v{i}": v for i, v in enumerate(values.values())}
            res = self.query(f"INSERT INTO {quoted} ({cols}) VALUES ({placeholders})", params)
        return WriteResult(affected_rows=res.affected_rows or 0, insert_id=res.insert_id)

    def update_row(self, table: str, data: Mapping[str, Any], where: Mapping[str, Any]) -> WriteResult:
        if not data or not where:
            raise InvalidRequestError("Row data and where condition are required")
        sets, params = self._bind(data, "s")
        conds, where_params = self._bind(where, "w")
        params.update(where_params)
        sql = f"UPDATE {self._quote(table)} SET {', '.join(sets)} WHERE {' AND '.join(conds)}"
        res = self.query(sql, params)
        return WriteResult(affected_rows=res.affected_rows or 0)

    def delete_row(self, table: str, where: Mapping[str, Any]) -> WriteResult:
        if not where:
            raise InvalidRequestError("Where condition is required")
        conds, params = self._bind(where, "w")
        res = self.query(f"DELETE FROM {self._quote(table)} WHERE {' AND '.join(conds)}", params)
        return WriteResult(affected_rows=res.affected_rows or 0)

    # -- columns --------------------------------------------------------

    def _column_sql(self, col: ColumnDefinition, with_keys: bool = False) -> str:
        parts = [self._quote(col.name), col.type]
        if with_keys and col.primary:
            parts.append("PRIMARY KEY")
        if with_keys and col.auto_increment:
            parts.append("AUTO_INCREMENT" if self.dialect_name == "mysql" else "AUTOINCREMENT")
        if col.not_null:
            parts.append("NOT NULL")
        if col.default_value is not None:
            parts.append(f"DEFAULT {_sql_literal(col.default_value)}")
        return " ".join(parts)

    def add_column(self, table: str, column: ColumnDefinition) -> WriteResult:
        sql = f"ALTER TABLE {self._quote(table)} ADD COLUMN {self._column_sql(column)}"
        if column.after:
            sql += f" AFTER {self._quote(column.after)}"
        res = self.query(sql)
        return WriteResult(affected_rows=res.affected_rows or 0)

    def drop_column(self, table: str, column: str) -> WriteResult:
        res = self.query(f"ALTER TABLE {self._quote(table)} DROP COLUMN {self._quote(column)}")
        return WriteResult(affected_rows=res.affected_rows or 0)

    def modify_column(self, table: str, column: str, definition: ColumnDefinition) -> WriteResult:
        col = ColumnDefinition(
            name=column,
            type=definition.type,
            not_null=definition.not_null,
            default_value=definition.default_value,
        )
        res = self.query(f"ALTER TABLE {self._quote(table)} MODIFY COLUMN {self._column_sql(col)}")
        return WriteResult(affected_rows=res.affected_rows or 0)

    def rename_column(self, table: str, old_name: str, new_name: str, definition: ColumnDefinition) -> WriteResult:
        col = ColumnDefinition(
            name=new_name,
            type=definition.type,
            not_null=definition.not_null,
            default_value=definition.default_value,
        )
        sql = f"ALTER TABLE {self._quote(table)} CHANGE COLUMN {self._quote(old_name)} {self._column_sql(col)}"
        res = self.query(sql)
        return WriteResult(affected_rows=res.affected_rows or 0)
