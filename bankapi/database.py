"""Database connection management and generic JSON-style table access."""

from __future__ import annotations

import datetime as _dt
import enum
import logging
import re
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterator, Mapping

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, CursorResult, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

log = logging.getLogger(__name__)

CARD_ACCOUNTS: dict[str, str] = {
    "B1457D09": "12345678",
    "F3CC65BD": "87654321",
}
UNKNOWN_ACCOUNT = "-1"

DEFAULT_SSL: dict[str, str] = {
    "key": "C:/MySQL/certs/client-key.pem",
    "cert": "C:/MySQL/certs/client-cert.pem",
    "ca": "C:/MySQL/certs/ca.pem",
}

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class DatabaseError(Exception):
    """Raised when the database cannot be reached or a statement fails."""


class Action(enum.IntEnum):
    """Balance operations understood by the account tables."""

    DEPOSIT = 0
    WITHDRAW = 1
    SEND = 2


def resolve_card_uid(uid: str) -> str:
    """Map an RFID card UID to its account key, or ``"-1"`` if unknown."""
    return CARD_ACCOUNTS.get(uid, UNKNOWN_ACCOUNT)


def _check_identifier(name: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER.fullmatch(name):
        raise ValueError(f"invalid SQL identifier: {name!r}")
    return name


def build_insert_query(table: str, data: Mapping[str, Any]) -> str:
    """Build an INSERT statement with one named placeholder per key."""
    _check_identifier(table)
    if not data:
        raise ValueError("no columns to insert")
    fields = [_check_identifier(key) for key in data]
    placeholders = [f":{key}" for key in fields]
    return f"INSERT INTO {table} ({', '.join(fields)}) VALUES ({', '.join(placeholders)})"


def build_update_query(table: str, data: Mapping[str, Any]) -> str:
    """Build an UPDATE statement keyed on ``id`` with one placeholder per key."""
    _check_identifier(table)
    if not data:
        raise ValueError("no columns to update")
    assignments = [f"{_check_identifier(key)} = :{key}" for key in data]
    return f"UPDATE {table} SET {', '.join(assignments)} WHERE id = :id"


def _to_json(value: Any) -> Any:
    """Convert a column value into something JSON can carry."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (_dt.datetime, _dt.date, _dt.time)):
        return value.isoformat()
    if isinstance(value, _dt.timedelta):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return value


def _row_to_dict(row: Any) -> dict[str, Any]:
    return {key: _to_json(value) for key, value in row._mapping.items()}


class DataManager:
    """Owns the database engine and hands out connections and transactions."""

    def __init__(self, ssl_options: Mapping[str, str] | None = None) -> None:
        self.ssl_options = dict(DEFAULT_SSL if ssl_options is None else ssl_options)
        self._engine: Engine | None = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def connect(self, hostname, db_name, username, password, port=3306) -> None:
        """Connect to a MySQL server; raises DatabaseError on failure."""
        url = URL.create(
            "mysql+pymysql",
            username=username,
            password=password,
            host=hostname,
            port=port,
            database=db_name,
        )
        connect_args = {"ssl": dict(self.ssl_options)} if self.ssl_options else {}
        try:
            engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
        except SQLAlchemyError as exc:
            raise DatabaseError(f"cannot configure database: {exc}") from exc
        self._open(engine)

    def open_url(self, url) -> None:
        """Connect using a full SQLAlchemy database URL."""
        try:
            parsed = make_url(url)
            kwargs: dict[str, Any] = {}
            if parsed.get_backend_name() == "sqlite":
                kwargs["connect_args"] = {"check_same_thread": False}
                if parsed.database in (None, "", ":memory:"):
                    kwargs["poolclass"] = StaticPool
            engine = create_engine(parsed, **kwargs)
        except SQLAlchemyError as exc:
            raise DatabaseError(f"cannot configure database: {exc}") from exc
        self._open(engine)

    def _open(self, engine: Engine) -> None:
        try:
            with engine.connect():
                pass
        except SQLAlchemyError as exc:
            engine.dispose()
            log.debug("database connection failed: %s", exc)
            raise DatabaseError(f"database connection failed: {exc}") from exc
        self.disconnect()
        self._engine = engine
        log.debug("database connected")

    def disconnect(self) -> None:
        """Close all pooled connections; safe to call when not connected."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            log.debug("database disconnected")

    def _require_engine(self) -> Engine:
        if self._engine is None:
            raise DatabaseError("database is not connected")
        return self._engine

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Yield a connection whose work is committed when the block ends."""
        engine = self._require_engine()
        try:
            with engine.connect() as conn:
                yield conn
                conn.commit()
        except SQLAlchemyError as exc:
            raise DatabaseError(str(exc)) from exc

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Yield a connection in a transaction, rolled back if the block raises."""
        engine = self._require_engine()
        try:
            with engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise DatabaseError(str(exc)) from exc

    def __enter__(self) -> "DataManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()


class Table:
    """Generic CRUD access to one table, returning rows as dictionaries."""

    table_name = ""

    def __init__(self, manager: DataManager, table_name: str | None = None) -> None:
        self.manager = manager
        if table_name is not None:
            self.table_name = table_name
        _check_identifier(self.table_name)

    def _execute(self, sql: str, params: Mapping[str, Any] | None = None,
                 conn: Connection | None = None) -> CursorResult:
        if conn is not None:
            try:
                return conn.execute(text(sql), dict(params or {}))
            except SQLAlchemyError as exc:
                log.debug("statement failed on %s: %s", self.table_name, exc)
                raise DatabaseError(str(exc)) from exc
        with self.manager.connection() as own:
            return self._execute(sql, params, own)

    def _write(self, sql: str, params: Mapping[str, Any] | None = None,
               conn: Connection | None = None) -> int:
        """Run a statement and return the number of affected rows."""
        if conn is not None:
            return self._execute(sql, params, conn).rowcount
        with self.manager.connection() as own:
            return self._execute(sql, params, own).rowcount

    def _fetch_all(self, sql: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        with self.manager.connection() as conn:
            return [_row_to_dict(row) for row in self._execute(sql, params, conn)]

    def _fetch_one(self, sql: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        with self.manager.connection() as conn:
            row = self._execute(sql, params, conn).first()
            return _row_to_dict(row) if row is not None else {}

    def get_all(self) -> list[dict[str, Any]]:
        """Return every row of the table."""
        return self._fetch_all(f"SELECT * FROM {self.table_name}")

    def get_latest(self) -> dict[str, Any]:
        """Return the row with the highest id, or an empty dict."""
        return self._fetch_one(f"SELECT * FROM {self.table_name} ORDER BY id DESC LIMIT 1")

    def get_by_id(self, id) -> dict[str, Any]:
        """Return the row with the given id, or an empty dict."""
        return self._fetch_one(f"SELECT * FROM {self.table_name} WHERE id = :id", {"id": id})

    def get_by_condition(self, cond, value) -> dict[str, Any]:
        """Return the first row whose column ``cond`` equals ``value``."""
        column = _check_identifier(cond)
        return self._fetch_one(
            f"SELECT * FROM {self.table_name} WHERE {column} = :id_value",
            {"id_value": value},
        )

    def insert(self, data) -> bool:
        """Insert one row built from the mapping's keys and values."""
        self._write(build_insert_query(self.table_name, data), data)
        return True

    def update(self, id, data) -> bool:
        """Set the given columns on the row with the given id."""
        self._write(build_update_query(self.table_name, data), {**data, "id": id})
        return True

    def remove(self, id) -> bool:
        """Delete the row with the given id."""
        self._write(f"DELETE FROM {self.table_name} WHERE id = :id", {"id": id})
        return True