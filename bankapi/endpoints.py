"""Turning table operations into JSON HTTP responses."""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

from .database import Action, DatabaseError, Table

log = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
INSERT_FAILED_MESSAGE = "사용자 추가 실패"
INSERT_SUCCEEDED_MESSAGE = "사용자 추가 성공"

_ACTIONS = {
    "Deposit": Action.DEPOSIT,
    "Withdraw": Action.WITHDRAW,
    "Send": Action.SEND,
}


@dataclass(frozen=True)
class HttpResponse:
    """A finished HTTP response: body bytes, status code and content type."""

    body: bytes = b""
    status: int = HTTPStatus.OK
    content_type: str = JSON_CONTENT_TYPE

    def json(self) -> Any:
        """Decode the body as JSON; None for an empty body."""
        return json.loads(self.body) if self.body else None


def _encode(payload: Any) -> bytes:
    return json.dumps(
        payload, ensure_ascii=False, sort_keys=True, separators=(",", ":")
    ).encode("utf-8")


def _parse_object(body: bytes | str) -> dict[str, Any]:
    """Parse a JSON body; raises ValueError if it is not valid JSON."""
    doc = json.loads(body)
    return doc if isinstance(doc, dict) else {}


def _inner(document: dict[str, Any]) -> dict[str, Any]:
    data = document.get("data")
    return data if isinstance(data, dict) else {}


class EndPoints:
    """Registry of tables by name, building responses from their contents."""

    def __init__(self) -> None:
        self._tables: dict[str, Table] = {}

    def register_db(self, name, db) -> None:
        """Make ``db`` reachable under the table name ``name``."""
        self._tables[name] = db

    def _json_response(self, payload: Any | None) -> HttpResponse:
        return HttpResponse(b"" if payload is None else _encode(payload))

    def build_response(self, table) -> HttpResponse:
        """All rows of ``table``; an empty body if the table is unknown."""
        db = self._tables.get(table)
        return self._json_response(None if db is None else db.get_all())

    def build_response_where(self, table, con1, con2) -> HttpResponse:
        """The row of ``table`` matched by the two conditions."""
        db = self._tables.get(table)
        return self._json_response(None if db is None else db.get_by_condition(con1, con2))

    def build_response_recent(self, table) -> HttpResponse:
        """The newest row of ``table``."""
        db = self._tables.get(table)
        return self._json_response(None if db is None else db.get_latest())

    def build_post_response(self, table, is_post) -> HttpResponse:
        """Report the outcome of a write to ``table``."""
        if not is_post:
            log.warning("failed to insert into %s", table)
            payload = {"success": False, "message": INSERT_FAILED_MESSAGE, "code": 500}
            return HttpResponse(_encode(payload), HTTPStatus.INTERNAL_SERVER_ERROR)
        payload = {
            "success": True,
            "message": INSERT_SUCCEEDED_MESSAGE,
            "memberTable": table,
            "code": 200,
        }
        return HttpResponse(_encode(payload))

    def insert_success(self, body, table) -> bool:
        """Insert the body's ``data`` object into ``table``; True on success."""
        try:
            document = _parse_object(body)
        except ValueError as exc:
            log.warning("failed to parse JSON body: %s", exc)
            return False
        db = self._tables.get(table)
        if db is None:
            return False
        try:
            return bool(db.insert(_inner(document)))
        except (DatabaseError, ValueError) as exc:
            log.debug("insert into %s failed: %s", table, exc)
            return False

    def update_success(self, body, table) -> bool:
        """Run the balance action named in the body's ``data.action`` on ``table``."""
        try:
            document = _parse_object(body)
        except ValueError:
            document = {}
        action = _inner(document).get("action")
        action_id = _ACTIONS.get(action, Action.DEPOSIT) if isinstance(action, str) else Action.DEPOSIT
        db = self._tables.get(table)
        if db is None:
            return False
        try:
            return bool(db.update(int(action_id), document))
        except (DatabaseError, ValueError) as exc:
            log.debug("update of %s failed: %s", table, exc)
            return False


class Responses:
    """Builds endpoint responses on a worker pool, returning futures."""

    def __init__(self, endpoints: EndPoints, max_workers: int | None = None) -> None:
        self._endpoints = endpoints
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="bankapi-response"
        )

    def async_response(self, table) -> Future[HttpResponse]:
        return self._executor.submit(self._endpoints.build_response, table)

    def async_response_where(self, table, con1, con2) -> Future[HttpResponse]:
        return self._executor.submit(self._endpoints.build_response_where, table, con1, con2)

    def async_post_response(self, table, is_post) -> Future[HttpResponse]:
        return self._executor.submit(self._endpoints.build_post_response, table, is_post)

    def shutdown(self) -> None:
        """Wait for pending responses and stop the worker pool."""
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "Responses":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()