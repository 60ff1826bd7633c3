"""HTTP server exposing the bank tables as a small JSON API."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from concurrent.futures import Future
from typing import Sequence

from flask import Flask, Response, jsonify, request
from werkzeug.serving import BaseWSGIServer, make_server

from .accountdb import AccountTable
from .announcedb import AnnounceTable
from .announcelogdb import AnnounceLogTable
from .atmlogdb import AtmLogTable
from .clientdb import ClientTable
from .database import DatabaseError, DataManager, Table, resolve_card_uid
from .endpoints import EndPoints, HttpResponse, Responses

log = logging.getLogger(__name__)

DEFAULT_PORT = 8080
DEFAULT_DB_HOST = "192.168.2.57"
DEFAULT_DB_NAME = "bank"
DEFAULT_DB_USER = "master"
DEFAULT_PASSWORD = "password"
DEFAULT_DB_PORT = 3306


class ServerError(Exception):
    """Raised when the HTTP server cannot be started."""


def _to_flask(future: Future[HttpResponse]) -> Response:
    result = future.result()
    return Response(result.body, status=int(result.status), content_type=result.content_type)


class APIServer:
    """Routes HTTP requests to the bank tables and serves them in the background."""

    def __init__(self, manager: DataManager, host: str = "0.0.0.0",
                 max_workers: int | None = None) -> None:
        self.manager = manager
        self.host = host
        self.tables: dict[str, Table] = {
            "clientdb": ClientTable(manager),
            "accountdb": AccountTable(manager),
            "announcedb": AnnounceTable(manager),
            "announcelogdb": AnnounceLogTable(manager),
            "atmlogdb": AtmLogTable(manager),
        }
        self.endpoints = EndPoints()
        for name, table in self.tables.items():
            self.endpoints.register_db(name, table)
        self.response = Responses(self.endpoints, max_workers)
        self._server: BaseWSGIServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._server is not None

    @property
    def port(self) -> int | None:
        """The port being listened on, or None when stopped."""
        return self._server.server_port if self._server is not None else None

    def create_app(self) -> Flask:
        """Build the WSGI application with every API route."""
        app = Flask(__name__)
        endpoints = self.endpoints
        response = self.response

        @app.errorhandler(DatabaseError)
        def database_failed(exc: DatabaseError):
            log.warning("database error: %s", exc)
            return jsonify({"success": False, "message": str(exc), "code": 500}), 500

        @app.get("/client/<table>")
        def client_get(table: str) -> Response:
            return _to_flask(response.async_response(table))

        @app.get("/client/<table>/latest")
        def client_get_latest(table: str) -> Response:
            return _to_flask(response.async_response(table))

        @app.post("/client/<table>")
        def client_post(table: str) -> Response:
            inserted = endpoints.insert_success(request.get_data(), table)
            return _to_flask(response.async_post_response(table, inserted))

        @app.get("/api/atm")
        def atm_get() -> Response:
            account = resolve_card_uid(request.args.get("uid", ""))
            name = request.args.get("name", "")
            log.debug("received query parameters: uid=%s name=%s", account, name)
            return _to_flask(response.async_response_where("accountdb", account, name))

        @app.post("/api/atm")
        def atm_post() -> Response:
            inserted = endpoints.insert_success(request.get_data(), "atmlogdb")
            return _to_flask(response.async_post_response("atmlogdb", inserted))

        @app.put("/api/atm")
        def atm_put() -> Response:
            updated = endpoints.update_success(request.get_data(), "accountdb")
            return _to_flask(response.async_post_response("accountdb", updated))

        return app

    def start(self, port: int = DEFAULT_PORT) -> int:
        """Start serving in a background thread and return the bound port."""
        if self.is_running:
            raise ServerError("server is already running")
        app = self.create_app()
        try:
            server = make_server(self.host, port, app, threaded=True)
        except (OSError, SystemExit) as exc:
            raise ServerError(f"cannot bind port {port}: {exc}") from exc
        thread = threading.Thread(
            target=server.serve_forever, name="bankapi-http", daemon=True
        )
        thread.start()
        self._server = server
        self._thread = thread
        log.info("API server started on port %d", server.server_port)
        return server.server_port

    def stop(self) -> None:
        """Stop listening; does nothing when the server is not running."""
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join()
        self._server = None
        self._thread = None
        log.info("API server stopped")

    def __enter__(self) -> "APIServer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
        self.response.shutdown()


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="bankapi", description="Serve the bank database over HTTP.")
    parser.add_argument("--url", help="full database URL; overrides the MySQL options")
    parser.add_argument("--db-host", default=DEFAULT_DB_HOST)
    parser.add_argument("--db-name", default=DEFAULT_DB_NAME)
    parser.add_argument("--db-user", default=DEFAULT_DB_USER)
    parser.add_argument("--db-password", default=DEFAULT_PASSWORD)
    parser.add_argument("--db-port", type=int, default=DEFAULT_DB_PORT)
    parser.add_argument("--listen", default="0.0.0.0", help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Connect to the database and serve the API until interrupted."""
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    manager = DataManager()
    try:
        if args.url:
            manager.open_url(args.url)
        else:
            manager.connect(args.db_host, args.db_name, args.db_user,
                            args.db_password, args.db_port)
    except DatabaseError as exc:
        print(f"bankapi: {exc}", file=sys.stderr)
        return 1
    with manager, APIServer(manager, host=args.listen) as server:
        try:
            server.start(args.port)
        except ServerError as exc:
            print(f"bankapi: {exc}", file=sys.stderr)
            return 1
        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            pass
    return 0


if __name__ == "__main__":
    sys.exit(main())