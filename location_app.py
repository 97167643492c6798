"""Local handshake server: serves the location page and waits for one report.

The browser loads ``GET /``, asks for its position and posts it to
``POST /update``. The first valid report ends the session: the accept loop
handles one request at a time and returns as soon as the response carrying
``{"status":"ok"}`` has been written, so nothing posted later is ever seen.
"""

from __future__ import annotations

import enum
import logging
import socket
import time
from typing import Optional

from flask import Flask, Response, request
from werkzeug.serving import BaseWSGIServer, WSGIRequestHandler, make_server

from bootstrap_page import render_page
from coordinates import Coordinate, InvalidReport

logger = logging.getLogger("locate.server")

# ----------------------------
# SERVER CONFIGURATION
# ----------------------------
HOST = "127.0.0.1"
PORT = 3030
CLIENT_TIMEOUT = 5.0  # seconds a connection may sit idle before it is dropped

OK_BODY = '{"status":"ok"}'

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class BindError(RuntimeError):
    """The listener could not be bound; the session never started."""


class SessionState(enum.Enum):
    AWAITING_CONNECTION = "awaiting_connection"
    SERVING = "serving"
    COMPLETED = "completed"
    TERMINATED = "terminated"


class HandshakeSession:
    """State of one acquisition. Only the accept loop's thread touches it."""

    def __init__(self) -> None:
        self.state = SessionState.AWAITING_CONNECTION
        self._pending: Optional[Coordinate] = None
        self._result: Optional[Coordinate] = None

    @property
    def result(self) -> Optional[Coordinate]:
        return self._result

    @property
    def pending(self) -> Optional[Coordinate]:
        return self._pending

    @property
    def done(self) -> bool:
        return self.state in (SessionState.COMPLETED, SessionState.TERMINATED)

    def touch(self) -> None:
        if self.state is SessionState.AWAITING_CONNECTION:
            self.state = SessionState.SERVING

    def offer(self, coordinate: Coordinate) -> bool:
        """Hold `coordinate` until its response is out. The first report wins."""
        if self.done or self._pending is not None:
            return False
        self._pending = coordinate
        return True

    def settle(self) -> bool:
        """Promote the pending report to the result. Call after the response is written."""
        if self._pending is not None and not self.done:
            self._result = self._pending
            self._pending = None
            self.state = SessionState.COMPLETED
        return self.state is SessionState.COMPLETED

    def terminate(self) -> None:
        if not self.done:
            self._pending = None
            self.state = SessionState.TERMINATED


def _text(body: str, status: int) -> Response:
    return Response(body, status=status, content_type="text/plain; charset=utf-8")


def create_app(session: HandshakeSession) -> Flask:
    app = Flask(__name__)
    page = render_page()

    @app.before_request
    def mark_serving():
        session.touch()

    @app.route("/", methods=["GET"], provide_automatic_options=False)
    def index():
        # werkzeug pairs HEAD with every GET rule; only GET is served
        if request.method == "HEAD":
            return _text("Not Found", 404)
        return Response(page, status=200, content_type="text/html; charset=utf-8")

    @app.route("/update", methods=["POST", "OPTIONS"])
    def update():
        if request.method == "OPTIONS":
            response = Response(status=200)
            response.headers.update(PREFLIGHT_HEADERS)
            return response

        if request.mimetype and not request.is_json:
            logger.info({"evt": "report_rejected", "reason": f"content type {request.mimetype}"})
            return _text("Invalid JSON", 400)
        try:
            coordinate = Coordinate.from_json(request.get_data(as_text=True))
        except InvalidReport as exc:
            logger.info({"evt": "report_rejected", "reason": str(exc)})
            return _text("Invalid JSON", 400)

        if session.offer(coordinate):
            logger.info({"evt": "report_accepted", **coordinate.to_dict()})
        response = Response(OK_BODY, status=200, content_type="application/json")
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response

    @app.errorhandler(404)
    @app.errorhandler(405)
    def not_found(_error):
        return _text("Not Found", 404)

    return app


class ReportRequestHandler(WSGIRequestHandler):
    timeout = CLIENT_TIMEOUT

    def setup(self):
        # idle connections (e.g. browser preconnects) must not hold the loop
        self.timeout = getattr(self.server, "client_timeout", CLIENT_TIMEOUT)
        super().setup()

    def connection_dropped(self, error, environ=None):
        # client went away mid-response; the session carries on
        logger.debug({"evt": "client_write_failed", "error": str(error)})


class HandshakeServer:
    """Owns the loopback listener and drives the sequential accept loop."""

    def __init__(
        self,
        host: str = HOST,
        port: int = PORT,
        session: Optional[HandshakeSession] = None,
        client_timeout: float = CLIENT_TIMEOUT,
    ) -> None:
        self.host = host
        self.port = port
        self.client_timeout = client_timeout
        self.session = session or HandshakeSession()
        self._server: Optional[BaseWSGIServer] = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def bind(self) -> "HandshakeServer":
        if self._server is not None:
            return self
        try:
            listener = socket.create_server((self.host, self.port))
        except OSError as exc:
            raise BindError(f"cannot listen on {self.host}:{self.port}: {exc.strerror or exc}") from exc
        try:
            # werkzeug exits the process on bind errors, so hand it a bound socket
            self._server = make_server(
                self.host,
                self.port,
                create_app(self.session),
                request_handler=ReportRequestHandler,
                fd=listener.fileno(),
            )
        finally:
            listener.close()
        self.port = self._server.port
        logger.debug({"evt": "listening", "url": self.url})
        return self

    def serve(self, timeout: Optional[float] = None) -> Optional[Coordinate]:
        """Handle requests one by one until a report is accepted.

        With ``timeout`` (seconds) the loop gives up at the deadline and the
        session ends without a result.
        """
        self.bind()
        deadline = None if timeout is None else time.monotonic() + timeout
        try:
            while not self.session.done:
                client_timeout = self.client_timeout
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        logger.info({"evt": "session_timeout", "timeout": timeout})
                        self.session.terminate()
                        break
                    self._server.timeout = remaining
                    client_timeout = min(client_timeout, remaining)
                self._server.client_timeout = client_timeout
                self._server.handle_request()
                self.session.settle()
        except BaseException:
            self.session.terminate()
            raise
        finally:
            self.close()
        return self.session.result

    def close(self) -> None:
        if self._server is not None:
            self._server.server_close()
            self._server = None

    def __enter__(self) -> "HandshakeServer":
        return self.bind()

    def __exit__(self, *exc_info) -> None:
        self.close()
