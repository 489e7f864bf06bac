"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer (accept thread)                                       │
    │        │ Connection                                                  │
    │        ▼                                                             │
    │   _handle_connection ──── pool full ────► 503, close at once         │
    │        │ submit                                                      │
    │        ▼                                                             │
    │   ThreadPool worker: _process_connection                             │
    │        │                                                             │
    │        ├──► RequestParser.parse(conn.reader)                         │
    │        │        ├─ EMPTY        → close silently                     │
    │        │        ├─ other error  → 400 / 413                          │
    │        │        └─ timeout      → 408                                │
    │        ├──► Router.handle(request)                                   │
    │        │        └─ exception    → 500                                │
    │        ├──► AccessLogger.log(...)                                    │
    │        └──► conn.send_response(response.to_bytes()), close           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every accepted connection gets at most one response and is then closed.
Nothing that goes wrong on one connection escapes its worker.

=============================================================================
"""

import logging
import socket
import time
from typing import Optional, Tuple

from .access_log import AccessLogger
from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .http import (
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    ParseErrorKind,
    RequestParser,
    Router,
    error_response,
    internal_error,
    request_timeout,
    service_unavailable,
)
from .routes import create_router


logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class HTTPServer:
    """
    Threaded HTTP/1.1 server, one request per connection.

    Usage:
        server = HTTPServer(ServerConfig(directory="/tmp"))
        server.run()  # Blocks until SIGINT/SIGTERM or shutdown()

    Running on a background thread (tests):
        server = HTTPServer(ServerConfig(port=0))
        threading.Thread(target=server.run, daemon=True).start()
        server.wait_until_ready(5.0)
        host, port = server.address
        ...
        server.shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration. Defaults to ServerConfig().
            router: Route table. Defaults to create_router(config).

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            workers=self.config.workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(
            max_body_size=self.config.max_body_size,
            body_requires_content_type=self.config.body_requires_content_type,
            max_headers=self.config.max_headers,
        )
        self._router = router or create_router(self.config)
        self._access_logger = AccessLogger(log_format=self.config.log_format)

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening on port 0."""
        return self._socket_server.address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Start the server and block until it is stopped.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._setup_logging()
        self._thread_pool.start()

        logger.info(
            f"Serving files from {self.config.root} "
            f"with {self.config.workers} workers"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # No-op when the application already configured logging
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        logging.getLogger("minihttp").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._thread_pool.shutdown(wait=True, timeout=self.config.timeout)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand a connection to the pool. Runs on the accept thread."""
        try:
            submitted = self._thread_pool.submit(self._process_connection, args=(conn,))
        except RuntimeError:
            # Pool already stopped
            submitted = False

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._reject(conn, service_unavailable())

    def _reject(self, conn: Connection, response: HTTPResponse):
        """
        Answer and close without waiting on the client.

        Runs on the accept thread, so the close takes only bytes already
        buffered: a silent client must not delay the next accept().
        """
        self._access_logger.log(None, response, 0.0, request_id=conn.id, client_address=conn.address)
        conn.send_response(response.to_bytes())
        conn.close(drain_timeout=0.0)

    def _process_connection(self, conn: Connection):
        """Read one request, answer it, close. Runs on a worker thread."""
        with conn:
            start = time.perf_counter()

            try:
                request = self._parser.parse(conn.reader, conn.address)
            except HTTPParseError as e:
                if e.kind == ParseErrorKind.EMPTY:
                    logger.debug(f"[{conn.id}] Client closed without sending a request")
                    return
                logger.warning(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                self._send(conn, None, error_response(e.status_code), start)
                return
            except socket.timeout:
                logger.warning(f"[{conn.id}] Read timeout from {conn.client_ip}")
                self._send(conn, None, request_timeout(), start)
                return

            response = self._dispatch(conn, request)
            self._send(conn, request, response, start)

    def _send(
        self,
        conn: Connection,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        start: float,
    ):
        duration_ms = (time.perf_counter() - start) * 1000
        self._access_logger.log(
            request, response, duration_ms,
            request_id=conn.id, client_address=conn.address,
        )
        conn.send_response(response.to_bytes())

    def _dispatch(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        try:
            return self._router.handle(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            return internal_error()


def create_app(config: Optional[ServerConfig] = None, router: Optional[Router] = None) -> HTTPServer:
    """
    Create a server instance.

    Example:
        app = create_app(ServerConfig(port=8080, directory="./data"))
        app.run()
    """
    return HTTPServer(config, router)
