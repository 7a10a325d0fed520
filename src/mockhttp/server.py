"""
=============================================================================
MOCK HTTP SERVER
=============================================================================

Ties the transport, the middleware and the route table together.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   SocketServer ──accept──▶ Connection ──submit──▶ ThreadPool        │
    │                                                       │             │
    │                                                       ▼             │
    │                    RequestParser ──▶ LoggingMiddleware ──▶          │
    │                                                       │             │
    │                                                       ▼             │
    │                                   Router ──▶ handler ──▶ response   │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. SocketServer accepts a TCP connection
    2. The connection is queued on the ThreadPool (503 if the queue is full)
    3. A worker reads one request and parses it (4xx/5xx on bad input)
    4. Middleware runs, the router dispatches to a handler
    5. The response is serialised and sent
    6. Keep-alive: back to 3; otherwise the connection closes

One worker serves one connection at a time, so a request sleeping in
/delay/{seconds} only occupies its own worker.

=============================================================================
FAULT ISOLATION
=============================================================================

A handler that raises is logged with its traceback and answered with a
plain-text 500. The listener, the other workers and the other
connections are unaffected.

=============================================================================
"""

import logging
import threading
from typing import Callable, Optional, Tuple

from .app import create_router
from .config import ServerConfig
from .core import Connection, SocketServer, ThreadPool
from .http import (
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    Router,
    internal_error,
    reason_phrase,
    text_error,
)
from .middleware import LoggingMiddleware, Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


class MockHTTPServer:
    """
    HTTP/1.1 mock server.

    =========================================================================
    USAGE
    =========================================================================

        # Blocking, until SIGINT/SIGTERM
        MockHTTPServer(ServerConfig(port=8080)).run()

        # Embedded, e.g. in tests
        server = MockHTTPServer(ServerConfig(port=0))
        host, port = server.start_background()
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        """
        Args:
            config: Server configuration; validated here, fail-fast.
            router: Route table. Defaults to the full mock endpoint set.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        # Set on shutdown so pending /delay waits end promptly
        self._stop_event = threading.Event()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=min(self.config.min_workers, self.config.workers),
            max_workers=self.config.workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._router = router if router is not None else create_router(self.config, self._stop_event)

        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))

        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._running = False
        self._thread: Optional[threading.Thread] = None

    def use(self, middleware: Middleware) -> "MockHTTPServer":
        """Append a middleware. Only effective before the server starts."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def bound_address(self) -> Optional[Tuple[str, int]]:
        """(host, port) actually listened on; None until bound."""
        return self._socket_server.bound_address

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, banner: bool = True):
        """
        Serve until shutdown() or a SIGINT/SIGTERM.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._setup_logging()

        self._handler = self._middleware.wrap(self._router.handle)
        self._stop_event.clear()
        self._running = True
        self._thread_pool.start()

        if banner:
            self._print_startup_banner()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def start_background(self, timeout: float = 5.0) -> Tuple[str, int]:
        """
        Run the server on a daemon thread.

        Returns:
            The bound (host, port).

        Raises:
            RuntimeError: If the server did not start listening in time.
        """
        self._thread = threading.Thread(
            target=self.run,
            kwargs={"banner": False},
            name="mockhttp-server",
            daemon=True,
        )
        self._thread.start()

        if not self._socket_server.ready.wait(timeout):
            raise RuntimeError(f"Server did not start within {timeout}s")

        return self.bound_address

    def shutdown(self, timeout: float = 10.0):
        """Stop accepting, end pending delays and wait for the serving thread."""
        self._stop_event.set()
        self._socket_server.shutdown()

        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
            self._thread = None

    def _print_startup_banner(self):
        host, port = self.bound_address or self._socket_server.address
        print()
        print(f"  {self.config.server_name} listening on http://{host}:{port}")
        print(f"  Workers: up to {self.config.workers} threads")
        if self.config.max_delay is not None:
            print(f"  /delay limited to {self.config.max_delay} second(s)")
        print("  Press Ctrl+C to stop")
        print()
        for route in self._router.routes():
            print(f"  {route.method:<7} {route.path}")
        print()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("mockhttp").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._stop_event.set()

        self._thread_pool.shutdown(wait=True, timeout=self.config.keep_alive_timeout + 1.0)

        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand a new connection to the pool; runs on the accept thread."""
        if not self._thread_pool.submit(self._process_connection, args=(conn,), block=False):
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Keep-alive loop for one connection (runs on a worker thread).

        Wire-level problems are answered and end the connection; handler
        failures are answered with 500 and the connection carries on.
        """
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        # Detail stays in the log; the client gets the reason phrase
                        logger.info(f"[{conn.id}] Rejected request ({e.status_code}): {e}")
                        self._send_error(conn, e.status_code, reason_phrase(e.status_code))
                        break

                    try:
                        response = self._handler(request)
                    except Exception as e:
                        logger.exception(f"[{conn.id}] Handler error: {e}")
                        response = internal_error()

                    keep_alive = (
                        request.is_keep_alive
                        and self.config.keep_alive
                        and response.get_header("Connection", "").lower() != "close"
                    )
                    if keep_alive:
                        if not response.has_header("Connection"):
                            response.set_header("Connection", "keep-alive")
                        if not response.has_header("Keep-Alive"):
                            response.set_header(
                                "Keep-Alive",
                                f"timeout={int(self.config.keep_alive_timeout)}",
                            )
                    else:
                        response.set_header("Connection", "close")

                    if not conn.send_response(response.to_bytes(self.config.server_name)):
                        break

                    if not keep_alive:
                        break

                    conn.set_keep_alive()

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break

                except ValueError as e:
                    # Raised by read_request when the size limit is exceeded
                    logger.warning(f"[{conn.id}] {e}")
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, "Request too large")
                    break

                except Exception as e:
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    break

    def _send_error(self, conn: Connection, status: int, message: str):
        """Plain-text error for failures outside the handler, then close."""
        response = text_error(status, message)
        response.set_header("Connection", "close")
        conn.send_response(response.to_bytes(self.config.server_name))
