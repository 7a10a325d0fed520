"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket and the accept loop. Every accepted client
socket is wrapped in a Connection and handed to a callback; the HTTP
layer never touches ``accept()`` itself.

    ┌───────────────────────┐
    │   Listening socket    │ ◄── created once, bound to host:port
    └───────────┬───────────┘
                │ accept()
        ┌───────┼───────────────┐
        ▼       ▼               ▼
    Connection Connection   Connection   ──► connection_handler(conn)

=============================================================================
SOCKET OPTIONS
=============================================================================

    SO_REUSEADDR    restart immediately instead of waiting out TIME_WAIT
    TCP_NODELAY     small JSON answers leave at once (no Nagle batching)
    timeout 1.0 s   accept() wakes up regularly to notice shutdown()

Port 0 asks the OS for a free port; ``bound_address`` reports the real one
once ``ready`` is set. Tests rely on this.

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd) trigger a graceful
shutdown. Python only allows installing handlers from the main thread, so
a server started in a background thread leaves signals alone.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    TCP accept loop with graceful shutdown.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._bound_address: Optional[Tuple[str, int]] = None

        # Set once the socket is listening
        self.ready = threading.Event()
        self._shutdown_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Configured (host, port)."""
        return (self.config.host, self.config.port)

    @property
    def bound_address(self) -> Optional[Tuple[str, int]]:
        """Actual (host, port) after binding, None before."""
        return self._bound_address

    def _create_socket(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop.

        BLOCKS until shutdown() is called.

        Args:
            connection_handler: Receives each new Connection.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")
        self.ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
                logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

                conn = Connection(
                    socket=client_socket,
                    address=client_address[:2],
                    buffer_size=self.config.buffer_size,
                    timeout=self.config.timeout,
                    keep_alive_timeout=self.config.keep_alive_timeout,
                    max_request_size=self.config.max_request_size,
                )
                connection_handler(conn)

            except socket.timeout:
                # Periodic wake-up to re-check _running
                continue

            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

    def shutdown(self):
        """Stop the accept loop. Safe to call more than once."""
        logger.info("Shutting down socket server...")
        self._running = False
        self._shutdown_event.set()

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self.ready.clear()
        logger.info("Socket server stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until shutdown() is called. Returns False on timeout."""
        return self._shutdown_event.wait(timeout)
