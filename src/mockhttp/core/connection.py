"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket: buffered request reads, keep-alive
timeouts, response writes and a clean TCP close.

=============================================================================
READING ONE REQUEST
=============================================================================

TCP delivers bytes in arbitrary chunks, so reads are buffered until a
complete request is present:

    1. recv() until the buffer holds \\r\\n\\r\\n       (end of headers)
    2. take Content-Length from the header block
    3. recv() until Content-Length body bytes arrived
    4. cut the request off the buffer; extra bytes stay for the next
       pipelined request on the same connection

=============================================================================
TIMEOUTS
=============================================================================

    first request     ``timeout`` (30 s)           expiry → TimeoutError (408)
    later requests    ``keep_alive_timeout`` (5 s) expiry → quiet close

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import logging
import re
import socket
import uuid


logger = logging.getLogger(__name__)

_CONTENT_LENGTH_PATTERN = re.compile(rb"^content-length:\s*(\d+)\s*$", re.IGNORECASE | re.MULTILINE)


class ConnectionState(Enum):
    """Connection lifecycle states (for logging and debugging)."""

    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current ConnectionState.
        requests_handled: Requests read so far on this connection.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: float = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request.

        Returns:
            Request bytes, or None when the client closed the connection
            or a keep-alive wait expired.

        Raises:
            TimeoutError: If the first request does not arrive in time.
            ValueError: If the request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                self._check_size()

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    # Truncated body; the parser reports it as 400
                    break
                self._buffer += chunk
                self._check_size()

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.state = ConnectionState.PROCESSING
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            if self.state != ConnectionState.CLOSED:
                try:
                    self.socket.settimeout(self.timeout)
                except OSError:
                    pass

    def _check_size(self):
        if len(self._buffer) > self.max_request_size:
            raise ValueError(f"Request too large: {len(self._buffer)} bytes")

    def _recv(self) -> bytes:
        try:
            data = self.socket.recv(self.buffer_size)
            return data
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _parse_content_length(self, headers: bytes) -> int:
        """
        Content-Length from the raw header block, 0 if absent or invalid.

        Scanned before full parsing, since the body size decides how many
        more bytes to read.
        """
        match = _CONTENT_LENGTH_PATTERN.search(headers.replace(b"\r\n", b"\n"))
        return int(match.group(1)) if match else 0

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True on success, False if the client went away (for example
            while /delay was waiting).
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def close(self):
        """
        Close gracefully: FIN, drain what the client still sends, close.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
