"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into structured HTTPRequest objects
(RFC 9112 message syntax).

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    GET /get?a=1&a=2&b=x HTTP/1.1\r\n        ← request line           │
    │    ─┬─ ────────┬──────── ────┬───                                    │
    │   Method     Target        Version                                   │
    │                │                                                     │
    │        ┌───────┴────────┐                                            │
    │      Path           Query string                                     │
    │      /get           a=1&a=2&b=x  →  {"a": ["1", "2"], "b": ["x"]}    │
    │                                                                      │
    │    Host: localhost:8080\r\n                  ← headers               │
    │    X-Test: 1\r\n                                                     │
    │    \r\n                                      ← blank line            │
    │    {"k": "v"}                                ← body (Content-Length) │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The echo handlers report these pieces back to the client, so the parser
keeps more than a typical framework would:

- the raw request-target (``target``) for the ``url`` field, byte for
  byte as the client sent it
- every value of repeated headers and query parameters
- the client's (ip, port) for ``/ip``

=============================================================================
LENIENT BODY DECODING
=============================================================================

``/post`` must never fail because of a bad body. Instead of raising,
``HTTPRequest.decode_json()`` returns a tagged result:

    body b'{"k": "v"}'   →  DecodedBody(present=True, value={"k": "v"})
    body b'not json'     →  DecodedBody.empty()
    body b''             →  DecodedBody.empty()

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, unquote, urlsplit
import json
import re

from .headers import Headers


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the status code the server should answer with:

        400 Bad Request                 - malformed request line or headers
        405 Method Not Allowed          - verb outside the supported set
        413 Payload Too Large           - request exceeds max_request_size
        505 HTTP Version Not Supported  - anything but HTTP/1.0 or HTTP/1.1
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class DecodedBody:
    """
    Result of lenient JSON decoding: either a decoded value or empty.

    ``present`` distinguishes a body that decoded to JSON ``null`` from a
    body that did not decode at all.
    """

    present: bool
    value: Any = None

    @classmethod
    def empty(cls) -> "DecodedBody":
        return cls(present=False)

    def __bool__(self) -> bool:
        return self.present


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         Upper-case verb (GET, POST, ...)

        path:           Decoded path WITHOUT the query string ("/get")

        target:         Raw request-target exactly as received
                        ("/get?a=1&a=2&b=x"); echoed as ``url``

        version:        "HTTP/1.1" or "HTTP/1.0"

        headers:        Case-insensitive multi-valued Headers

        query_params:   {"a": ["1", "2"], "b": ["x"]}

        body:           Raw body bytes (Content-Length delimited)

        path_params:    Placeholder values bound by the router
                        "/status/{code}" + "/status/418" → {"code": "418"}

        client_address: (ip, port) of the connected peer

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    target: str = ""

    headers: Headers = field(default_factory=Headers)
    query_params: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""

    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: tuple[str, int] = ("", 0)

    def __post_init__(self):
        if not self.target:
            self.target = self.path

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def url(self) -> str:
        """The request URL as echoed by the inspection endpoints."""
        return self.target

    @property
    def remote_addr(self) -> str:
        """
        Client address as ``ip:port``.

        IPv6 hosts are bracketed (``[::1]:54321``) so the port stays
        unambiguous.
        """
        host, port = self.client_address[0], self.client_address[1]
        if ":" in host:
            host = f"[{host}]"
        return f"{host}:{port}"

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters ("application/json"), or None."""
        ct = self.headers.get("content-type").split(";")[0].strip().lower()
        return ct or None

    @property
    def content_length(self) -> int:
        """Content-Length as int, 0 when missing or invalid."""
        try:
            return int(self.headers.get("content-length", "0"))
        except ValueError:
            return 0

    @property
    def host(self) -> str:
        return self.headers.get("host")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the connection should stay open after this request.

        HTTP/1.1 keeps alive unless ``Connection: close``;
        HTTP/1.0 closes unless ``Connection: keep-alive``.
        """
        connection = self.headers.get("connection").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """First value of a header (case-insensitive)."""
        return self.headers.get(name, default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        values = self.query_params.get(name, [])
        return values[0] if values else default

    def get_query_list(self, name: str) -> List[str]:
        """All values of a query parameter."""
        return list(self.query_params.get(name, []))

    def decode_json(self) -> DecodedBody:
        """
        Decode the body as JSON without ever raising.

        Empty, non-UTF-8 and malformed bodies all yield
        ``DecodedBody.empty()``.
        """
        if not self.body:
            return DecodedBody.empty()
        try:
            return DecodedBody(present=True, value=json.loads(self.body.decode("utf-8")))
        except (UnicodeDecodeError, ValueError):
            return DecodedBody.empty()


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    ==========================================================================
    PARSING STEPS
    ==========================================================================

        1. Size check                → 413 when over max_request_size
        2. Split at \\r\\n\\r\\n        → 400 when the terminator is missing
        3. Request line              → 400 / 405 / 505
        4. Header lines              → Headers (obs-fold continuation kept)
        5. Body by Content-Length    → 400 when short or invalid length

    ==========================================================================
    """

    VALID_METHODS = {
        "GET",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "HEAD",
        "OPTIONS",
        "TRACE",
        "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Za-z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:\s][^:]*):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        """
        Args:
            max_request_size: Largest request accepted, in bytes (10 MB).
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data.

        Args:
            data: Complete request bytes read from the socket.
            client_address: Peer (ip, port).

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, target, version = self._parse_request_line(lines[0])
        path, query_params = self._split_target(target)
        headers = self._parse_headers(lines[1:])

        # Only Content-Length framing is supported
        raw_length = headers.get("content-length", "0").strip()
        if not raw_length.isdigit():
            raise HTTPParseError(f"Invalid Content-Length: {raw_length!r}")
        content_length = int(raw_length)

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            target=target,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        """
        Parse ``METHOD SP request-target SP HTTP-version``.

        Returns:
            Tuple of (method, target, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()
        method = method.upper()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )

        return method, target, version

    def _split_target(self, target: str) -> tuple[str, Dict[str, List[str]]]:
        """
        Split a request-target into decoded path and query parameters.

        Absolute-form targets (``http://host/get?x=1``) are reduced to
        their path, as a proxy would send them.
        """
        parsed = urlsplit(target)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)
        return path, query_params

    def _parse_headers(self, lines: List[str]) -> Headers:
        """
        Parse header lines into a multi-valued Headers map.

        Lines that start with whitespace continue the previous header
        (obsolete line folding). Lines without a colon are skipped.
        """
        headers = Headers()
        pending: Optional[List[str]] = None  # [name, value] awaiting folds

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if pending is not None:
                    pending[1] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            if pending is not None:
                headers.add(pending[0], pending[1])
            name, value = match.groups()
            pending = [name.strip(), value.strip()]

        if pending is not None:
            headers.add(pending[0], pending[1])

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """Parse one request with a throwaway RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
