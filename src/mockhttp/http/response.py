"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses (RFC 9112 message syntax).

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                       ← status line           │
    │    Content-Type: application/json\r\n        ← set by the handler    │
    │    Content-Length: 57\r\n                    ← added by to_bytes()   │
    │    Date: Sun, 18 Oct 2026 12:00:00 GMT\r\n   ← added by to_bytes()   │
    │    Server: mockhttp/1.0\r\n                  ← added by to_bytes()   │
    │    \r\n                                                              │
    │    {"message":"Hello, mockhttp!","author":"mockhttp team"}           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BODY FORMATS
=============================================================================

Handlers answer in one of three shapes:

    JSON         compact encoding, so repeated requests are byte-identical
                 {"args":{"a":["1","2"]},"headers":{...},"url":"/get?a=1&a=2"}

    Plain text   short human-readable messages, errors included
                 Invalid status code

    Raw bytes    /bytes/{n} and the empty body of /status/{code}

1xx, 204 and 304 responses are sent as a header block alone, with no
Content-Length.

The builder is fluent, every setter returns ``self``:

    response = (ResponseBuilder()
        .status(HTTPStatus.OK)
        .json({"origin": "127.0.0.1:54321"})
        .header("X-Request-ID", "a1b2c3d4")
        .build())

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
import json

from .status_codes import HTTPStatus, reason_phrase


DEFAULT_SERVER_NAME = "mockhttp/1.0"

TEXT_PLAIN = "text/plain; charset=utf-8"
TEXT_HTML = "text/html; charset=utf-8"
APPLICATION_JSON = "application/json"


def encode_json(data: Any) -> bytes:
    """Compact UTF-8 JSON, keys in insertion order."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialised.

    ``status`` is a plain integer so any code in 100-599 can be sent,
    registered or not. Use ResponseBuilder or the helpers at the bottom
    of this module to construct one.
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 418 I'm a teapot"
        """
        return f"{self.version} {int(self.status)} {reason_phrase(int(self.status))}"

    @property
    def has_no_content(self) -> bool:
        """Informational (1xx), 204 and 304 responses end at the header block."""
        status = int(self.status)
        return 100 <= status < 200 or status in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def has_header(self, name: str) -> bool:
        return self.get_header(name) is not None

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a response header, replacing any existing one regardless of case.

        Returns:
            Self for method chaining
        """
        lowered = name.lower()
        for key in [k for k in self.headers if k.lower() == lowered]:
            del self.headers[key]
        self.headers[name] = value
        return self

    def text(self) -> str:
        """Body decoded as UTF-8 (test convenience)."""
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Body decoded as JSON (test convenience)."""
        return json.loads(self.body.decode("utf-8"))

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the response for ``socket.sendall()``.

        Content-Length, Date and Server are added unless the handler set
        them already. 1xx, 204 and 304 responses never carry Content-Length
        (RFC 9110 §8.6) and are sent without a body.

        Args:
            server_name: Value for the Server header.

        Returns:
            Complete HTTP response as bytes.
        """
        response_headers = dict(self.headers)
        body = self.body

        if self.has_no_content:
            for name in [k for k in response_headers if k.lower() == "content-length"]:
                del response_headers[name]
            body = b""
        elif not self.has_header("Content-Length"):
            response_headers["Content-Length"] = str(len(body))

        if not self.has_header("Date"):
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if not self.has_header("Server"):
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        # Header values from /response-headers may carry non-latin-1 text
        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + body


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

    Usage:
        ResponseBuilder().status(400).text("Invalid delay time").build()

        ResponseBuilder().json({"uuid": "..."}).build()

        ResponseBuilder().redirect("https://example.com", 307).build()
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a single response header."""
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        """Add multiple headers at once."""
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """
        Set the raw body.

        For structured data prefer json(), html() or text().
        """
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = TEXT_PLAIN) -> "ResponseBuilder":
        """Plain text body with ``text/plain; charset=utf-8``."""
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: str) -> "ResponseBuilder":
        """HTML body with ``text/html; charset=utf-8``."""
        self._body = html.encode("utf-8")
        self._headers["Content-Type"] = TEXT_HTML
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """
        JSON body with ``application/json``.

        Encoding is compact and keeps insertion order, so identical input
        always yields identical bytes.
        """
        self._body = encode_json(data)
        self._headers["Content-Type"] = APPLICATION_JSON
        return self

    def redirect(self, location: str, status: int = HTTPStatus.FOUND) -> "ResponseBuilder":
        """
        Redirect to ``location``.

        =====================================================================
        REDIRECT STATUS CODES
        =====================================================================

            301 / 308   permanent   (308 preserves the method)
            302 / 307   temporary   (307 preserves the method)
            303         see other   (follow-up is always GET)

        =====================================================================
        """
        self._status = status
        self._headers["Location"] = location
        return self

    def close_connection(self) -> "ResponseBuilder":
        """Tell the client the connection closes after this response."""
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 9110, IMF-fixdate).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Sun, 18 Oct 2026 12:00:00 GMT

    HTTP dates are always GMT, never local time.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# One-liners for the responses the handlers and the server need most.
# Errors are plain text: short, human-readable, no internal detail.
#
#     return ok({"origin": request.remote_addr})
#     return bad_request("Invalid status code")
#
# =============================================================================

def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """
    Create a 200 OK response.

    dict/list bodies become JSON, str becomes text, bytes pass through.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)

    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or TEXT_PLAIN)
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)

    return builder.build()


def text_error(status: int, message: str) -> HTTPResponse:
    """Plain-text error response with the given status."""
    return (ResponseBuilder()
        .status(status)
        .text(message)
        .header("X-Content-Type-Options", "nosniff")
        .build())


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    """400 with a short explanation, e.g. "Invalid delay time"."""
    return text_error(HTTPStatus.BAD_REQUEST, message)


def not_found(message: str = "404 page not found") -> HTTPResponse:
    """404 for paths no route template matches."""
    return text_error(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: List[str]) -> HTTPResponse:
    """
    405 for a known path requested with the wrong verb.

    Includes the Allow header listing the valid methods (RFC 9110 §15.5.6).
    """
    response = text_error(HTTPStatus.METHOD_NOT_ALLOWED, "405 method not allowed")
    return response.set_header("Allow", ", ".join(allowed_methods))


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500 with a generic message; never expose tracebacks."""
    return text_error(HTTPStatus.INTERNAL_SERVER_ERROR, message)
