"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Translates raw bytes into structured messages and back, and dispatches
requests to handlers:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       bytes → HTTPRequest (Headers, query, body)         │
    │ response.py      HTTPResponse / ResponseBuilder → bytes             │
    │ router.py        (verb, path) → handler, {placeholder} binding      │
    │ headers.py       case-insensitive multi-valued header map           │
    │ status_codes.py  HTTPStatus and reason phrases for any 100-599      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .headers import Headers, canonical_header_name
from .request import DecodedBody, HTTPParseError, HTTPRequest, RequestParser, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,                  # 200 OK
    text_error,          # any status, plain text
    bad_request,         # 400 Bad Request
    not_found,           # 404 Not Found
    method_not_allowed,  # 405 Method Not Allowed
    internal_error,      # 500 Internal Server Error
)
from .router import Route, RouteConflictError, RouteMatch, Router
from .status_codes import HTTPStatus, is_valid_status, reason_phrase

__all__ = [
    # Request parsing
    "Headers",
    "canonical_header_name",
    "DecodedBody",
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "text_error",
    "bad_request",
    "not_found",
    "method_not_allowed",
    "internal_error",

    # Routing
    "Router",
    "Route",
    "RouteMatch",
    "RouteConflictError",

    # Status codes
    "HTTPStatus",
    "is_valid_status",
    "reason_phrase",
]
