"""
=============================================================================
DYNAMIC DATA HANDLERS
=============================================================================

    GET /uuid                   {"uuid": "<random UUID4>"}
    GET /base64/{value}         decoded value as text/html
    GET /bytes/{n}?seed=        n bytes (capped at 100 KiB) of octet-stream
    GET /response-headers?k=v   k: v set on the response, echoed as JSON
    GET /redirect-to?url=       redirect to url (default 302)
    GET /relative-redirect/{n}  n hops of 302 via relative URLs, then /get
    GET /absolute-redirect/{n}  same, with http://<Host> URLs

=============================================================================
SEEDED BYTES
=============================================================================

With ``?seed=S`` the bytes come from a linear congruential generator, so
the same (n, seed) pair always yields the same payload:

    state = S
    state = (state * 1103515245 + 12345) & 0x7fffffff
    byte  = floor(state / 0x7fffffff * 256)        (256 wraps to 0)

Without a seed the bytes come from ``os.urandom``.

=============================================================================
"""

from string import Template
from typing import Dict, List, Optional, Union
import base64
import binascii
import html
import os
import re
import uuid as uuid_lib

from ..http.headers import canonical_header_name
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, bad_request, ok
from ..http.status_codes import HTTPStatus
from .synthetic import parse_int


MAX_BYTES = 100 * 1024

_BASE64_PATTERN = re.compile(r"[A-Za-z0-9+/\-_]*={0,2}")
_HEADER_NAME_PATTERN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")

# Framing headers stay under the server's control
_RESERVED_HEADERS = {"Content-Length", "Transfer-Encoding", "Connection"}

_REDIRECT_STATUSES = range(300, 309)

REDIRECT_PAGE = Template("""<!DOCTYPE html>
<title>Redirecting...</title>
<h1>Redirecting...</h1>
<p>You should be redirected automatically to target URL: <a href="$url">$url</a>. If not click the link.</p>
""")


def uuid(request: HTTPRequest) -> HTTPResponse:
    return ok({"uuid": str(uuid_lib.uuid4())})


def decode_base64(value: str) -> str:
    """
    Decode standard or URL-safe base64, padding optional.

    Raises:
        ValueError: If ``value`` is not valid base64.
    """
    if not _BASE64_PATTERN.fullmatch(value):
        raise ValueError("invalid base64 alphabet")

    normalized = value.rstrip("=").replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)

    try:
        raw = base64.b64decode(normalized, validate=True)
    except binascii.Error as e:
        raise ValueError(str(e)) from e

    return raw.decode("utf-8", errors="replace")


def base64_decode(request: HTTPRequest) -> HTTPResponse:
    try:
        decoded = decode_base64(request.path_params.get("value", ""))
    except ValueError:
        return bad_request("Incorrect Base64 data")

    return ResponseBuilder().html(decoded).build()


def seeded_bytes(n: int, seed: int) -> bytes:
    """Deterministic pseudo-random bytes (see module docstring)."""
    state = seed & 0x7fffffff
    out = bytearray(n)
    for i in range(n):
        state = (state * 1103515245 + 12345) & 0x7fffffff
        out[i] = (state * 256 // 0x7fffffff) & 0xFF
    return bytes(out)


def random_bytes(request: HTTPRequest) -> HTTPResponse:
    n = parse_int(request.path_params.get("n"))
    if n is None or n < 0:
        return bad_request("n must be a non-negative integer")

    n = min(n, MAX_BYTES)

    seed_param = request.get_query("seed")
    if seed_param is None:
        payload = os.urandom(n)
    else:
        seed = parse_int(seed_param)
        if seed is None:
            return bad_request("seed must be an integer")
        payload = seeded_bytes(n, seed)

    return (ResponseBuilder()
        .body(payload)
        .content_type("application/octet-stream")
        .build())


def response_headers(request: HTTPRequest) -> HTTPResponse:
    """
    Set every query parameter as a response header.

    Values are HTML-escaped both in the header and in the JSON echo.
    Names must be valid header tokens and values may not contain line
    breaks, otherwise the request is rejected with 400.
    """
    echoed: Dict[str, Union[str, List[str]]] = {}
    to_set: Dict[str, str] = {}

    for name, values in request.query_params.items():
        if not _HEADER_NAME_PATTERN.fullmatch(name):
            return bad_request(f"Invalid header name: {name!r}")
        if canonical_header_name(name) in _RESERVED_HEADERS:
            return bad_request(f"Header not allowed: {name}")

        escaped = [html.escape(v, quote=True) for v in values]
        if any("\r" in v or "\n" in v for v in escaped):
            return bad_request(f"Invalid header value for {name}")

        echoed[name] = escaped[0] if len(escaped) == 1 else escaped
        to_set[name] = ", ".join(escaped)

    response = ok(echoed)
    for name, value in to_set.items():
        response.set_header(name, value)
    return response


def redirect_to(request: HTTPRequest) -> HTTPResponse:
    """Redirect to ``?url=``; ``?status_code=`` picks a 3xx (default 302)."""
    url = request.get_query("url")
    if not url:
        return bad_request("Missing url parameter")
    if "\r" in url or "\n" in url:
        return bad_request("Invalid url parameter")

    status_param = request.get_query("status_code")
    if status_param is None:
        code = HTTPStatus.FOUND
    else:
        code = parse_int(status_param)
        if code is None or code not in _REDIRECT_STATUSES:
            return bad_request("Invalid status code")

    return ResponseBuilder().redirect(url, code).build()


def _redirect_chain(location: str) -> HTTPResponse:
    return (ResponseBuilder()
        .redirect(location)
        .html(REDIRECT_PAGE.substitute(url=html.escape(location, quote=True)))
        .build())


def _redirect_count(request: HTTPRequest) -> Optional[int]:
    n = parse_int(request.path_params.get("n"))
    return n if n is not None and n >= 1 else None


def relative_redirect(request: HTTPRequest) -> HTTPResponse:
    """302 to ``/relative-redirect/{n-1}``, ending at ``/get``."""
    n = _redirect_count(request)
    if n is None:
        return bad_request("Invalid redirect count")

    return _redirect_chain("/get" if n == 1 else f"/relative-redirect/{n - 1}")


def absolute_redirect(request: HTTPRequest) -> HTTPResponse:
    """Same chain as relative_redirect, with absolute URLs built from Host."""
    n = _redirect_count(request)
    if n is None:
        return bad_request("Invalid redirect count")

    host = request.headers.get("host").strip()
    if not host:
        return bad_request("Missing Host header")

    path = "/get" if n == 1 else f"/absolute-redirect/{n - 1}"
    return _redirect_chain(f"http://{host}{path}")
