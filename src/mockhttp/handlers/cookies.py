"""
=============================================================================
COOKIE HANDLERS
=============================================================================

    GET    /cookies             {"cookies": {"<name>": "<value>", ...}}
    POST   /cookies             sets the cookie described by the JSON body
    DELETE /cookies?name=<n>    expires cookie <n>, 204

The server keeps no cookie jar: every answer is computed from the
request's own ``Cookie`` header, so it only reflects what the client sent.

=============================================================================
SETTING A COOKIE
=============================================================================

    POST /cookies
    {"name": "session", "value": "abc", "expires": "2030-01-01T00:00:00Z"}

    HTTP/1.1 200 OK
    Set-Cookie: session=abc; expires=Tue, 01 Jan 2030 00:00:00 GMT; Path=/

``expires`` is optional and may be ISO 8601 or an HTTP-date. Cookies are
always scoped to ``Path=/``.

=============================================================================
"""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from http.cookies import CookieError, SimpleCookie
from typing import Dict, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, bad_request, format_http_date, ok
from ..http.status_codes import HTTPStatus


EXPIRED = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_cookie_header(request: HTTPRequest) -> Dict[str, str]:
    """
    Name/value pairs from every ``Cookie`` header, in order.

    Pairs without ``=`` are skipped. When a name repeats, the first value
    wins, since browsers send the most specific path first.
    """
    cookies: Dict[str, str] = {}
    for header in request.headers.get_all("cookie"):
        for pair in header.split(";"):
            name, sep, value = pair.strip().partition("=")
            if not sep or not name:
                continue
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] == '"':
                value = value[1:-1]
            cookies.setdefault(name.strip(), value)
    return cookies


def parse_expires(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp or an HTTP-date into an aware datetime.

    Raises:
        ValueError: If ``value`` is neither.
    """
    try:
        parsed = datetime.fromisoformat(value[:-1] + "+00:00" if value.endswith("Z") else value)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid date: {value!r}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def set_cookie_header(name: str, value: str, expires: Optional[datetime] = None) -> str:
    """
    Render one ``Set-Cookie`` value scoped to ``Path=/``.

    Raises:
        CookieError: If ``name`` is not a legal cookie name.
    """
    jar = SimpleCookie()
    jar[name] = value
    morsel = jar[name]
    morsel["path"] = "/"
    if expires is not None:
        morsel["expires"] = format_http_date(expires)
    return morsel.OutputString()


def get_cookies(request: HTTPRequest) -> HTTPResponse:
    return ok({"cookies": parse_cookie_header(request)})


def set_cookie(request: HTTPRequest) -> HTTPResponse:
    """Set one cookie from ``{"name", "value", "expires"?}`` and echo the request's cookies."""
    decoded = request.decode_json()
    data = decoded.value if decoded.present else None

    if (
        not isinstance(data, dict)
        or not isinstance(data.get("name"), str)
        or not isinstance(data.get("value"), str)
    ):
        return bad_request("Invalid cookie data")

    expires = None
    if data.get("expires") is not None:
        if not isinstance(data["expires"], str):
            return bad_request("Invalid date format")
        try:
            expires = parse_expires(data["expires"])
        except ValueError:
            return bad_request("Invalid date format")

    try:
        header = set_cookie_header(data["name"], data["value"], expires)
    except CookieError:
        return bad_request("Invalid cookie name")

    response = ok({"cookies": parse_cookie_header(request)})
    response.set_header("Set-Cookie", header)
    return response


def delete_cookie(request: HTTPRequest) -> HTTPResponse:
    """Expire the cookie named by ``?name=``."""
    name = request.get_query("name")
    if not name:
        return bad_request("Missing name parameter")

    try:
        header = set_cookie_header(name, "", EXPIRED)
    except CookieError:
        return bad_request("Invalid cookie name")

    return (ResponseBuilder()
        .status(HTTPStatus.NO_CONTENT)
        .header("Set-Cookie", f"{header}; Max-Age=0")
        .build())
