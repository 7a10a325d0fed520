"""
=============================================================================
AUTHENTICATION HANDLERS
=============================================================================

Endpoints that check credentials carried by the request itself; nothing
is stored on the server.

    GET /basic-auth/{user}/{passwd}          Basic, expected pair in path
    GET /hidden-basic-auth/{user}/{passwd}   same, left off the landing page
    GET /bearer?required=true                any Bearer token is accepted

    ┌──────────────────────┬──────────────────────────────────────────────┐
    │ Outcome              │ Response                                     │
    ├──────────────────────┼──────────────────────────────────────────────┤
    │ credentials accepted │ 200 {"authenticated": true, ...}             │
    │ missing or wrong     │ 401 "Unauthorized" + WWW-Authenticate        │
    └──────────────────────┴──────────────────────────────────────────────┘

Basic credentials are compared with ``hmac.compare_digest`` so the time
taken does not depend on how much of the password matched.

=============================================================================
"""

from typing import Optional, Tuple
import base64
import binascii
import hmac

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok, text_error
from ..http.status_codes import HTTPStatus


REALM = "mockhttp"

_FALSE_VALUES = {"false", "0", "no", "off"}


def authorization(request: HTTPRequest, scheme: str) -> Optional[str]:
    """
    Credentials of an ``Authorization: <scheme> <credentials>`` header.

    The scheme is matched case-insensitively. Returns None when the header
    is missing, uses another scheme or carries no credentials.
    """
    found, _, credentials = request.headers.get("authorization").strip().partition(" ")
    if found.lower() != scheme.lower():
        return None
    return credentials.strip() or None


def decode_basic(credentials: str) -> Optional[Tuple[str, str]]:
    """Split base64 ``user:password``; None if malformed or the user is empty."""
    try:
        decoded = base64.b64decode(credentials, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None

    user, sep, password = decoded.partition(":")
    if not sep or not user:
        return None
    return user, password


def unauthorized(challenge: str) -> HTTPResponse:
    response = text_error(HTTPStatus.UNAUTHORIZED, "Unauthorized")
    return response.set_header("WWW-Authenticate", challenge)


def basic_auth(request: HTTPRequest) -> HTTPResponse:
    """Accept only the user/password pair named in the path."""
    expected_user = request.path_params.get("user", "")
    expected_password = request.path_params.get("passwd", "")

    credentials = authorization(request, "Basic")
    pair = decode_basic(credentials) if credentials else None
    if pair is None:
        return unauthorized(f'Basic realm="{REALM}"')

    user, password = pair
    user_ok = hmac.compare_digest(user.encode("utf-8"), expected_user.encode("utf-8"))
    password_ok = hmac.compare_digest(password.encode("utf-8"), expected_password.encode("utf-8"))
    if not (user_ok and password_ok):
        return unauthorized(f'Basic realm="{REALM}"')

    return ok({"authenticated": True, "user": user})


def bearer(request: HTTPRequest) -> HTTPResponse:
    """
    Report the Bearer token, if any.

    ``?required=false`` turns a missing token into a 200 with
    ``"authenticated": false`` instead of a 401.
    """
    required = (request.get_query("required") or "true").lower() not in _FALSE_VALUES
    token = authorization(request, "Bearer")

    if token is None:
        if required:
            return unauthorized("Bearer")
        return ok({"authenticated": False, "token": ""})

    return ok({"authenticated": True, "token": token})
