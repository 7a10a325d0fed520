"""
=============================================================================
REQUEST INSPECTION HANDLERS
=============================================================================

Echo endpoints: each one reports facts about the request it received.

    ┌──────────────────┬──────────────────────────────────────────────────┐
    │ Endpoint         │ Body                                             │
    ├──────────────────┼──────────────────────────────────────────────────┤
    │ GET  /get        │ {"args", "headers", "url"}                       │
    │ POST /post       │ {"data", "headers", "url"}                       │
    │ PUT  /put        │ same as /post                                    │
    │ PATCH /patch     │ same as /post                                    │
    │ DELETE /delete   │ same as /post                                    │
    │ GET  /headers    │ {"<Header-Name>": [values...]}                   │
    │ GET  /ip         │ {"origin": "ip:port"}                            │
    │ GET  /anything   │ {"method", "headers", "args", "url"}             │
    │ GET  /user-agent │ {"user-agent": "..."}                            │
    └──────────────────┴──────────────────────────────────────────────────┘

Multi-valued data stays multi-valued: ``?a=1&a=2`` echoes as
``{"a": ["1", "2"]}`` and repeated headers keep every value.

The ``data`` field is lenient on purpose: a body that is not JSON yields
``null`` and the request still succeeds with 200.

=============================================================================
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok


def get(request: HTTPRequest) -> HTTPResponse:
    return ok({
        "args": request.query_params,
        "headers": request.headers.to_dict(),
        "url": request.url,
    })


def echo_body(request: HTTPRequest) -> HTTPResponse:
    """Shared by POST /post, PUT /put, PATCH /patch and DELETE /delete."""
    decoded = request.decode_json()
    return ok({
        "data": decoded.value if decoded.present else None,
        "headers": request.headers.to_dict(),
        "url": request.url,
    })


def headers(request: HTTPRequest) -> HTTPResponse:
    return ok(request.headers.to_dict())


def ip(request: HTTPRequest) -> HTTPResponse:
    return ok({"origin": request.remote_addr})


def anything(request: HTTPRequest) -> HTTPResponse:
    return ok({
        "method": request.method,
        "headers": request.headers.to_dict(),
        "args": request.query_params,
        "url": request.url,
    })


def user_agent(request: HTTPRequest) -> HTTPResponse:
    return ok({"user-agent": request.user_agent})
