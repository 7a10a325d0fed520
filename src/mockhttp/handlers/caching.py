"""
=============================================================================
CACHING HANDLERS
=============================================================================

Endpoints for exercising HTTP caches and conditional requests:

    GET /cache                 304 if the request is conditional, else 200
    GET /cache/{max_age}       200 with Cache-Control: max-age=<max_age>
    GET /etag/{etag}           200 with ETag: "<etag>", honours
                               If-None-Match (304) and If-Match (412)

=============================================================================
ENTITY TAG MATCHING
=============================================================================

Conditional headers hold a comma-separated list of tags. Weak prefixes
and quotes are ignored when comparing, and ``*`` matches any tag:

    ETag: "abc"

    If-None-Match: "abc"          → 304
    If-None-Match: W/"abc", "x"   → 304
    If-None-Match: *              → 304
    If-Match: "other"             → 412

If-None-Match is checked first, as RFC 9110 §13.2.2 orders them for GET.

=============================================================================
"""

from typing import List

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, bad_request, ok
from ..http.status_codes import HTTPStatus
from .synthetic import parse_int


CACHE_BODY = "Cache content or resource response here."
ETAG_BODY = "Resource content for matching ETag."


def entity_tags(header: str) -> List[str]:
    """Opaque tags of a conditional header, unquoted, weakness dropped."""
    tags = []
    for item in header.split(","):
        tag = item.strip()
        if tag.startswith("W/"):
            tag = tag[2:]
        if len(tag) >= 2 and tag[0] == tag[-1] == '"':
            tag = tag[1:-1]
        if tag:
            tags.append(tag)
    return tags


def tag_matches(header: str, etag: str) -> bool:
    tags = entity_tags(header)
    return "*" in tags or etag in tags


def cache(request: HTTPRequest) -> HTTPResponse:
    """Any If-Modified-Since or If-None-Match is treated as a cache hit."""
    if "if-modified-since" in request.headers or "if-none-match" in request.headers:
        return ResponseBuilder().status(HTTPStatus.NOT_MODIFIED).build()

    return ok(CACHE_BODY)


def cache_control(request: HTTPRequest) -> HTTPResponse:
    max_age = parse_int(request.path_params.get("max_age"))
    if max_age is None or max_age < 0:
        return bad_request("Invalid cache time")

    response = ok(f"Cache-Control set for {max_age} seconds.")
    return response.set_header("Cache-Control", f"max-age={max_age}")


def etag(request: HTTPRequest) -> HTTPResponse:
    tag = request.path_params.get("etag", "")
    if any(c in tag for c in '"\r\n'):
        return bad_request("Invalid etag")

    quoted = f'"{tag}"'

    if_none_match = request.headers.get("if-none-match")
    if if_none_match and tag_matches(if_none_match, tag):
        return (ResponseBuilder()
            .status(HTTPStatus.NOT_MODIFIED)
            .header("ETag", quoted)
            .build())

    if_match = request.headers.get("if-match")
    if if_match and not tag_matches(if_match, tag):
        return ResponseBuilder().status(HTTPStatus.PRECONDITION_FAILED).build()

    response = ok(ETAG_BODY)
    return response.set_header("ETag", quoted)
