"""
=============================================================================
SYNTHETIC RESPONSE HANDLERS
=============================================================================

Responses decided by the URL rather than by the request content:

    GET /status/{code}      empty body, status = code          (100-599)
    GET /status/{a,b,c}     one of the listed codes at random
    GET /delay/{seconds}    "Response after N second(s)"       after N s
    GET /json               fixed JSON document

=============================================================================
INFORMATIONAL AND EMPTY STATUSES
=============================================================================

``/status/1xx`` sends the 1xx status line as the whole response and then
closes the connection. Clients treat 1xx as interim and would otherwise
wait for a final response that never comes; the close ends that wait.
1xx and 204 responses carry neither a body nor Content-Length.

=============================================================================
NUMBER PARSING
=============================================================================

Path parameters are strict base-10 integers. Nothing is truncated or
coerced:

    "418"   → 418          "3.5"  → rejected
    "+7"    → 7            "abc"  → rejected
    "-1"    → -1           " 5"   → rejected
                           "5_0"  → rejected (int() would accept it)

=============================================================================
"""

from typing import Optional
import random
import re
import threading

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, bad_request
from ..http.status_codes import is_valid_status


_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")

JSON_PAYLOAD = {
    "message": "Hello, mockhttp!",
    "author": "mockhttp team",
}


def parse_int(value: Optional[str]) -> Optional[int]:
    """
    Parse a base-10 integer, returning None for anything else.

    ``int()`` alone is too lenient here: it strips whitespace and accepts
    digit separators.
    """
    if value is None or not _INTEGER_PATTERN.fullmatch(value):
        return None
    return int(value)


def status(request: HTTPRequest) -> HTTPResponse:
    """
    Respond with the status code taken from the path, empty body.

    A comma-separated list (``/status/200,404,503``) picks one of its codes
    at random; every entry must be a valid code.
    """
    codes = [parse_int(part) for part in request.path_params.get("code", "").split(",")]
    if any(code is None or not is_valid_status(code) for code in codes):
        return bad_request("Invalid status code")

    code = codes[0] if len(codes) == 1 else random.choice(codes)
    builder = ResponseBuilder().status(code)
    if code < 200:
        # No final response follows, so end the exchange here
        builder.header("Connection", "close")
    return builder.build()


def json_payload(request: HTTPRequest) -> HTTPResponse:
    """Fixed sample document."""
    return ResponseBuilder().json(JSON_PAYLOAD).build()


class DelayHandler:
    """
    ``GET /delay/{seconds}``: answer after waiting ``seconds``.

    The wait parks only the worker thread running this request; other
    connections are served by the rest of the pool. It is a bounded
    ``Event.wait`` so that server shutdown can cut it short instead of
    holding the process open.

    Args:
        max_delay: Largest accepted value, None for no bound.
        stop_event: Set by the server on shutdown to end pending waits.
    """

    def __init__(self, max_delay: Optional[int] = None, stop_event: Optional[threading.Event] = None):
        self.max_delay = max_delay
        self.stop_event = stop_event or threading.Event()

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        seconds = parse_int(request.path_params.get("seconds"))
        if seconds is None or seconds < 0:
            return bad_request("Invalid delay time")

        if self.max_delay is not None and seconds > self.max_delay:
            return bad_request(f"Invalid delay time: maximum is {self.max_delay} second(s)")

        if seconds:
            self.stop_event.wait(seconds)

        return ResponseBuilder().text(f"Response after {seconds} second(s)").build()
