"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per request on the ``mockhttp.access`` logger, plus an
``X-Request-ID`` response header so a client can quote the line that
belongs to its call.

    text:  127.0.0.1 - - [18/Oct/2026:12:00:00 +0000] "GET /delay/2" 200 25 2001.84ms
    json:  {"request_id": "3f9c2a1b", "method": "GET", "url": "/delay/2", ...}

Handlers never log themselves; everything a request did is visible here.

=============================================================================
"""

from dataclasses import asdict, dataclass
from typing import Optional
import json
import logging
import time
import uuid

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .base import Middleware, NextHandler


# Separate name so operators can route access logs on their own:
#   logging.getLogger("mockhttp.access").addHandler(file_handler)
logger = logging.getLogger("mockhttp.access")


@dataclass
class RequestLog:
    """
    Structured access log entry.

    request_id:     Also sent back as X-Request-ID
    url:            Raw request-target (path plus query)
    client_ip:      Peer IP as seen by the server
    status_code:    Status actually sent (for /status/{code}, the forced one)
    duration_ms:    Includes any /delay wait
    """

    request_id: str
    method: str
    url: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache-style line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.url}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware. Add it FIRST so it sees every request,
    including those an inner middleware answers on its own.

        pipeline.add(LoggingMiddleware(log_format="json"))
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        """
        Args:
            log_format: "text" (Apache-like) or "json".
            include_request_id: Add X-Request-ID to responses.
            log_level: Level for access lines.
            skip_paths: Exact paths not to log.
        """
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.target} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if self.include_request_id:
            response.set_header("X-Request-ID", request_id)

        if request.path in self.skip_paths:
            return response

        log_entry = RequestLog(
            request_id=request_id,
            method=request.method,
            url=request.target,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        return response
