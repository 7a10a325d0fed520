"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting concerns wrapped around the router:

    LoggingMiddleware      access log line + X-Request-ID

    pipeline = MiddlewarePipeline()
    pipeline.add(LoggingMiddleware())
    handler = pipeline.wrap(router.handle)

Middleware keeps no per-client state, so two identical requests get the
same response apart from ``Date`` and ``X-Request-ID``.

=============================================================================
"""

from .base import FunctionMiddleware, Middleware, MiddlewarePipeline, NextHandler, function_middleware
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "FunctionMiddleware",
    "function_middleware",
    "LoggingMiddleware",
    "RequestLog",
]
