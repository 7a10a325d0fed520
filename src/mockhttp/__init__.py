"""
=============================================================================
MOCKHTTP
=============================================================================

A diagnostic HTTP echo server in the spirit of httpbin.org. Every endpoint
reflects some facet of the request back to the caller, or produces a
synthetic response (a chosen status, an artificial delay, fixed JSON)
for exercising HTTP clients.

    python -m mockhttp --port 8080

    curl localhost:8080/get?a=1&a=2       {"args":{"a":["1","2"]},...}
    curl localhost:8080/status/418        HTTP/1.1 418 I'm a teapot
    curl localhost:8080/delay/2           Response after 2 second(s)

=============================================================================
PACKAGE LAYOUT
=============================================================================

    core/          TCP listener, connections, worker thread pool
    http/          request parsing, responses, status codes, router
    middleware/    access logging, request IDs
    handlers/      the endpoints
    app.py         route table construction
    server.py      MockHTTPServer, ties everything together
    config.py      ServerConfig, port resolution

=============================================================================
"""

__version__ = "1.0.0"

from .app import create_router
from .config import ServerConfig, resolve_port
from .server import MockHTTPServer

__all__ = [
    "MockHTTPServer",
    "ServerConfig",
    "create_router",
    "resolve_port",
    "__version__",
]
