"""
pytest configuration and fixtures.
"""

import http.client
import socket
from typing import Generator, Tuple
from urllib.parse import parse_qs, urlsplit

import pytest

from mockhttp import MockHTTPServer, ServerConfig
from mockhttp.app import create_router
from mockhttp.http import HTTPRequest, Headers


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request with a repeated query parameter."""
    return (
        b"GET /get?a=1&a=2&b=x HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"x-test: 1\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"k": "v"}'
    return (
        b"POST /post HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServerConfig:
    """Test server configuration: OS-assigned port, quiet logs."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        min_workers=4,
        workers=8,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def router():
    """The full, frozen route table."""
    return create_router()


def build_request(
    method: str = "GET",
    target: str = "/",
    headers: dict = None,
    body: bytes = b"",
    path_params: dict = None,
    client_address: Tuple[str, int] = ("127.0.0.1", 54321),
) -> HTTPRequest:
    """Build a request the way the parser would, without the wire."""
    parsed = urlsplit(target)
    return HTTPRequest(
        method=method,
        path=parsed.path,
        target=target,
        headers=Headers.from_dict(headers or {}),
        query_params=parse_qs(parsed.query, keep_blank_values=True),
        body=body,
        path_params=path_params or {},
        client_address=client_address,
    )


@pytest.fixture
def make_request():
    """Factory for parsed requests (method, target, headers, body, ...)."""
    return build_request


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[MockHTTPServer, None, None]:
    """A real server on a background thread."""
    server = MockHTTPServer(config)
    server.start_background()

    yield server

    server.shutdown()


@pytest.fixture
def client(running_server: MockHTTPServer) -> Generator[http.client.HTTPConnection, None, None]:
    """HTTP connection to the running server."""
    host, port = running_server.bound_address
    conn = http.client.HTTPConnection(host, port, timeout=10)

    yield conn

    conn.close()
