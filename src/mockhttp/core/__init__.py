"""
=============================================================================
TRANSPORT LAYER
=============================================================================

TCP plumbing underneath the HTTP layer:

    SocketServer    listening socket, accept loop, signal handling
    Connection      buffered reads of one request, keep-alive, close
    ThreadPool      one task per connection on bounded workers

=============================================================================
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
