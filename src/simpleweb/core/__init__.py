"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the HTTP layer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SOCKET SERVER                                                      │
    │  • Binds host:port, runs the accept() loop                          │
    │  • Stops on SIGINT/SIGTERM or shutdown()                            │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ each accepted socket
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  THREAD POOL                                                        │
    │  • N fixed workers behind a bounded queue                           │
    │  • Full queue: reject (503) or block the accept loop                │
    └─────────────────────────────────────────────────────────────────────┘
                                    │ one worker per connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  CONNECTION                                                         │
    │  • Buffered line and exact-length reads over the socket            │
    │  • sendall() writes, graceful close                                 │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool, Task, Worker, WorkerState


__all__ = [
    "SocketServer",     # Accepts connections
    "Connection",       # Client socket wrapper
    "ConnectionState",  # Connection lifecycle states
    "ThreadPool",       # Bounded worker pool
    "Task",
    "Worker",
    "WorkerState",
]
