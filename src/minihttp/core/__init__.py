"""
Networking and concurrency: the parts that touch sockets and threads.

    socket_server.py   listening socket and accept loop
    connection.py      one accepted client socket
    thread_pool.py     bounded worker pool
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .thread_pool import ThreadPool, Worker, WorkerState, Task

__all__ = [
    "Connection",
    "ConnectionState",
    "SocketServer",
    "ThreadPool",
    "Worker",
    "WorkerState",
    "Task",
]
