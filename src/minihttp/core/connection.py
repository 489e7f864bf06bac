"""
=============================================================================
CONNECTION
=============================================================================

Wraps one accepted client socket for exactly one request/response
exchange.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

There is no keep-alive. Whatever the client asks for in its Connection
header, the exchange is:

    accept ──► ACTIVE ──► read request ──► write response ──► CLOSED
                  │                                              ▲
                  └──────── parse error / timeout / crash ───────┘

Closing shuts the socket down in both directions, then releases it. The
client sees EOF after the response body, which is how it knows the body
is over even if it ignores Content-Length.

    ┌─────────────────────────────────────────────────────────────────┐
    │                    TCP Close Sequence                            │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   Server                              Client                     │
    │      │   FIN ──────────────────────────► │  server SHUT_WR       │
    │      │ ◄───────────────────────── ACK   │                       │
    │      │ ◄───────────────────────── FIN   │  client closes        │
    │      │   ACK ──────────────────────────► │                       │
    │   close()                                                        │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..http.stream import StreamReader


logger = logging.getLogger(__name__)


DRAIN_TIMEOUT = 0.5           # seconds to wait for leftover client bytes
DRAIN_LIMIT = 64 * 1024       # stop draining after this many bytes


class ConnectionState(Enum):
    ACTIVE = "active"    # Reading the request or writing the response
    CLOSED = "closed"    # Socket shut down and released


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short unique id for log correlation.
        state: ACTIVE until close().
        created_at: Accept timestamp.
        buffer_size: recv() chunk size for the reader.
        timeout: Socket read timeout; None blocks forever.
        max_line_length: Longest request/header line the reader accepts.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.ACTIVE
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_line_length: int = 8192

    reader: StreamReader = field(init=False, repr=False)

    def __post_init__(self):
        # Accepted sockets can inherit the listener's timeout; set our own
        self.socket.settimeout(self.timeout)
        self.reader = StreamReader.from_socket(
            self.socket,
            buffer_size=self.buffer_size,
            max_line_length=self.max_line_length,
        )

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since accept."""
        return time.time() - self.created_at

    def send_response(self, data: bytes) -> bool:
        """
        Write response bytes to the client.

        sendall() loops until every byte is out; send() alone may stop
        short when the kernel buffer is full.

        Returns:
            True if sent, False if the client was gone. Failures are
            logged, never raised, and never retried.
        """
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def close(self, drain_timeout: float = DRAIN_TIMEOUT):
        """
        Shut down both directions and release the socket. Idempotent.

        1. shutdown(SHUT_WR)  sends FIN: the response is complete
        2. drain              read whatever the client sent that we never
                              consumed (e.g. a body without Content-Type);
                              closing with unread data makes the kernel send
                              RST, which can destroy the response in flight
        3. shutdown(SHUT_RD), close()

        Args:
            drain_timeout: Total time the drain may wait for client bytes.
                           0 takes only what is already buffered and never
                           blocks.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        self._drain(drain_timeout)

        try:
            self.socket.shutdown(socket.SHUT_RD)
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def _drain(self, timeout: float) -> int:
        """
        Discard unread client bytes until EOF, DRAIN_LIMIT or the deadline.

        The deadline covers the whole drain, not each recv(): a peer
        trickling one byte at a time still gets cut off on time.

        Returns:
            Number of bytes discarded.
        """
        deadline = time.monotonic() + timeout
        drained = 0
        try:
            while drained < DRAIN_LIMIT:
                # 0.0 puts the socket in non-blocking mode: buffered bytes only
                remaining = max(0.0, deadline - time.monotonic())
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(self.buffer_size)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Timeout, nothing buffered, or reset: closing anyway
        return drained

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
