"""
=============================================================================
BYTE-STREAM READER
=============================================================================

A line-oriented reader over a raw, unbuffered byte stream.

=============================================================================
WHY NOT JUST recv() INTO THE PARSER?
=============================================================================

TCP does not preserve message boundaries. One recv() may return half a
request line, or the request line plus three headers plus the first bytes
of the body:

    recv() → b"GET /echo/ab"
    recv() → b"c HTTP/1.1\r\nHost: local"
    recv() → b"host\r\nUser-Agent: curl\r\n\r\n"

The parser wants to think in LINES ("give me the request line", "give me
the next header") and then in an exact BYTE COUNT ("give me Content-Length
bytes of body"). StreamReader sits in between:

    socket.recv(n) ──► _buffer ──► readline()  → b"GET /echo/abc HTTP/1.1\r\n"
                                ──► read(n)     → exactly n body bytes

Anything read past the current line stays in _buffer for the next call, so
no byte is ever lost between the header block and the body.

=============================================================================
END OF STREAM
=============================================================================

recv() returning b"" means the peer closed its side. readline() then hands
back whatever is left, WITHOUT a line terminator, and read(n) returns fewer
than n bytes. The parser decides whether that is fatal.

=============================================================================
"""

import io
import socket
from typing import Callable


class LineTooLongError(Exception):
    """Raised when a line exceeds the reader's max_line_length."""

    def __init__(self, limit: int):
        super().__init__(f"Line exceeds {limit} bytes")
        self.limit = limit


class StreamReader:
    """
    Buffered line and fixed-length reads over a recv(n) callable.

    Usage:
        reader = StreamReader.from_socket(client_socket)
        request_line = reader.readline()
        body = reader.read(content_length)

    Attributes:
        buffer_size: Bytes requested from recv() per call.
        max_line_length: Longest line accepted before LineTooLongError.
    """

    def __init__(
        self,
        recv: Callable[[int], bytes],
        buffer_size: int = 8192,
        max_line_length: int = 8192,
    ):
        self._recv_func = recv
        self.buffer_size = buffer_size
        self.max_line_length = max_line_length
        self._buffer = b""
        self._eof = False

    @classmethod
    def from_socket(cls, sock: socket.socket, **kwargs) -> "StreamReader":
        """Reader that pulls from a connected socket."""
        return cls(sock.recv, **kwargs)

    @classmethod
    def from_bytes(cls, data: bytes, **kwargs) -> "StreamReader":
        """Reader over an in-memory byte string (tests, offline parsing)."""
        return cls(io.BytesIO(data).read, **kwargs)

    @property
    def at_eof(self) -> bool:
        """True once the peer has closed and the buffer is drained."""
        return self._eof and not self._buffer

    def _fill(self) -> bool:
        """
        Pull one chunk from the stream into the buffer.

        Returns:
            False if the stream is exhausted.
        """
        if self._eof:
            return False
        try:
            chunk = self._recv_func(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            # Client vanished; same as an orderly close for our purposes
            chunk = b""
        if not chunk:
            self._eof = True
            return False
        self._buffer += chunk
        return True

    def readline(self) -> bytes:
        """
        Read up to and including the next b"\\n".

        Returns:
            The line with its terminator, or the unterminated remainder
            (possibly b"") if the stream ended first.

        Raises:
            LineTooLongError: If no terminator shows up within
                              max_line_length bytes.
            socket.timeout: If the underlying socket times out.
        """
        while True:
            newline = self._buffer.find(b"\n")
            if newline != -1:
                if newline + 1 > self.max_line_length:
                    raise LineTooLongError(self.max_line_length)
                line = self._buffer[:newline + 1]
                self._buffer = self._buffer[newline + 1:]
                return line

            if len(self._buffer) > self.max_line_length:
                raise LineTooLongError(self.max_line_length)

            if not self._fill():
                line, self._buffer = self._buffer, b""
                return line

    def read(self, size: int) -> bytes:
        """
        Read exactly `size` bytes.

        Fewer bytes come back only when the stream ends early; callers
        compare len(result) with what they asked for.
        """
        while len(self._buffer) < size:
            if not self._fill():
                break
        data = self._buffer[:size]
        self._buffer = self._buffer[size:]
        return data
