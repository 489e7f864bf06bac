"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads one HTTP/1.1 request off a StreamReader and turns it into an
immutable HTTPRequest.

=============================================================================
WHAT WE READ
=============================================================================

    POST /files/report.txt HTTP/1.1\r\n      ← request line: 3 tokens
    Host: localhost:4221\r\n                 ← header lines: "Name: Value"
    Content-Type: application/octet-stream\r\n
    Content-Length: 5\r\n
    \r\n                                     ← blank line ends the headers
    hello                                    ← exactly Content-Length bytes

The parser works line by line straight off the connection. It never waits
for "the whole request" to arrive first, because without parsing the
headers there is no way to know how big the whole request is.

=============================================================================
WHEN IS THERE A BODY?
=============================================================================

A body is read only when the request carries a Content-Type header; the
number of bytes comes from Content-Length. A request with Content-Length
but no Content-Type has its body left unread. This is the historical
behavior of the server and stays the default; pass
body_requires_content_type=False to key the body purely on Content-Length.

    Content-Type?   Content-Length?   body_requires_content_type=True
    ─────────────   ───────────────   ────────────────────────────────
    yes             yes               read Content-Length bytes
    yes             no / garbage      BAD_CONTENT_LENGTH
    no              anything          no body

=============================================================================
FAILURE IS PER CONNECTION
=============================================================================

Every malformed input raises HTTPParseError with a ParseErrorKind. The
worker handling the connection catches it, answers (or not), and closes.
Nothing here can take down another connection or the process.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .status_codes import HTTPStatus
from .stream import StreamReader, LineTooLongError


class ParseErrorKind(Enum):
    """What exactly was wrong with the request."""
    EMPTY = "empty"                            # Peer closed before sending anything
    BAD_REQUEST_LINE = "bad_request_line"      # Not "METHOD TARGET VERSION"
    INCOMPLETE_HEADERS = "incomplete_headers"  # Stream ended before the blank line
    BAD_HEADER = "bad_header"                  # Header line without ": "
    BAD_CONTENT_LENGTH = "bad_content_length"  # Missing or not ASCII digits
    BODY_TOO_LARGE = "body_too_large"          # Content-Length above the limit
    INCOMPLETE_BODY = "incomplete_body"        # Fewer body bytes than promised
    LINE_TOO_LONG = "line_too_long"            # A single line blew the buffer limit


_KIND_STATUS = {
    ParseErrorKind.BODY_TOO_LARGE: HTTPStatus.PAYLOAD_TOO_LARGE,
}


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the kind of failure and the HTTP status to answer with, so the
    connection handler can respond without inspecting the message text.
    """

    def __init__(self, message: str, kind: ParseErrorKind):
        super().__init__(message)
        self.kind = kind
        self.status_code = _KIND_STATUS.get(kind, HTTPStatus.BAD_REQUEST)


@dataclass(frozen=True)
class HTTPRequest:
    """
    A fully parsed HTTP request.

    Frozen: the parser builds it once per connection and handlers only
    read it.

    Attributes:
        method:         Request-line method, case as received (GET, POST, ...)
        path:           Raw request-target, unmodified ("/echo/abc?x=1")
        version:        Request-line version token ("HTTP/1.1"), informational
        headers:        Header values keyed by LOWERCASE name, last one wins
        body:           Body bytes, b"" when no body was read
        client_address: (ip, port) of the peer, for logging
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)

    @property
    def path_segments(self) -> list[str]:
        """
        The path split on "/".

        Absolute paths start with an empty segment:
            "/echo/abc" → ["", "echo", "abc"]
        """
        return self.path.split("/")

    @property
    def user_agent(self) -> Optional[str]:
        return self.headers.get("user-agent")

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Case-insensitive header lookup.

        Example:
            request.get_header("User-Agent")  # same as "user-agent"
        """
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses one request from a StreamReader.

    ==========================================================================
    PARSER STEPS
    ==========================================================================

        1. readline()            → request line, split into 3 tokens
        2. readline() until \\r\\n → headers, split once on ": "
        3. Content-Type present? → read(Content-Length) as body
        4. Build HTTPRequest

    Any step may raise HTTPParseError.
    ==========================================================================
    """

    def __init__(
        self,
        max_body_size: int = 10 * 1024 * 1024,
        body_requires_content_type: bool = True,
        max_headers: int = 100,
    ):
        """
        Args:
            max_body_size: Largest Content-Length accepted (413 above it).
            body_requires_content_type: Only read a body when Content-Type
                                        is present (historical behavior).
            max_headers: Most header lines accepted (400 above it).
        """
        self.max_body_size = max_body_size
        self.body_requires_content_type = body_requires_content_type
        self.max_headers = max_headers

    def parse(
        self,
        reader: StreamReader,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Read and parse one request.

        Args:
            reader: Stream positioned at the start of a request.
            client_address: Peer (ip, port) recorded on the request.

        Returns:
            The parsed HTTPRequest.

        Raises:
            HTTPParseError: On any malformed or truncated input.
            socket.timeout: If the underlying socket times out.
        """
        try:
            method, path, version = self._parse_request_line(reader)
            headers = self._parse_headers(reader)
        except LineTooLongError as e:
            raise HTTPParseError(str(e), ParseErrorKind.LINE_TOO_LONG) from e

        body = self._read_body(reader, headers)

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
        )

    def _parse_request_line(self, reader: StreamReader) -> tuple[str, str, str]:
        """
        Read "METHOD SP REQUEST-TARGET SP VERSION CRLF".

        Tokens are split on single spaces and must number exactly three.
        Neither method nor version is validated.
        """
        raw = reader.readline()
        if not raw:
            raise HTTPParseError("Connection closed before request line", ParseErrorKind.EMPTY)
        if not raw.endswith(b"\r\n"):
            raise HTTPParseError(
                f"Unterminated request line: {raw!r}", ParseErrorKind.BAD_REQUEST_LINE
            )

        line = raw[:-2].decode("utf-8", errors="replace")
        tokens = line.split(" ")
        if len(tokens) != 3:
            raise HTTPParseError(
                f"Invalid request line: {line!r}", ParseErrorKind.BAD_REQUEST_LINE
            )

        method, path, version = tokens
        return method, path, version

    def _parse_headers(self, reader: StreamReader) -> Dict[str, str]:
        """
        Read header lines up to the blank line.

        Names are lower-cased so lookups are case-insensitive. A repeated
        header replaces the earlier value.
        """
        headers: Dict[str, str] = {}
        count = 0

        while True:
            raw = reader.readline()
            if raw == b"\r\n":
                return headers
            if not raw.endswith(b"\n"):
                # Stream ended before the blank line
                raise HTTPParseError(
                    "Connection closed before end of headers",
                    ParseErrorKind.INCOMPLETE_HEADERS,
                )

            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            name, sep, value = line.partition(": ")
            if not sep:
                raise HTTPParseError(f"Invalid header line: {line!r}", ParseErrorKind.BAD_HEADER)

            count += 1
            if count > self.max_headers:
                raise HTTPParseError(
                    f"More than {self.max_headers} headers", ParseErrorKind.BAD_HEADER
                )
            headers[name.lower()] = value

    def _read_body(self, reader: StreamReader, headers: Dict[str, str]) -> bytes:
        if self.body_requires_content_type:
            if "content-type" not in headers:
                return b""
        elif "content-length" not in headers:
            return b""

        raw_length = headers.get("content-length")
        # int() alone would also take "+3", "1_0", " 7" and non-ASCII digits
        if raw_length is None or not (raw_length.isascii() and raw_length.isdigit()):
            raise HTTPParseError(
                f"Invalid Content-Length: {raw_length!r}", ParseErrorKind.BAD_CONTENT_LENGTH
            )
        length = int(raw_length)
        if length > self.max_body_size:
            raise HTTPParseError(
                f"Body too large: {length} bytes", ParseErrorKind.BODY_TOO_LARGE
            )

        body = reader.read(length)
        if len(body) < length:
            raise HTTPParseError(
                f"Incomplete body: expected {length} bytes, got {len(body)}",
                ParseErrorKind.INCOMPLETE_BODY,
            )
        return body


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    **parser_options,
) -> HTTPRequest:
    """
    Parse a complete request held in memory.

    Convenience wrapper for tests and tools; the server itself parses
    straight off the socket.

    Example:
        request = parse_request(b"GET / HTTP/1.1\\r\\n\\r\\n")
    """
    parser = RequestParser(**parser_options)
    return parser.parse(StreamReader.from_bytes(data), client_address)
