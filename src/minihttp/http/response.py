"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Structured responses and their exact wire form.

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 200 OK\r\n                 ← status line
    Content-Type: text/plain\r\n        ← headers, in stored order
    Content-Length: 12\r\n
    \r\n                                ← blank line
    Hello, world                        ← body, NO trailing CRLF

=============================================================================
WHO SETS Content-Length?
=============================================================================

Serialization (HTTPResponse.to_bytes) writes exactly what the response
holds and adds nothing. Construction (ResponseBuilder.text / .binary)
sets Content-Type and Content-Length together with the body, so a body
never leaves a handler without both:

    handler ──► ResponseBuilder().text("abc")     to_bytes()
                   │                                  │
                   ├─ body = b"abc"                   └─ status line
                   ├─ Content-Type: text/plain           + headers as stored
                   └─ Content-Length: 3  (BYTES)         + body

Content-Length counts BYTES, not characters: "héllo" is 5 characters but
6 bytes in UTF-8.

A response with an empty body and no headers is legal and serializes to
just the status line and the blank line.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from .status_codes import HTTPStatus


@dataclass(frozen=True)
class HTTPResponse:
    """
    An immutable HTTP response, produced by a handler and sent once.

    Attributes:
        status:  HTTPStatus member
        headers: Header name → value, serialized in insertion order
        body:    Raw body bytes
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def to_bytes(self) -> bytes:
        """
        Serialize to wire bytes.

        Headers go out in the order stored; nothing is added or changed.
        """
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")

        # Trailing "" yields the blank line separating headers from body
        lines.append("")
        head = "\r\n".join(lines).encode("utf-8") + b"\r\n"

        return head + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Usage:
        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .text("Hello, world")
            .build())

        response = ResponseBuilder().binary(data).build()

    Every body method sets Content-Type and Content-Length together with
    the body. build() hands back a frozen HTTPResponse with a copy of the
    headers, so the builder can be reused.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add or replace one header. Position is kept on replace."""
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes], content_type: str) -> "ResponseBuilder":
        """
        Set the body with its Content-Type and byte-accurate Content-Length.

        Args:
            body: str (encoded as UTF-8) or bytes
            content_type: MIME type for the Content-Type header
        """
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        self._headers["Content-Type"] = content_type
        self._headers["Content-Length"] = str(len(body))
        return self

    def text(self, text: str, content_type: str = "text/plain") -> "ResponseBuilder":
        """Plain text body."""
        return self.body(text, content_type)

    def binary(
        self,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> "ResponseBuilder":
        """Opaque binary body, e.g. file contents."""
        return self.body(data, content_type)

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# One-liners for the responses the routes and the connection handler send.
# Error bodies are plain text and default to the reason phrase:
#
#     not_found()          → 404, "Not Found"
#     internal_error()     → 500, "Internal Server Error"
#
# =============================================================================

def _text_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    text = status.phrase if message is None else message
    return ResponseBuilder().status(status).text(text).build()


def bad_request(message: Optional[str] = None) -> HTTPResponse:
    """400 Bad Request."""
    return _text_response(HTTPStatus.BAD_REQUEST, message)


def forbidden(message: Optional[str] = None) -> HTTPResponse:
    """403 Forbidden."""
    return _text_response(HTTPStatus.FORBIDDEN, message)


def not_found(message: Optional[str] = None) -> HTTPResponse:
    """404 Not Found."""
    return _text_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """
    405 Method Not Allowed.

    Includes the Allow header listing the methods the resource accepts.
    """
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .text(HTTPStatus.METHOD_NOT_ALLOWED.phrase)
        .build())


def request_timeout(message: Optional[str] = None) -> HTTPResponse:
    """408 Request Timeout."""
    return _text_response(HTTPStatus.REQUEST_TIMEOUT, message)


def internal_error(message: Optional[str] = None) -> HTTPResponse:
    """
    500 Internal Server Error.

    Keep the message generic; details belong in the server log.
    """
    return _text_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def service_unavailable(message: Optional[str] = None) -> HTTPResponse:
    """503 Service Unavailable."""
    return _text_response(HTTPStatus.SERVICE_UNAVAILABLE, message)


def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """Plain-text error response for an arbitrary status."""
    return _text_response(status, message)
