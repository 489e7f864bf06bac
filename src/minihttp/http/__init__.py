"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Turns bytes into requests and responses into bytes. No sockets in here,
only the framing rules:

    REQUEST:                          RESPONSE:
    ─────────                         ──────────
    GET /echo/abc HTTP/1.1\r\n        HTTP/1.1 200 OK\r\n
    User-Agent: curl/8.0\r\n          Content-Type: text/plain\r\n
    \r\n                              Content-Length: 3\r\n
    [body if Content-Type]            \r\n
                                      abc

    stream.py        StreamReader: lines and exact byte counts off a stream
    request.py       RequestParser, HTTPRequest, HTTPParseError
    response.py      HTTPResponse, ResponseBuilder, error helpers
    router.py        Router: first-match exact/prefix routing
    status_codes.py  HTTPStatus

=============================================================================
"""

from .status_codes import HTTPStatus
from .stream import StreamReader, LineTooLongError
from .request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    ParseErrorKind,
    parse_request,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    bad_request,         # 400
    forbidden,           # 403
    not_found,           # 404
    method_not_allowed,  # 405
    request_timeout,     # 408
    internal_error,      # 500
    service_unavailable, # 503
    error_response,
)
from .router import Router, Route, MatchType, Handler

__all__ = [
    "HTTPStatus",
    "StreamReader",
    "LineTooLongError",
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "ParseErrorKind",
    "parse_request",
    "HTTPResponse",
    "ResponseBuilder",
    "bad_request",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "request_timeout",
    "internal_error",
    "service_unavailable",
    "error_response",
    "Router",
    "Route",
    "MatchType",
    "Handler",
]
