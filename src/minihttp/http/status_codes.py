"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can answer with, as an IntEnum with the
reason phrase attached.

The route table itself only ever produces three of them:

    200 OK                     - route matched, work done
    404 Not Found              - no route, or no such file
    500 Internal Server Error  - file I/O failed for a reason other than
                                 "not found"

Everything else is produced by the connection machinery around the routes:
malformed requests, slow clients, an overloaded worker pool.

=============================================================================
STATUS LINE
=============================================================================

    HTTP/1.1 404 Not Found\r\n
    ──┬───── ─┬─ ────┬────
      │       │      │
    Version  Code   Reason phrase (HTTPStatus.phrase)

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    IntEnum, so members compare equal to their integer code:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx SUCCESS
    OK = 200

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400               # Malformed request line, header or body
    FORBIDDEN = 403                 # File path escapes the served directory
    NOT_FOUND = 404                 # No route, or file does not exist
    METHOD_NOT_ALLOWED = 405        # /files/ with something other than GET/POST
    REQUEST_TIMEOUT = 408           # Client went quiet mid-request
    PAYLOAD_TOO_LARGE = 413         # Content-Length above max_body_size

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500     # File I/O failure or handler crash
    SERVICE_UNAVAILABLE = 503       # Worker queue full

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line, e.g. "Not Found"."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self < 600


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
}
