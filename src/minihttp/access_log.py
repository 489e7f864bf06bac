"""
=============================================================================
ACCESS LOGGING
=============================================================================

One log record per handled request, on the "minihttp.access" logger so it
can be routed or silenced separately from the server's own logs:

    logging.getLogger("minihttp.access").setLevel(logging.WARNING)

Two formats:

    text   127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /echo/abc" 200 3 0.41ms
    json   {"request_id": "1f3a9c2e", "method": "GET", "path": "/echo/abc", ...}

Text follows the Apache common log layout so the usual log tools can read
it; JSON is for log aggregators.

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass, asdict
from typing import Optional

from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger("minihttp.access")


@dataclass
class RequestLog:
    """
    Structured access log entry.

    request_id:     Connection id, ties the entry to connection-level logs
    method:         Request method
    path:           Raw request path
    client_ip:      Peer IP address
    user_agent:     User-Agent header or "-"
    status_code:    Response status
    content_length: Response body size in bytes
    duration_ms:    Parse-to-serialize time
    timestamp:      When the response was produced
    """

    request_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """
    Emits one RequestLog per request.

    Server errors log at WARNING, everything else at log_level.
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        self.log_format = log_format
        self.log_level = log_level

    def log(
        self,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        duration_ms: float,
        request_id: Optional[str] = None,
        client_address: Optional[tuple[str, int]] = None,
    ) -> RequestLog:
        """
        Log one response.

        request is None when the request never parsed (400, 408, 413) or was
        never read (503); method, path and user agent are then "-" and the
        peer comes from client_address.
        """
        if request is not None:
            client_address = request.client_address
        client_ip = client_address[0] if client_address else ""

        entry = RequestLog(
            request_id=request_id or "-",
            method=request.method if request else "-",
            path=request.path if request else "-",
            client_ip=client_ip or "-",
            user_agent=(request.user_agent if request else None) or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        level = logging.WARNING if response.status.is_server_error else self.log_level
        if self.log_format == "json":
            logger.log(level, json.dumps(entry.to_dict()))
        else:
            logger.log(level, entry.to_text())

        return entry
