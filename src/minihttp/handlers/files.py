"""
=============================================================================
FILE HANDLER
=============================================================================

Reads and writes files under the configured root directory for
/files/<name> requests.

    GET  /files/notes.txt   → 200 + file bytes (application/octet-stream)
    POST /files/notes.txt   → body written to <root>/notes.txt, 200 "ok"
    PUT  /files/notes.txt   → 405, Allow: GET, POST

=============================================================================
ERROR MAPPING
=============================================================================

    Situation                              Response
    ────────────────────────────────────   ──────────────────────────
    GET, file missing (FileNotFoundError)  404 Not Found
    GET, any other OSError                 500 Internal Server Error
         (permissions, is a directory)
    POST, any OSError                      500 Internal Server Error
    Path resolves outside the root         403 Forbidden
    Empty name ("/files/")                 404 Not Found
    Method other than GET/POST             405 Method Not Allowed

"Not found" and "failed" stay distinct: a client can tell a missing file
from a broken server.

=============================================================================
PATH TRAVERSAL
=============================================================================

The file path is built from the raw request path, so a client could ask
for "/files/../../etc/passwd". The target is resolved (following ".." and
symlinks) and must still sit inside the root, or the request gets 403:

    root    = /srv/data
    request = /files/../../etc/passwd
    target  = /srv/data/../../etc/passwd  →  resolve()  →  /etc/passwd
    /etc/passwd.relative_to(/srv/data)    →  ValueError →  403

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder,
    forbidden, not_found, method_not_allowed, internal_error,
)


logger = logging.getLogger(__name__)


ALLOWED_METHODS = ["GET", "POST"]


class FileHandler:
    """
    Serve and store files under one root directory.

    Usage:
        files = FileHandler("/srv/data")
        router.add_route("/files/", files.handle, prefix=True)

    Reads and writes are blocking and whole-file; the worker thread
    handling the connection waits on the disk.
    """

    def __init__(self, root_dir: str, url_prefix: str = "/files/"):
        """
        Args:
            root_dir: Directory files are read from and written to.
            url_prefix: Route prefix; the rest of the path names the file.
        """
        self.root_dir = Path(root_dir).resolve()
        # "/files/" → ["", "files", ""]: name starts after the prefix's segments
        self._skip_segments = len(url_prefix.rstrip("/").split("/"))

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        if request.method not in ALLOWED_METHODS:
            return method_not_allowed(ALLOWED_METHODS)

        segments = request.path_segments[self._skip_segments:]
        if not any(segments):
            return not_found()

        target = self._resolve(segments)
        if target is None:
            logger.warning(f"Path traversal attempt: {request.path}")
            return forbidden()

        if request.method == "GET":
            return self._read(target)
        return self._write(target, request.body)

    def _resolve(self, segments: list[str]) -> Optional[Path]:
        """
        Join segments under the root.

        Returns:
            The resolved path, or None if it escapes the root.
        """
        # Empty segments ("a//b") are dropped by joinpath
        target = self.root_dir.joinpath(*segments).resolve()
        try:
            target.relative_to(self.root_dir)
        except ValueError:
            return None
        if target == self.root_dir:
            return None
        return target

    def _read(self, path: Path) -> HTTPResponse:
        try:
            content = path.read_bytes()
        except FileNotFoundError:
            logger.debug(f"File not found: {path}")
            return not_found()
        except OSError as e:
            logger.error(f"Error reading file {path}: {e}")
            return internal_error()

        logger.debug(f"Read {len(content)} bytes from {path}")
        return ResponseBuilder().binary(content).build()

    def _write(self, path: Path, data: bytes) -> HTTPResponse:
        try:
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Error writing file {path}: {e}")
            return internal_error()

        logger.debug(f"Wrote {len(data)} bytes to {path}")
        return ResponseBuilder().text("ok").build()
