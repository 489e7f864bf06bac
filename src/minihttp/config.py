"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

One immutable configuration object, built at startup and shared by
reference with every worker thread.

    ┌──────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION SOURCES                         │
    ├──────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   Priority (highest to lowest):                                  │
    │                                                                  │
    │   1. Command-line flags   python -m minihttp --directory /tmp    │
    │   2. Environment          MINIHTTP_DIRECTORY=/tmp                │
    │   3. Defaults             (this dataclass)                       │
    │                                                                  │
    └──────────────────────────────────────────────────────────────────┘

The dataclass is frozen: nothing can change it after startup, so workers
read it without any locking. Use dataclasses.replace() to derive a
modified copy.

=============================================================================
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


LOG_FORMATS = ("text", "json")


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the HTTP server.

    NETWORK
    - host, port, backlog, buffer_size, timeout

    REQUEST LIMITS
    - max_line_length, max_headers, max_body_size, body_requires_content_type

    CONCURRENCY
    - workers, queue_size

    FILES
    - directory

    LOGGING
    - log_level, log_format
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. Loopback by default."""

    port: int = 4221
    """Port to listen on. 0 lets the OS pick a free one (tests)."""

    backlog: int = 128
    """Kernel accept queue length passed to listen()."""

    buffer_size: int = 8192
    """Bytes requested per recv() call."""

    timeout: Optional[float] = 30.0
    """
    Per-connection read timeout in seconds. A client that goes quiet
    mid-request gets 408 after this long. None blocks forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_line_length: int = 8192
    """Longest request line or header line accepted."""

    max_headers: int = 100
    """Most header lines accepted in one request; more gets 400."""

    max_body_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest Content-Length accepted; larger gets 413."""

    body_requires_content_type: bool = True
    """
    Read a request body only when Content-Type is present (historical
    behavior). False reads a body whenever Content-Length is present.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 8
    """Worker threads handling connections. Hard concurrency ceiling."""

    queue_size: int = 64
    """Accepted connections allowed to wait for a worker; beyond that, 503."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: str = "."
    """Root directory for /files/ requests."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR."""

    log_format: str = "text"
    """Access log format: 'text' or 'json'."""

    @property
    def root(self) -> Path:
        """Resolved absolute path of the files directory."""
        return Path(self.directory).resolve()

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        MINIHTTP_HOST        bind address   (default: 127.0.0.1)
        MINIHTTP_PORT        port           (default: 4221)
        MINIHTTP_DIRECTORY   files root     (default: .)
        MINIHTTP_WORKERS     worker threads (default: 8)
        MINIHTTP_TIMEOUT     read timeout   (default: 30)
        MINIHTTP_LOG_LEVEL   log level      (default: INFO)
        MINIHTTP_LOG_FORMAT  text or json   (default: text)
        """
        return cls(
            host=os.getenv("MINIHTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("MINIHTTP_PORT", "4221")),
            directory=os.getenv("MINIHTTP_DIRECTORY", "."),
            workers=int(os.getenv("MINIHTTP_WORKERS", "8")),
            timeout=float(os.getenv("MINIHTTP_TIMEOUT", "30")),
            log_level=os.getenv("MINIHTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("MINIHTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Check values at startup, not at first use.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.workers < 1:
            raise ValueError("workers must be >= 1")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_headers < 1:
            raise ValueError("max_headers must be >= 1")

        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}")
