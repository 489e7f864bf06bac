"""
Integration tests: a real server on a real socket.
"""

import logging
import socket
import threading
import time
from dataclasses import replace
from pathlib import Path

from minihttp import HTTPServer, ServerConfig
from minihttp.http import Router, ResponseBuilder

from conftest import TestServer, recv_all


def split_response(raw: bytes):
    """Return (status line, header dict, body) from raw response bytes."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode().split("\r\n")
    headers = dict(line.split(": ", 1) for line in lines[1:])
    return lines[0], headers, body


def wait_for(predicate, timeout: float = 5.0):
    deadline = time.time() + timeout
    while not predicate():
        if time.time() > deadline:
            raise AssertionError("condition not reached")
        time.sleep(0.01)


class TestRoutes:
    """End-to-end requests against the default routes."""

    def test_hello_exact_bytes(self, test_server: TestServer):
        raw = test_server.request(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")

        assert raw == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 12\r\n"
            b"\r\n"
            b"Hello, world"
        )

    def test_echo_multibyte(self, test_server: TestServer):
        path = "/echo/héllo".encode("utf-8")
        raw = test_server.request(b"GET " + path + b" HTTP/1.1\r\n\r\n")

        status, headers, body = split_response(raw)
        assert status == "HTTP/1.1 200 OK"
        assert body == "héllo".encode("utf-8")
        assert headers["Content-Length"] == "6"

    def test_user_agent(self, test_server: TestServer):
        raw = test_server.request(
            b"GET /user-agent HTTP/1.1\r\nHost: localhost\r\nUser-Agent: foobar/1.2.3\r\n\r\n"
        )

        status, headers, body = split_response(raw)
        assert status == "HTTP/1.1 200 OK"
        assert body == b"foobar/1.2.3"

    def test_user_agent_missing(self, test_server: TestServer):
        raw = test_server.request(b"GET /user-agent HTTP/1.1\r\nHost: localhost\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 400 Bad Request\r\n")

    def test_unknown_path(self, test_server: TestServer):
        raw = test_server.request(b"GET /nothing HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 404 Not Found\r\n")

    def test_file_round_trip(self, test_server: TestServer, config: ServerConfig):
        body = bytes(range(256))
        raw = test_server.request(
            b"POST /files/data.bin HTTP/1.1\r\n"
            b"Content-Type: application/octet-stream\r\n"
            b"Content-Length: 256\r\n"
            b"\r\n" + body
        )
        assert split_response(raw)[0] == "HTTP/1.1 200 OK"
        assert (Path(config.directory) / "data.bin").read_bytes() == body

        raw = test_server.request(b"GET /files/data.bin HTTP/1.1\r\n\r\n")

        status, headers, received = split_response(raw)
        assert status == "HTTP/1.1 200 OK"
        assert headers["Content-Type"] == "application/octet-stream"
        assert headers["Content-Length"] == "256"
        assert received == body

    def test_missing_file(self, test_server: TestServer):
        raw = test_server.request(b"GET /files/non_existent HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 404 Not Found\r\n")

    def test_files_method_not_allowed(self, test_server: TestServer):
        raw = test_server.request(b"DELETE /files/x HTTP/1.1\r\n\r\n")

        status, headers, _ = split_response(raw)
        assert status == "HTTP/1.1 405 Method Not Allowed"
        assert headers["Allow"] == "GET, POST"

    def test_path_traversal(self, test_server: TestServer):
        raw = test_server.request(b"GET /files/../../etc/passwd HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 403 Forbidden\r\n")

    def test_request_split_across_packets(self, test_server: TestServer):
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5.0) as s:
            for piece in (b"GET /ec", b"ho/split HTTP/1.1\r", b"\nHost: x\r\n", b"\r\n"):
                s.sendall(piece)
                time.sleep(0.02)
            raw = recv_all(s)

        assert split_response(raw)[2] == b"split"


class TestMalformedRequests:
    """Bad input gets an error response and never disturbs other clients."""

    def test_incomplete_headers(self, test_server: TestServer):
        raw = test_server.request(b"GET / HTTP/1.1\r\nHost: x\r\n", half_close=True)

        assert raw.startswith(b"HTTP/1.1 400 Bad Request\r\n")

    def test_bad_request_line(self, test_server: TestServer):
        raw = test_server.request(b"NONSENSE\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 400 Bad Request\r\n")

    def test_empty_connection_gets_no_response(self, test_server: TestServer):
        assert test_server.request(b"", half_close=True) == b""

    def test_malformed_alongside_well_formed(self, test_server: TestServer):
        """A half-sent request on one connection does not block another."""
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5.0) as stalled:
            stalled.sendall(b"GET / HTTP/1.1\r\nHost: x\r\n")

            raw = test_server.request(b"GET /echo/ok HTTP/1.1\r\n\r\n")
            assert split_response(raw)[2] == b"ok"

            stalled.shutdown(socket.SHUT_WR)
            assert recv_all(stalled).startswith(b"HTTP/1.1 400 Bad Request\r\n")

    def test_concurrent_clients(self, test_server: TestServer):
        results = {}

        def client(n: int):
            raw = test_server.request(f"GET /echo/{n} HTTP/1.1\r\n\r\n".encode())
            results[n] = split_response(raw)[2]

        threads = [threading.Thread(target=client, args=(n,)) for n in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10.0)

        assert results == {n: str(n).encode() for n in range(10)}


class TestLimits:
    """Timeouts, size limits, overload and handler failures."""

    def _serve(self, config: ServerConfig, router: Router = None) -> TestServer:
        server = TestServer(HTTPServer(config, router))
        server.start()
        return server

    def test_body_too_large(self, config: ServerConfig):
        server = self._serve(replace(config, max_body_size=10))
        try:
            raw = server.request(
                b"POST /files/big HTTP/1.1\r\n"
                b"Content-Type: text/plain\r\n"
                b"Content-Length: 11\r\n"
                b"\r\n"
                b"hello world"
            )
        finally:
            server.stop()

        assert raw.startswith(b"HTTP/1.1 413 Payload Too Large\r\n")

    def test_read_timeout(self, config: ServerConfig):
        server = self._serve(replace(config, timeout=0.5))
        try:
            raw = server.request(b"GET / HTTP/1.1\r\n")
        finally:
            server.stop()

        assert raw.startswith(b"HTTP/1.1 408 Request Timeout\r\n")

    def test_handler_exception_is_500(self, config: ServerConfig):
        router = Router()

        @router.route("/crash")
        def crash(request):
            raise RuntimeError("boom")

        @router.route("/fine")
        def fine(request):
            return ResponseBuilder().text("fine").build()

        server = self._serve(config, router)
        try:
            crashed = server.request(b"GET /crash HTTP/1.1\r\n\r\n")
            after = server.request(b"GET /fine HTTP/1.1\r\n\r\n")
        finally:
            server.stop()

        assert crashed.startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
        assert split_response(after)[2] == b"fine"

    def test_overload_is_503(self, config: ServerConfig):
        server = self._serve(replace(config, workers=1, queue_size=1, timeout=2.0))
        pool = server.server._thread_pool
        address = ("127.0.0.1", server.port)

        busy = socket.create_connection(address, timeout=5.0)
        queued = None
        try:
            wait_for(lambda: pool.busy_workers == 1)
            queued = socket.create_connection(address, timeout=5.0)
            wait_for(lambda: pool.queued_tasks == 1)

            raw = server.request(b"")
        finally:
            busy.close()
            if queued is not None:
                queued.close()
            server.stop()

        assert raw.startswith(b"HTTP/1.1 503 Service Unavailable\r\n")

    def test_silent_rejected_clients_do_not_stall_accept(self, config: ServerConfig):
        """Rejected connections that never close must not delay the next one."""
        server = self._serve(replace(config, workers=1, queue_size=1, timeout=5.0))
        pool = server.server._thread_pool
        address = ("127.0.0.1", server.port)

        held = [socket.create_connection(address, timeout=5.0)]
        try:
            wait_for(lambda: pool.busy_workers == 1)
            held.append(socket.create_connection(address, timeout=5.0))
            wait_for(lambda: pool.queued_tasks == 1)

            # Rejected, but never read their 503 or close
            for _ in range(6):
                held.append(socket.create_connection(address, timeout=5.0))

            started = time.monotonic()
            raw = server.request(b"")
            took = time.monotonic() - started
        finally:
            for s in held:
                s.close()
            server.stop()

        assert raw.startswith(b"HTTP/1.1 503 Service Unavailable\r\n")
        assert took < 1.0


class TestAccessLog:
    """Every answered connection shows up in the access log."""

    def test_bad_request_is_logged(self, test_server: TestServer, caplog):
        with caplog.at_level(logging.INFO, logger="minihttp.access"):
            raw = test_server.request(b"NONSENSE\r\n\r\n")
            wait_for(lambda: any(r.name == "minihttp.access" for r in caplog.records))

        assert raw.startswith(b"HTTP/1.1 400 Bad Request\r\n")
        entry = [r for r in caplog.records if r.name == "minihttp.access"][-1].getMessage()
        assert '"- -" 400' in entry

    def test_request_is_logged(self, test_server: TestServer, caplog):
        with caplog.at_level(logging.INFO, logger="minihttp.access"):
            test_server.request(b"GET /echo/abc HTTP/1.1\r\n\r\n")
            wait_for(lambda: any(r.name == "minihttp.access" for r in caplog.records))

        entry = [r for r in caplog.records if r.name == "minihttp.access"][-1].getMessage()
        assert '"GET /echo/abc" 200 3' in entry
