"""
Unit tests for the request handlers.
"""

from pathlib import Path

import pytest

from minihttp.handlers import FileHandler, echo, hello, user_agent
from minihttp.http.request import HTTPRequest
from minihttp.http.status_codes import HTTPStatus


class TestBasicHandlers:
    """Tests for "/", "/user-agent" and "/echo/"."""

    def test_hello(self):
        response = hello(HTTPRequest(method="GET", path="/"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"Hello, world"
        assert response.headers == {"Content-Type": "text/plain", "Content-Length": "12"}

    def test_user_agent(self):
        request = HTTPRequest(method="GET", path="/user-agent", headers={"user-agent": "curl/8.4.0"})
        response = user_agent(request)

        assert response.body == b"curl/8.4.0"
        assert response.headers["Content-Length"] == "10"

    def test_user_agent_missing(self):
        response = user_agent(HTTPRequest(method="GET", path="/user-agent"))

        assert response.status == HTTPStatus.BAD_REQUEST

    def test_echo(self):
        response = echo(HTTPRequest(method="GET", path="/echo/abc"))

        assert response.body == b"abc"
        assert response.headers["Content-Length"] == "3"

    def test_echo_multibyte(self):
        """Content-Length is the UTF-8 byte count of the echoed text."""
        response = echo(HTTPRequest(method="GET", path="/echo/héllo"))

        assert response.body == "héllo".encode("utf-8")
        assert response.headers["Content-Length"] == "6"

    def test_echo_third_segment_only(self):
        assert echo(HTTPRequest(method="GET", path="/echo/a/b")).body == b"a"

    def test_echo_empty(self):
        response = echo(HTTPRequest(method="GET", path="/echo/"))

        assert response.status == HTTPStatus.OK
        assert response.body == b""
        assert response.headers["Content-Length"] == "0"


class TestFileHandler:
    """Tests for FileHandler class."""

    @pytest.fixture
    def files(self, tmp_path: Path) -> FileHandler:
        return FileHandler(str(tmp_path))

    def test_get_existing_file(self, files: FileHandler, tmp_path: Path):
        (tmp_path / "foo").write_bytes(b"Hello, World!")

        response = files.handle(HTTPRequest(method="GET", path="/files/foo"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"Hello, World!"
        assert response.headers == {
            "Content-Type": "application/octet-stream",
            "Content-Length": "13",
        }

    def test_get_binary_file(self, files: FileHandler, tmp_path: Path):
        data = bytes(range(256)) * 4
        (tmp_path / "blob.bin").write_bytes(data)

        response = files.handle(HTTPRequest(method="GET", path="/files/blob.bin"))

        assert response.body == data

    def test_get_missing_file(self, files: FileHandler):
        response = files.handle(HTTPRequest(method="GET", path="/files/nope"))

        assert response.status == HTTPStatus.NOT_FOUND

    def test_get_directory_is_server_error(self, files: FileHandler, tmp_path: Path):
        (tmp_path / "subdir").mkdir()

        response = files.handle(HTTPRequest(method="GET", path="/files/subdir"))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_get_nested_file(self, files: FileHandler, tmp_path: Path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "a.txt").write_bytes(b"nested")

        response = files.handle(HTTPRequest(method="GET", path="/files/sub/a.txt"))

        assert response.body == b"nested"

    def test_post_writes_body(self, files: FileHandler, tmp_path: Path):
        request = HTTPRequest(method="POST", path="/files/new.txt", body=b"12345")

        response = files.handle(request)

        assert response.status == HTTPStatus.OK
        assert response.body == b"ok"
        assert (tmp_path / "new.txt").read_bytes() == b"12345"

    def test_post_overwrites(self, files: FileHandler, tmp_path: Path):
        (tmp_path / "f").write_bytes(b"old contents")

        files.handle(HTTPRequest(method="POST", path="/files/f", body=b"new"))

        assert (tmp_path / "f").read_bytes() == b"new"

    def test_post_empty_body_creates_empty_file(self, files: FileHandler, tmp_path: Path):
        files.handle(HTTPRequest(method="POST", path="/files/empty"))

        assert (tmp_path / "empty").read_bytes() == b""

    def test_post_into_missing_directory_fails(self, files: FileHandler):
        request = HTTPRequest(method="POST", path="/files/nodir/x", body=b"x")

        response = files.handle(request)

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.body == b"Internal Server Error"

    @pytest.mark.parametrize("method", ["PUT", "DELETE", "HEAD", "get"])
    def test_other_methods_not_allowed(self, files: FileHandler, method: str):
        response = files.handle(HTTPRequest(method=method, path="/files/foo"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, POST"

    @pytest.mark.parametrize("path", ["/files/", "/files//"])
    def test_empty_name(self, files: FileHandler, path: str):
        response = files.handle(HTTPRequest(method="GET", path=path))

        assert response.status == HTTPStatus.NOT_FOUND

    @pytest.mark.parametrize("path", [
        "/files/../secret",
        "/files/../../etc/passwd",
        "/files/sub/../../secret",
        "/files/.",
    ])
    def test_path_traversal_forbidden(self, tmp_path: Path, path: str):
        root = tmp_path / "root"
        root.mkdir()
        (tmp_path / "secret").write_bytes(b"secret")
        files = FileHandler(str(root))

        for method in ("GET", "POST"):
            response = files.handle(HTTPRequest(method=method, path=path, body=b"x"))
            assert response.status == HTTPStatus.FORBIDDEN

        assert (tmp_path / "secret").read_bytes() == b"secret"

    def test_dotdot_inside_root_allowed(self, files: FileHandler, tmp_path: Path):
        (tmp_path / "a.txt").write_bytes(b"a")

        response = files.handle(HTTPRequest(method="GET", path="/files/sub/../a.txt"))

        assert response.body == b"a"
