"""
Text routes: "/", "/user-agent" and "/echo/<text>".

All three answer with a text/plain body and ignore the method.
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, bad_request


GREETING = "Hello, world"


def hello(request: HTTPRequest) -> HTTPResponse:
    """GET / → "Hello, world"."""
    return ResponseBuilder().text(GREETING).build()


def user_agent(request: HTTPRequest) -> HTTPResponse:
    """
    GET /user-agent → the client's User-Agent header, verbatim.

    No User-Agent header → 400 Bad Request.
    """
    agent = request.get_header("User-Agent")
    if agent is None:
        return bad_request("Missing User-Agent header")
    return ResponseBuilder().text(agent).build()


def echo(request: HTTPRequest) -> HTTPResponse:
    """
    GET /echo/<text> → <text>.

    Only the third path segment is echoed: "/echo/a/b" answers "a".
    Content-Length is the UTF-8 byte length of the echoed text.
    """
    text = request.path_segments[2]
    return ResponseBuilder().text(text).build()
