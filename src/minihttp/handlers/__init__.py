"""
=============================================================================
REQUEST HANDLERS
=============================================================================

Handlers are plain callables: HTTPRequest in, HTTPResponse out.

    basic.py    "/", "/user-agent", "/echo/<text>"
    files.py    "/files/<name>" read (GET) and write (POST)

routes.py wires them into a Router in precedence order.

=============================================================================
"""

from .basic import hello, user_agent, echo
from .files import FileHandler

__all__ = [
    "hello",
    "user_agent",
    "echo",
    "FileHandler",
]
