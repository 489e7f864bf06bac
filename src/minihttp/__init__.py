"""
minihttp: a small threaded HTTP/1.1 server.

    from minihttp import HTTPServer, ServerConfig

    HTTPServer(ServerConfig(directory="/tmp/data")).run()

Routes:
    GET  /                  200 "Hello, world"
    GET  /user-agent        the request's User-Agent
    GET  /echo/<text>       <text>
    GET  /files/<name>      file contents from the configured directory
    POST /files/<name>      write the request body to that file
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
