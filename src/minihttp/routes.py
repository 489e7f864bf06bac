"""
The server's route table.

Order is precedence; the first match wins:

    1. "/"            exact   → hello
    2. "/user-agent"  exact   → user_agent
    3. "/echo/"       prefix  → echo
    4. "/files/"      prefix  → FileHandler rooted at config.directory
    5. anything else          → 404 Not Found (Router fallback)
"""

from .config import ServerConfig
from .handlers import FileHandler, echo, hello, user_agent
from .http.router import Router


def create_router(config: ServerConfig) -> Router:
    """Build the route table for a server configuration."""
    router = Router()
    files = FileHandler(config.directory)

    router.add_route("/", hello)
    router.add_route("/user-agent", user_agent)
    router.add_route("/echo/", echo, prefix=True)
    router.add_route("/files/", files.handle, prefix=True, name="files")

    return router
