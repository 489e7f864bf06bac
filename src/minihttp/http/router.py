"""
=============================================================================
URL ROUTER
=============================================================================

Maps a parsed request to the handler that produces its response.

=============================================================================
MATCHING
=============================================================================

Routes are tried in REGISTRATION ORDER and the first match wins. Each
route matches the raw request path one of two ways:

    EXACT   "/user-agent"   matches "/user-agent" only
    PREFIX  "/echo/"        matches "/echo/", "/echo/abc", "/echo/a/b?x=1"

Routes do not filter on method. A handler that cares about the method
(the /files/ handler does) checks request.method itself, so "wrong method"
can be answered with 405 instead of falling through to 404.

If nothing matches, the fallback runs (404 Not Found by default). Routing
is therefore total: every request gets exactly one response.

    Request ──► Router.handle()
                   │
                   ├─ "/"            EXACT  → hello
                   ├─ "/user-agent"  EXACT  → user_agent
                   ├─ "/echo/"       PREFIX → echo
                   ├─ "/files/"      PREFIX → files
                   └─ (no match)            → not_found

=============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .request import HTTPRequest
from .response import HTTPResponse, not_found


logger = logging.getLogger(__name__)


# Handler: takes a request, returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]


class MatchType(Enum):
    EXACT = "exact"
    PREFIX = "prefix"


@dataclass(frozen=True)
class Route:
    """
    A path pattern bound to a handler.

    Attributes:
        pattern:    Path ("/user-agent") or path prefix ("/echo/")
        handler:    Function producing the response
        match_type: EXACT or PREFIX
        name:       Optional label, used in logs
    """

    pattern: str
    handler: Handler
    match_type: MatchType = MatchType.EXACT
    name: Optional[str] = None

    def matches(self, path: str) -> bool:
        if self.match_type is MatchType.PREFIX:
            return path.startswith(self.pattern)
        return path == self.pattern


def _default_fallback(request: HTTPRequest) -> HTTPResponse:
    return not_found()


class Router:
    """
    Ordered route table.

    Usage:
        router = Router()

        @router.route("/")
        def hello(request):
            return ResponseBuilder().text("Hello, world").build()

        @router.route("/echo/", prefix=True)
        def echo(request):
            ...

        response = router.handle(request)
    """

    def __init__(self, fallback: Optional[Handler] = None):
        """
        Args:
            fallback: Handler for requests no route matches.
                      Defaults to a plain 404 Not Found.
        """
        self._routes: List[Route] = []
        self._fallback = fallback or _default_fallback

    @property
    def routes(self) -> List[Route]:
        """Registered routes in match order (a copy)."""
        return list(self._routes)

    def add_route(
        self,
        pattern: str,
        handler: Handler,
        prefix: bool = False,
        name: Optional[str] = None,
    ) -> Route:
        """
        Append a route. Earlier routes take precedence.

        Args:
            pattern: Exact path, or path prefix when prefix=True
            handler: Handler function
            prefix: Match any path starting with pattern
            name: Optional label (defaults to the handler's __name__)
        """
        route = Route(
            pattern=pattern,
            handler=handler,
            match_type=MatchType.PREFIX if prefix else MatchType.EXACT,
            name=name or getattr(handler, "__name__", None),
        )
        self._routes.append(route)
        return route

    def route(
        self,
        pattern: str,
        prefix: bool = False,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add_route()."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(pattern, handler, prefix=prefix, name=name)
            return handler
        return decorator

    def match(self, path: str) -> Optional[Route]:
        """First route matching the raw path, or None."""
        for route in self._routes:
            if route.matches(path):
                return route
        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Dispatch to the first matching route, or the fallback."""
        route = self.match(request.path)
        if route is None:
            logger.debug(f"{request.method} {request.path} → no route")
            return self._fallback(request)
        logger.debug(f"{request.method} {request.path} → {route.name}")
        return route.handler(request)
