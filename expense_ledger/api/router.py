"""
Method + path routing.

Routes are declared as a table of (method, pattern, handler). A pattern is
an absolute path whose segments are either literals or single-segment
placeholders:

    /accounts
    /accounts/{id}
    /accounts/{id}/transactions/{txId}

Patterns are parsed once into typed segments and compared to the request
path segment by segment. A placeholder matches any non-empty segment; a
segment never contains a slash, so a placeholder never spans two.

Resolution:
1. Collect every route whose pattern matches the path
2. None matched -> 404
3. Some matched but none with the request's method -> 405
4. Otherwise the first matching route in table order wins
"""

import re
from typing import Callable, Iterable, NamedTuple, Optional

from werkzeug.exceptions import MethodNotAllowed, NotFound
from werkzeug.wrappers import Request, Response


Handler = Callable[[Request], Response]

_PLACEHOLDER = re.compile(r"^\{([A-Za-z_][A-Za-z0-9_]*)\}$")


class Segment(NamedTuple):
    value: str
    is_param: bool


def split_path(path: str) -> list[str]:
    """Segments of an absolute path; "/" is a single empty segment."""
    return path.split("/")[1:]


class RoutePattern:
    """A parsed route pattern such as /accounts/{id}/transactions."""

    def __init__(self, pattern: str):
        if not pattern.startswith("/"):
            raise ValueError(f"Route pattern must start with '/': {pattern!r}")

        segments = []
        names = set()
        for raw in split_path(pattern):
            placeholder = _PLACEHOLDER.match(raw)
            if placeholder:
                name = placeholder.group(1)
                if name in names:
                    raise ValueError(f"Duplicate placeholder {name!r} in {pattern!r}")
                names.add(name)
                segments.append(Segment(name, True))
            elif "{" in raw or "}" in raw:
                raise ValueError(f"Malformed segment {raw!r} in {pattern!r}")
            else:
                segments.append(Segment(raw, False))

        self.pattern = pattern
        self.segments = tuple(segments)

    def match(self, path: str) -> Optional[dict[str, str]]:
        """
        Match a request path.

        Returns:
            The placeholder values by name, or None if the shape differs
        """
        parts = split_path(path)
        if len(parts) != len(self.segments):
            return None

        params = {}
        for segment, part in zip(self.segments, parts):
            if segment.is_param:
                if not part:
                    return None
                params[segment.value] = part
            elif segment.value != part:
                return None
        return params

    def __repr__(self) -> str:
        return f"RoutePattern({self.pattern!r})"


class Route(NamedTuple):
    method: str
    pattern: RoutePattern
    handler: Handler


def route(method: str, pattern: str, handler: Handler) -> Route:
    """Build a table entry: route("GET", "/accounts/{id}", handler)."""
    return Route(method.upper(), RoutePattern(pattern), handler)


class Router:
    """
    Resolve (method, path) against an ordered route table.

    Holds no mutable state once built; safe to share across threads.
    """

    def __init__(self, routes: Iterable[Route]):
        self._routes = tuple(routes)

    @property
    def routes(self) -> tuple[Route, ...]:
        return self._routes

    def resolve(self, method: str, path: str) -> tuple[Route, dict[str, str]]:
        """
        Find the handler for a request.

        Raises:
            NotFound: If no pattern matches the path
            MethodNotAllowed: If patterns match the path but not the method
        """
        allowed = []
        for candidate in self._routes:
            params = candidate.pattern.match(path)
            if params is None:
                continue
            if candidate.method == method:
                return candidate, params
            if candidate.method not in allowed:
                allowed.append(candidate.method)

        if allowed:
            raise MethodNotAllowed(
                valid_methods=allowed,
                description="method not allowed",
            )
        raise NotFound(description="not found")

    def dispatch(self, request: Request) -> Response:
        matched, _ = self.resolve(request.method, request.path)
        return matched.handler(request)
