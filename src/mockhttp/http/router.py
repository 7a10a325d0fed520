"""
=============================================================================
URL ROUTER
=============================================================================

Maps (verb, path) to exactly one handler and binds path placeholders.

    router = Router()

    @router.get("/status/{code}")
    def status(request):
        code = request.path_params["code"]
        ...

=============================================================================
ROUTE TEMPLATES
=============================================================================

A template is a list of segments, each either LITERAL or a PLACEHOLDER:

    Template:  /delay/{seconds}
                 │       │
                 ▼       ▼
    Regex:     /delay/(?P<seconds>[^/]+)     (must match the whole path)

    /delay/3       → {"seconds": "3"}
    /delay/3/4     → no match (one segment per placeholder)
    /delay         → no match

Paths are compared exactly with ``fullmatch``: no trailing-slash folding,
so ``/get/`` is not ``/get``, and neither is ``/get%0A`` (``/get\n`` once
decoded).

=============================================================================
SPECIFICITY, NOT REGISTRATION ORDER
=============================================================================

When several templates match, the one with the most literal segments wins:

    GET /status/{code}      literals: 1
    GET /status/teapot      literals: 2   ← wins for /status/teapot

Registration order therefore never changes the outcome. Two templates for
the same verb are ambiguous when some path fits both and neither has more
literals. Registering the second one raises RouteConflictError, whichever
comes first:

    GET /status/{code}
    GET /status/{value}     ← RouteConflictError (same shape)

    GET /a/{x}
    GET /{y}/b              ← RouteConflictError (/a/b fits both)

=============================================================================
MISSES
=============================================================================

    ┌──────────────────────────────────┬────────────────────────────────────┐
    │ Situation                        │ Response                           │
    ├──────────────────────────────────┼────────────────────────────────────┤
    │ no template matches the path     │ 404  "404 page not found"          │
    │ path matches, verb does not      │ 405  Allow: <registered verbs>     │
    └──────────────────────────────────┴────────────────────────────────────┘

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
import re

from .request import HTTPRequest
from .response import HTTPResponse, method_not_allowed, not_found


# Handler: takes the routed request, returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


class RouteConflictError(ValueError):
    """Raised when a template would be ambiguous with a registered one."""


@dataclass
class Route:
    """
    A registered (verb, template, handler) triple.

    ``shape`` replaces every placeholder with ``None`` so that
    ``/status/{code}`` and ``/status/{value}`` compare equal.
    """

    path: str
    method: str
    handler: Handler
    name: Optional[str] = None
    description: str = ""
    hidden: bool = False

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)
    shape: Tuple[Optional[str], ...] = field(default=(), repr=False)

    @property
    def specificity(self) -> int:
        """Number of literal segments."""
        return sum(1 for segment in self.shape if segment is not None)

    @property
    def param_names(self) -> List[str]:
        return list(self._param_names)

    def overlaps(self, other: "Route") -> bool:
        """True if some path would match both templates."""
        if len(self.shape) != len(other.shape):
            return False
        return all(
            mine is None or theirs is None or mine == theirs
            for mine, theirs in zip(self.shape, other.shape)
        )

    def match(self, path: str) -> Optional[Dict[str, str]]:
        """Return bound placeholders if ``path`` fits this template."""
        if self._pattern is None:
            return None
        result = self._pattern.fullmatch(path)
        return result.groupdict() if result else None


@dataclass
class RouteMatch:
    """
    Result of a successful route match.

    Example:
        Template: /status/{code}
        Path:     /status/418
        Result:   RouteMatch(route=<Route>, params={"code": "418"})
    """

    route: Route
    params: Dict[str, str]


class Router:
    """
    Route table with decorator registration.

    The table is built once at startup and then frozen:

        router = Router()

        @router.get("/ip")
        def ip(request):
            return ok({"origin": request.remote_addr})

        router.freeze()
        router.add_route("/late", ip, "GET")   # RuntimeError
    """

    def __init__(self):
        self._routes: List[Route] = []
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "Router":
        """Make the route table immutable."""
        self._frozen = True
        return self

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: str = "GET",
        name: Optional[str] = None,
        description: str = "",
        hidden: bool = False,
    ) -> Route:
        """
        Register a route.

        Args:
            path: Template such as ``/status/{code}``
            handler: Callable taking the request, returning a response
            method: HTTP verb
            name: Optional route name (defaults to the handler's name)
            description: One-line summary shown on the landing page
            hidden: Served normally but left off the landing page

        Returns:
            The registered Route

        Raises:
            RuntimeError: If the router is frozen.
            RouteConflictError: If the template is ambiguous with an
                existing route for the same verb.
            ValueError: If the template is malformed.
        """
        if self._frozen:
            raise RuntimeError("Route table is frozen; cannot register " + path)

        pattern, param_names, shape = self._compile_template(path)
        method = method.upper()

        route = Route(
            path=path,
            method=method,
            handler=handler,
            name=name or getattr(handler, "__name__", None),
            description=description,
            hidden=hidden,
            _pattern=pattern,
            _param_names=param_names,
            shape=shape,
        )

        for existing in self._routes:
            if (
                existing.method == method
                and existing.specificity == route.specificity
                and existing.overlaps(route)
            ):
                raise RouteConflictError(
                    f"{method} {path} conflicts with {existing.method} {existing.path}"
                )

        self._routes.append(route)

        return route

    def _compile_template(
        self, path: str
    ) -> Tuple[re.Pattern, List[str], Tuple[Optional[str], ...]]:
        """
        Compile a template into a regex.

        Input:  "/status/{code}"

        Step 1: Split by "/"       ["", "status", "{code}"]
        Step 2: Per segment        "status" → /status
                                   "{code}" → /(?P<code>[^/]+)
        Step 3: Join               /status/(?P<code>[^/]+)

        Returns:
            Tuple of (compiled regex, parameter names, shape)
        """
        if not path.startswith("/"):
            raise ValueError(f"Route template must start with '/': {path!r}")

        if path == "/":
            return re.compile("/"), [], ()

        param_names: List[str] = []
        shape: List[Optional[str]] = []
        regex_parts: List[str] = []

        for segment in path[1:].split("/"):
            regex_parts.append("/")
            placeholder = PLACEHOLDER_PATTERN.fullmatch(segment)

            if placeholder:
                param_name = placeholder.group(1)
                if param_name in param_names:
                    raise ValueError(f"Duplicate placeholder {param_name!r} in {path!r}")
                param_names.append(param_name)
                shape.append(None)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")
            elif "{" in segment or "}" in segment:
                raise ValueError(f"Malformed placeholder segment {segment!r} in {path!r}")
            else:
                shape.append(segment)
                regex_parts.append(re.escape(segment))

        return re.compile("".join(regex_parts)), param_names, tuple(shape)

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the most specific route for ``method`` and ``path``.

        Returns:
            RouteMatch if found, None otherwise
        """
        method = method.upper()
        best: Optional[RouteMatch] = None

        for route in self._routes:
            if route.method != method:
                continue
            params = route.match(path)
            if params is None:
                continue
            if best is None or route.specificity > best.route.specificity:
                best = RouteMatch(route=route, params=params)

        return best

    def get_allowed_methods(self, path: str) -> List[str]:
        """
        Verbs registered for any template matching ``path``.

        Used for the Allow header of 405 responses.
        """
        methods = {route.method for route in self._routes if route.match(path) is not None}
        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch a request.

        1. Find the most specific matching route
        2. Bind path parameters onto the request
        3. Call the handler

        Falls back to 405 when only the verb is wrong, else 404.
        """
        match = self.match(request.method, request.path)

        if match:
            request.path_params = match.params
            return match.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)

        return not_found()

    # =========================================================================
    # DECORATOR-STYLE ROUTE REGISTRATION
    # =========================================================================

    def route(
        self,
        path: str,
        method: str = "GET",
        name: Optional[str] = None,
        description: str = "",
    ) -> Callable[[Handler], Handler]:
        """
        Decorator for registering routes.

        Usage:
            @router.route("/post", method="POST")
            def post(request):
                ...
        """
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name, description)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None, description: str = "") -> Callable[[Handler], Handler]:
        return self.route(path, "GET", name, description)

    def post(self, path: str, name: Optional[str] = None, description: str = "") -> Callable[[Handler], Handler]:
        return self.route(path, "POST", name, description)

    def put(self, path: str, name: Optional[str] = None, description: str = "") -> Callable[[Handler], Handler]:
        return self.route(path, "PUT", name, description)

    def patch(self, path: str, name: Optional[str] = None, description: str = "") -> Callable[[Handler], Handler]:
        return self.route(path, "PATCH", name, description)

    def delete(self, path: str, name: Optional[str] = None, description: str = "") -> Callable[[Handler], Handler]:
        return self.route(path, "DELETE", name, description)

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def routes(self) -> List[Route]:
        """All registered routes, in registration order."""
        return list(self._routes)

    def __len__(self) -> int:
        return len(self._routes)
