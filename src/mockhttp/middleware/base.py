"""
=============================================================================
MIDDLEWARE BASE
=============================================================================

Chain of responsibility around the router. Each middleware receives the
request and a ``next`` callable; it may act before, after, or instead of
calling ``next``:

    def __call__(self, request, next):
        ...                        # before: inspect the request
        response = next(request)   # continue the chain
        ...                        # after: decorate the response
        return response

Returning without calling ``next`` short-circuits the chain.

=============================================================================
PIPELINE ORDER
=============================================================================

    pipeline.add(LoggingMiddleware())     # first added = outermost
    pipeline.add(FunctionMiddleware(add_header))

        LoggingMiddleware
          └── add_header
                └── router.handle

The access log therefore also records responses an inner middleware
produced on its own.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """Abstract base class for middleware."""

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process a request.

        Args:
            request: The incoming request
            next: The rest of the chain

        Returns:
            Response from ``next`` or a short-circuit response
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered middleware around a final handler.

    Usage:
        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware()).add(FunctionMiddleware(add_header))
        handler = pipeline.wrap(router.handle)
        response = handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append middleware; first added runs outermost."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the call chain.

        Given [MW1, MW2] and handler, wrapping in reverse yields
        MW1 → MW2 → handler.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(self, middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)


class FunctionMiddleware(Middleware):
    """
    Adapts a plain ``(request, next) -> response`` function.

        def add_header(request, next):
            response = next(request)
            response.set_header("X-Mock", "1")
            return response

        pipeline.add(FunctionMiddleware(add_header))
    """

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None
    ):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[HTTPRequest, NextHandler], HTTPResponse]
) -> FunctionMiddleware:
    """Decorator form of FunctionMiddleware."""
    return FunctionMiddleware(func)
