"""
=============================================================================
MIDDLEWARE BASE
=============================================================================

Middleware wraps the file handler with cross-cutting behaviour, the same
Chain of Responsibility every Python web framework uses, only async:

    async def __call__(self, request, next) -> HTTPResponse:
        # before
        response = await next(request)
        # after
        return response

=============================================================================
PIPELINE ORDER
=============================================================================

            ┌─────────────────────────────────────────────────────────┐
            │  LoggingMiddleware           sees the FINAL status      │
            │  ┌───────────────────────────────────────────────────┐  │
            │  │  CompressionMiddleware     wraps the body stream  │  │
            │  │  ┌─────────────────────────────────────────────┐  │  │
            │  │  │         StaticFileHandler.handle            │  │  │
            │  │  └─────────────────────────────────────────────┘  │  │
            │  └───────────────────────────────────────────────────┘  │
            └─────────────────────────────────────────────────────────┘

First added = outermost.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# Type alias for the next handler in the chain
Handler = Callable[[HTTPRequest], Awaitable[HTTPResponse]]
NextHandler = Handler


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Every middleware implements:

        async def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse

    ``next`` is the rest of the chain. Call it unless short-circuiting.
    """

    @abstractmethod
    async def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The incoming HTTP request
            next: The next handler in the chain

        Returns:
            HTTP response (either from next() or short-circuited)
        """

    @property
    def name(self) -> str:
        """Get the middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains multiple middleware together with a final handler.

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())
        pipeline.add(CompressionMiddleware())

        handler = pipeline.wrap(static.handle)
        response = await handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """
        Add middleware to the pipeline.

        Middleware is executed in the order added (first added = outermost).
        Returns self for chaining.
        """
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: Handler) -> Handler:
        """
        Wrap a handler with all middleware.

        Builds the chain from the inside out: the last-added middleware
        wraps the handler directly, the first-added wraps everything.
        """
        wrapped = handler
        for middleware in reversed(self._middleware):
            wrapped = self._bind(middleware, wrapped)
        return wrapped

    @staticmethod
    def _bind(middleware: Middleware, next_handler: Handler) -> Handler:
        # A separate function so each closure captures its own pair.
        async def call(request: HTTPRequest) -> HTTPResponse:
            return await middleware(request, next_handler)
        return call

    def __len__(self) -> int:
        return len(self._middleware)
