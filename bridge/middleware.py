"""Compose ``(request, response, next)`` middleware into a single handler."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from bridge.models import NormalizedRequest, ResponseSink

Middleware = Callable[[NormalizedRequest, ResponseSink, Callable[..., None]], Any]


class _Next:
    """Continuation handed to one middleware. Records the call, dispatch happens on return."""

    __slots__ = ("called", "error")

    def __init__(self) -> None:
        self.called = False
        self.error: BaseException | None = None

    def __call__(self, error: BaseException | None = None) -> None:
        if self.called:
            raise RuntimeError("next() called multiple times")
        self.called = True
        self.error = error


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def chain(*middlewares: Middleware) -> Callable[[NormalizedRequest, ResponseSink], Awaitable[None]]:
    """Return a handler that runs ``middlewares`` in order.

    A middleware continues the chain by calling ``next()``; the next one runs
    once the current one has returned (or its awaitable has completed).
    ``next(error)`` stops the chain and raises ``error`` to the adapter.
    A middleware that returns without calling ``next`` ends the chain.
    """

    stack = tuple(middlewares)

    async def handler(request: NormalizedRequest, response: ResponseSink) -> None:
        for middleware in stack:
            continuation = _Next()
            await _maybe_await(middleware(request, response, continuation))
            if continuation.error is not None:
                raise continuation.error
            if not continuation.called:
                return

    return handler
