"""Event adapter: runs a request/response handler inside a single function invocation."""

from __future__ import annotations

import asyncio
import importlib
import inspect
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from time import perf_counter
from typing import Any

import structlog
from pydantic import ValidationError

from bridge import metrics
from bridge.errors import AdapterError, HandlerFault, MalformedInputError, UnimplementedError
from bridge.models import (
    InvocationContext,
    InvocationEvent,
    InvocationResult,
    NormalizedRequest,
    ResponseSink,
)
from bridge.normalize import normalize_event
from bridge.settings import Settings, get_settings

LOGGER = structlog.get_logger(__name__)

Handler = Callable[[NormalizedRequest, ResponseSink], Any]


class EventAdapter:
    """Translate host events into handler calls and handler output into host results.

    The adapter holds configuration only. Each call builds its own request,
    sink and result, so one instance can serve concurrent invocations.
    ``handle`` and ``handle_async`` never raise.
    """

    def __init__(self, app_handler: Handler | None = None, *, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.app_handler = app_handler

    def handle(self, event: Mapping[str, Any] | InvocationEvent, context: Any = None) -> InvocationResult:
        """Run one invocation to completion on a fresh event loop.

        Called from inside a running loop, the invocation runs on a worker
        thread with its own loop. Async callers should prefer ``handle_async``.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.handle_async(event, context))
        with ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, self.handle_async(event, context)).result()

    async def handle_async(
        self, event: Mapping[str, Any] | InvocationEvent, context: Any = None
    ) -> InvocationResult:
        start = perf_counter()
        log = LOGGER

        with structlog.contextvars.bound_contextvars(**_context_fields(context)):
            try:
                result = await self._dispatch(event, log)
            except AdapterError as exc:
                result = self._error_result(exc, log)
            except Exception as exc:  # anything escaping normalization or readback
                result = self._error_result(HandlerFault(exc), log)

            latency_ms = (perf_counter() - start) * 1000
            metrics.observe_invocation(latency_ms=latency_ms, status_code=result.status_code)
            log.info("invocation.end", status=result.status_code, latency_ms=latency_ms)
        return result

    async def _dispatch(
        self, event: Mapping[str, Any] | InvocationEvent, log: Any
    ) -> InvocationResult:
        invocation = _validate_event(event)
        log.info("invocation.start", method=invocation.http_method, path=invocation.path)

        request = normalize_event(
            invocation,
            prefix=self.settings.function_prefix,
            max_body_bytes=self.settings.max_request_size_bytes,
        )
        if self.app_handler is None:
            raise UnimplementedError(path=request.path, method=request.method)

        response = ResponseSink()
        try:
            outcome = self.app_handler(request, response)
            if inspect.isawaitable(outcome):
                await outcome
        except AdapterError:
            raise
        except NotImplementedError:
            raise UnimplementedError(path=request.path, method=request.method) from None
        except (Exception, asyncio.CancelledError) as exc:
            raise HandlerFault(exc) from exc

        if not response.finished:
            log.warning("handler.no_response", status=response.status_code, path=request.path)
        return InvocationResult.from_sink(response)

    def _error_result(self, error: AdapterError, log: Any) -> InvocationResult:
        metrics.observe_error(kind=error.kind)
        if isinstance(error, HandlerFault):
            cause = error.cause
            log.error(
                "handler.fault",
                error_type=type(cause).__name__ if cause is not None else None,
                exc_info=cause,
            )
        elif isinstance(error, UnimplementedError):
            log.info("handler.unimplemented", path=error.path, method=error.method)
        elif isinstance(error, MalformedInputError):
            log.warning("invocation.malformed_body", detail=error.detail)
        else:
            log.warning("invocation.rejected", kind=error.kind, reason=str(error))
        return error.to_result()


def _validate_event(event: Mapping[str, Any] | InvocationEvent) -> InvocationEvent:
    if isinstance(event, InvocationEvent):
        return event
    try:
        return InvocationEvent.model_validate(event)
    except ValidationError:
        raise MalformedInputError("Invalid invocation event") from None


def _context_fields(context: Any) -> dict[str, str]:
    try:
        return InvocationContext.from_host(context).log_fields()
    except ValidationError:
        return {}


def load_handler(target: str) -> Handler:
    """Resolve ``"package.module:attribute"`` to a handler callable."""
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"handler target must look like 'module:attribute', got {target!r}")
    module = importlib.import_module(module_name)
    handler = module
    for part in attribute.split("."):
        handler = getattr(handler, part)
    if not callable(handler):
        raise TypeError(f"{target!r} is not callable")
    return handler


def _broken_handler(target: str) -> Handler:
    def handler(request: NormalizedRequest, response: ResponseSink) -> None:
        raise RuntimeError(f"handler {target!r} failed to load")

    return handler


def build_adapter(settings: Settings | None = None) -> EventAdapter:
    """Create an adapter for the handler named by ``settings.app_handler``.

    Without a configured handler the adapter answers 501 on every invocation.
    A handler that fails to load answers 500 instead of breaking the module import.
    """
    settings = settings or get_settings()
    if not settings.app_handler:
        return EventAdapter(None, settings=settings)
    try:
        app_handler = load_handler(settings.app_handler)
    except (ImportError, AttributeError, TypeError, ValueError) as exc:
        LOGGER.error(
            "handler.load_failed",
            target=settings.app_handler,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        app_handler = _broken_handler(settings.app_handler)
    return EventAdapter(app_handler, settings=settings)


def make_handler(
    app_handler: Handler | None = None, *, settings: Settings | None = None
) -> Callable[[Mapping[str, Any], Any], dict[str, Any]]:
    """Return a host-style ``handler(event, context)`` returning the result mapping."""
    adapter = EventAdapter(app_handler, settings=settings)

    def handler(event: Mapping[str, Any], context: Any = None) -> dict[str, Any]:
        return adapter.handle(event, context).asdict()

    handler.adapter = adapter  # type: ignore[attr-defined]
    return handler
