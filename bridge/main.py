"""Local development server that emulates the functions host over HTTP."""

from __future__ import annotations

import base64
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request, Response

from bridge import metrics
from bridge.adapter import EventAdapter, Handler, build_adapter
from bridge.errors import PayloadTooLargeError
from bridge.logs import configure_logging
from bridge.models import HTTP_METHODS, InvocationResult
from bridge.settings import Settings, get_settings

_security_logger = structlog.get_logger("security")

# CONNECT is a proxy verb that never reaches a function through the host.
_ROUTED_METHODS = sorted(HTTP_METHODS - {"CONNECT"})


def event_from_request(request: Request, body: bytes) -> dict[str, Any]:
    """Build the event a functions host would deliver for ``request``."""
    event: dict[str, Any] = {
        "path": request.url.path,
        "httpMethod": request.method,
        "headers": dict(request.headers),
        "queryStringParameters": dict(request.query_params) or None,
        "body": None,
        "isBase64Encoded": False,
    }
    if body:
        try:
            event["body"] = body.decode("utf-8")
        except UnicodeDecodeError:
            event["body"] = base64.b64encode(body).decode("ascii")
            event["isBase64Encoded"] = True
    return event


def to_response(result: InvocationResult) -> Response:
    return Response(
        content=result.body,
        status_code=result.status_code,
        headers=result.headers,
    )


def create_app(settings: Settings | None = None, app_handler: Handler | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if app_handler is not None:
        adapter = EventAdapter(app_handler, settings=settings)
    else:
        adapter = build_adapter(settings)

    app = FastAPI(title="Functions Bridge", version=settings.version)

    @app.middleware("http")
    async def enforce_limits(request: Request, call_next):
        limit = settings.max_request_size_bytes
        content_length = request.headers.get("content-length")
        if limit > 0 and content_length:
            try:
                size = int(content_length)
            except ValueError:
                size = 0  # malformed header, let the body check decide
            if size > limit:
                _security_logger.warning(
                    "request_rejected",
                    path=str(request.url.path),
                    reason="body_too_large",
                    size=size,
                    limit=limit,
                )
                return to_response(PayloadTooLargeError(size, limit).to_result())
        return await call_next(request)

    @app.get("/healthz", response_class=Response)
    async def healthz() -> Response:
        return Response(content="ok\n", media_type="text/plain")

    @app.get("/metrics")
    async def metrics_endpoint() -> Response:
        if not settings.metrics_enabled:
            raise HTTPException(status_code=404, detail="metrics disabled")
        payload, content_type = metrics.render_metrics()
        return Response(content=payload, media_type=content_type)

    @app.api_route("/{full_path:path}", methods=_ROUTED_METHODS, include_in_schema=False)
    async def invoke(request: Request, full_path: str) -> Response:
        body = await request.body()
        result = await adapter.handle_async(
            event_from_request(request, body),
            {"functionName": "local-dev", "functionVersion": settings.version},
        )
        return to_response(result)

    return app
