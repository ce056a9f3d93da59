"""Adapter error taxonomy.

Every error knows the status code and the public body it maps to. Bodies are
fixed strings so nothing from the underlying exception reaches the client.
"""

from __future__ import annotations

from typing import Any

from bridge.models import JSON_CONTENT_TYPE, InvocationResult, dump_json

STUB_MESSAGE = "Function handler is not configured for this endpoint"


class AdapterError(Exception):
    """Base class for failures converted into an error InvocationResult."""

    status_code = 500
    kind = "adapter_error"

    def public_body(self) -> dict[str, Any]:
        return {"error": "Internal server error"}

    def to_result(self) -> InvocationResult:
        return InvocationResult(
            status_code=self.status_code,
            headers={"content-type": JSON_CONTENT_TYPE},
            body=dump_json(self.public_body()),
        )


class MalformedInputError(AdapterError):
    """The event or its body could not be decoded as declared."""

    status_code = 400
    kind = "malformed_input"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def public_body(self) -> dict[str, Any]:
        return {"error": "Malformed request body", "detail": self.detail}


class PayloadTooLargeError(AdapterError):
    status_code = 413
    kind = "payload_too_large"

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"body of {size} bytes exceeds limit of {limit} bytes")
        self.size = size
        self.limit = limit

    def public_body(self) -> dict[str, Any]:
        return {"error": "Request body too large"}


class HandlerFault(AdapterError):
    """The wrapped handler raised. The original exception is kept for logging only."""

    status_code = 500
    kind = "handler_fault"

    def __init__(self, cause: BaseException | None = None) -> None:
        super().__init__("handler raised an uncaught exception")
        self.cause = cause


class UnimplementedError(AdapterError):
    """No handler is wired in, or the handler is an intentional stub."""

    status_code = 501
    kind = "unimplemented"

    def __init__(self, *, path: str, method: str) -> None:
        super().__init__(STUB_MESSAGE)
        self.path = path
        self.method = method

    def public_body(self) -> dict[str, Any]:
        return {"message": STUB_MESSAGE, "path": self.path, "method": self.method}
