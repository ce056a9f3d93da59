"""Event normalization: host event in, handler-facing request out."""

from __future__ import annotations

import base64
import binascii
import json
import urllib.parse
from typing import Any

import structlog
from requests.structures import CaseInsensitiveDict

from bridge.errors import MalformedInputError, PayloadTooLargeError
from bridge.models import InvocationEvent, NormalizedRequest

LOGGER = structlog.get_logger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def strip_prefix(path: str, prefix: str) -> str:
    """Remove the platform routing prefix from ``path``.

    The prefix only matches on a segment boundary and is removed until it no
    longer leads the path, so applying this twice gives the same result as once.
    """
    prefix = prefix.rstrip("/")
    if prefix:
        while path == prefix or path.startswith(prefix + "/"):
            path = path[len(prefix):]
    return path or "/"


def media_type(content_type: str | None) -> str:
    """Return the bare, lower-cased media type of a Content-Type header value."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def is_json_media_type(value: str) -> bool:
    # The functions this adapter fronts historically parsed every body as JSON,
    # so a missing Content-Type still means JSON.
    return value in ("", "application/json") or value.endswith("+json")


def decode_body(body: str | None, *, is_base64_encoded: bool = False) -> bytes | None:
    if body is None:
        return None
    if not is_base64_encoded:
        try:
            return body.encode("utf-8")
        except UnicodeEncodeError:
            raise MalformedInputError("Body is not valid UTF-8 text") from None
    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError):
        raise MalformedInputError("Body is not valid base64") from None


def check_body_size(data: bytes | None, *, limit: int) -> None:
    """Raise when ``data`` is larger than ``limit`` bytes. A limit of 0 disables the check."""
    if data is None or limit <= 0:
        return
    if len(data) > limit:
        raise PayloadTooLargeError(len(data), limit)


def parse_body(data: bytes | None, content_type: str | None) -> tuple[Any, str | None]:
    """Parse a decoded body according to its declared content type.

    Returns:
        Tuple of (parsed_body, text). Absent or empty bodies parse to ``{}``;
        JSON and form bodies parse to structures; anything else stays as text,
        or as bytes when it is not valid UTF-8.
    """
    if data is None:
        return {}, None
    if not data:
        return {}, ""

    kind = media_type(content_type)
    try:
        text: str | None = data.decode("utf-8")
    except UnicodeDecodeError:
        text = None

    if is_json_media_type(kind):
        if text is None:
            raise MalformedInputError("Body is not valid UTF-8 text")
        try:
            return json.loads(text), text
        except (ValueError, RecursionError):
            raise MalformedInputError("Body is not valid JSON") from None

    if kind == FORM_CONTENT_TYPE:
        if text is None:
            raise MalformedInputError("Body is not valid UTF-8 text")
        return dict(urllib.parse.parse_qsl(text, keep_blank_values=True)), text

    if text is None:
        return data, None
    return text, text


def build_url(path: str, query: dict[str, str]) -> str:
    if not query:
        return path
    return f"{path}?{urllib.parse.urlencode(query)}"


def normalize_event(
    event: InvocationEvent, *, prefix: str, max_body_bytes: int = 0
) -> NormalizedRequest:
    """Derive the handler-facing request from a validated host event."""

    path = strip_prefix(event.path, prefix)
    headers = CaseInsensitiveDict(event.headers)
    query = dict(event.query_string_parameters)

    data = decode_body(event.body, is_base64_encoded=event.is_base64_encoded)
    check_body_size(data, limit=max_body_bytes)
    body, text = parse_body(data, headers.get("content-type"))

    LOGGER.debug(
        "request.normalized",
        method=event.http_method,
        path=path,
        body_type=type(body).__name__,
    )

    return NormalizedRequest(
        method=event.http_method,
        path=path,
        url=build_url(path, query),
        headers=headers,
        query=query,
        body=body,
        raw_body=text,
    )
