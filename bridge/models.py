"""Invocation-scoped data shapes exchanged between the host, the adapter and the handler."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from requests.structures import CaseInsensitiveDict

HTTP_METHODS: frozenset[str] = frozenset(
    {"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "CONNECT"}
)

JSON_CONTENT_TYPE = "application/json"


def dump_json(payload: Any) -> str:
    """Serialize compactly, matching what browsers and Node emit for JSON bodies."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def coerce_body(payload: Any) -> str:
    """Text stays verbatim, bytes are decoded as UTF-8, anything else becomes JSON."""
    if isinstance(payload, str):
        return payload
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload).decode("utf-8")
    return dump_json(payload)


class InvocationEvent(BaseModel):
    """The request event as delivered by the functions host."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    path: str
    http_method: str = Field(alias="httpMethod")
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = None
    query_string_parameters: dict[str, str] = Field(
        default_factory=dict, alias="queryStringParameters"
    )
    is_base64_encoded: bool = Field(default=False, alias="isBase64Encoded")

    @field_validator("headers", "query_string_parameters", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("http_method")
    @classmethod
    def _known_method(cls, value: str) -> str:
        method = value.upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"unsupported HTTP method: {value!r}")
        return method


class InvocationContext(BaseModel):
    """Function name/version descriptor passed alongside the event. Informational only."""

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )

    function_name: str | None = Field(default=None, alias="functionName")
    function_version: str | None = Field(default=None, alias="functionVersion")
    aws_request_id: str | None = Field(default=None, alias="awsRequestId")

    @classmethod
    def from_host(cls, context: Any) -> InvocationContext:
        """Accept a mapping (Netlify) or an attribute-bearing object (AWS ``LambdaContext``)."""
        if context is None:
            return cls()
        if isinstance(context, Mapping):
            return cls.model_validate(dict(context))
        return cls(
            function_name=getattr(context, "function_name", None),
            function_version=getattr(context, "function_version", None),
            aws_request_id=getattr(context, "aws_request_id", None),
        )

    def log_fields(self) -> dict[str, str]:
        return {key: value for key, value in self.model_dump().items() if value is not None}


@dataclass(slots=True)
class NormalizedRequest:
    """Request view handed to the wrapped handler."""

    method: str
    path: str
    url: str
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    query: dict[str, str] = field(default_factory=dict)
    body: Any = field(default_factory=dict)
    raw_body: str | None = None

    def get(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name, default)


@dataclass(slots=True)
class ResponseSink:
    """Mutable response accumulator. Every setter returns the sink so calls chain.

    Writes overwrite earlier state, so the last ``status``/``json``/``send`` wins.
    """

    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    finished: bool = False

    def status(self, code: int) -> ResponseSink:
        if isinstance(code, bool) or not isinstance(code, int) or not 100 <= code <= 599:
            raise ValueError(f"invalid HTTP status code: {code!r}")
        self.status_code = code
        return self

    def set(self, name: str, value: str) -> ResponseSink:
        self.headers[name.lower()] = str(value)
        return self

    def json(self, payload: Any) -> ResponseSink:
        self.headers["content-type"] = JSON_CONTENT_TYPE
        self.body = dump_json(payload)
        self.finished = True
        return self

    def send(self, payload: Any) -> ResponseSink:
        self.body = coerce_body(payload)
        self.finished = True
        return self

    def end(self) -> ResponseSink:
        self.finished = True
        return self


@dataclass(slots=True)
class InvocationResult:
    """Host-facing result of one invocation."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    @classmethod
    def from_sink(cls, sink: ResponseSink) -> InvocationResult:
        # handlers may assign ``body`` directly instead of going through send/json
        return cls(
            status_code=sink.status_code,
            headers=dict(sink.headers),
            body=coerce_body(sink.body),
        )

    def asdict(self) -> dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "headers": dict(self.headers),
            "body": self.body,
        }
