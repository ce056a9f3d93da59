from __future__ import annotations

import base64

import pytest
from bridge import normalize
from bridge.errors import MalformedInputError, PayloadTooLargeError
from bridge.models import InvocationEvent

PREFIX = "/.netlify/functions/api"


def make_event(**overrides: object) -> InvocationEvent:
    payload: dict[str, object] = {
        "path": f"{PREFIX}/widgets",
        "httpMethod": "GET",
        "headers": {},
        "body": None,
        "queryStringParameters": None,
    }
    payload.update(overrides)
    return InvocationEvent.model_validate(payload)


# ============================================================================
# PATH PREFIX STRIPPING
# ============================================================================


@pytest.mark.parametrize(
    "path, expected",
    [
        (f"{PREFIX}/widgets", "/widgets"),
        (f"{PREFIX}/widgets/7", "/widgets/7"),
        (PREFIX, "/"),
        (f"{PREFIX}/", "/"),
        (f"{PREFIX}x/widgets", f"{PREFIX}x/widgets"),
        (f"{PREFIX}/.netlify/functions/api/x", "/x"),
        ("/widgets", "/widgets"),
        ("", "/"),
        ("/", "/"),
    ],
)
def test_strip_prefix(path: str, expected: str) -> None:
    assert normalize.strip_prefix(path, PREFIX) == expected


@pytest.mark.parametrize(
    "path",
    [
        f"{PREFIX}/widgets",
        f"{PREFIX}/.netlify/functions/api/.netlify/functions/api",
        PREFIX,
        "/api/other",
        "",
    ],
)
def test_strip_prefix_is_idempotent(path: str) -> None:
    once = normalize.strip_prefix(path, PREFIX)
    assert normalize.strip_prefix(once, PREFIX) == once


def test_strip_prefix_ignores_trailing_slash_on_prefix() -> None:
    assert normalize.strip_prefix("/fn/items", "/fn/") == "/items"


def test_empty_prefix_leaves_path_alone() -> None:
    assert normalize.strip_prefix("/prod/items", "") == "/prod/items"


# ============================================================================
# BODY PARSING
# ============================================================================


@pytest.mark.parametrize(
    "content_type",
    [None, "application/json", "application/json; charset=utf-8", "application/vnd.api+json"],
)
def test_json_body_parsed_for_json_or_missing_content_type(content_type: str | None) -> None:
    body, text = normalize.parse_body(b'{"name":"widget","tags":["a"]}', content_type)
    assert body == {"name": "widget", "tags": ["a"]}
    assert text == '{"name":"widget","tags":["a"]}'


@pytest.mark.parametrize("raw", [b"{", b"not json", b"{'a': 1}", b"[1, 2"])
def test_malformed_json_raises(raw: bytes) -> None:
    with pytest.raises(MalformedInputError) as excinfo:
        normalize.parse_body(raw, "application/json")
    assert excinfo.value.detail == "Body is not valid JSON"


def test_absent_and_empty_bodies_parse_to_empty_mapping() -> None:
    assert normalize.parse_body(None, "application/json") == ({}, None)
    assert normalize.parse_body(b"", "application/json") == ({}, "")


def test_form_body_parsed_to_fields() -> None:
    body, _ = normalize.parse_body(b"name=widget&note=&qty=2", "application/x-www-form-urlencoded")
    assert body == {"name": "widget", "note": "", "qty": "2"}


def test_other_content_types_stay_text() -> None:
    body, text = normalize.parse_body(b"hello there", "text/plain")
    assert body == "hello there"
    assert text == "hello there"


def test_binary_body_kept_as_bytes_for_opaque_types() -> None:
    body, text = normalize.parse_body(b"\xff\xd8\xff", "image/jpeg")
    assert body == b"\xff\xd8\xff"
    assert text is None


def test_binary_body_rejected_when_json_declared() -> None:
    with pytest.raises(MalformedInputError):
        normalize.parse_body(b"\xff\xfe", "application/json")


def test_base64_body_decoded() -> None:
    encoded = base64.b64encode(b'{"id": 7}').decode("ascii")
    assert normalize.decode_body(encoded, is_base64_encoded=True) == b'{"id": 7}'


def test_invalid_base64_rejected() -> None:
    with pytest.raises(MalformedInputError) as excinfo:
        normalize.decode_body("!!not-base64!!", is_base64_encoded=True)
    assert excinfo.value.detail == "Body is not valid base64"


def test_body_size_limit() -> None:
    normalize.check_body_size(b"1234", limit=4)
    normalize.check_body_size(b"12345", limit=0)
    with pytest.raises(PayloadTooLargeError):
        normalize.check_body_size(b"12345", limit=4)


# ============================================================================
# EVENT NORMALIZATION
# ============================================================================


def test_normalize_event_defaults() -> None:
    request = normalize.normalize_event(make_event(), prefix=PREFIX)

    assert request.method == "GET"
    assert request.path == "/widgets"
    assert request.url == "/widgets"
    assert request.query == {}
    assert dict(request.headers) == {}
    assert request.body == {}
    assert request.raw_body is None


def test_normalize_event_headers_are_case_insensitive() -> None:
    event = make_event(
        httpMethod="post",
        headers={"Content-Type": "application/json", "X-Trace-Id": "abc"},
        body='{"id": 7}',
    )
    request = normalize.normalize_event(event, prefix=PREFIX)

    assert request.method == "POST"
    assert request.get("x-trace-id") == "abc"
    assert request.get("CONTENT-TYPE") == "application/json"
    assert request.get("missing", "fallback") == "fallback"
    assert request.body == {"id": 7}


def test_normalize_event_builds_url_with_query() -> None:
    event = make_event(queryStringParameters={"limit": "2", "q": "blue widget"})
    request = normalize.normalize_event(event, prefix=PREFIX)

    assert request.query == {"limit": "2", "q": "blue widget"}
    assert request.url == "/widgets?limit=2&q=blue+widget"


def test_normalize_event_enforces_size_limit() -> None:
    event = make_event(httpMethod="POST", body='{"id": 7}')
    with pytest.raises(PayloadTooLargeError):
        normalize.normalize_event(event, prefix=PREFIX, max_body_bytes=4)


def test_lone_surrogate_in_text_body_rejected() -> None:
    with pytest.raises(MalformedInputError) as excinfo:
        normalize.decode_body('"\ud800"')
    assert excinfo.value.detail == "Body is not valid UTF-8 text"
