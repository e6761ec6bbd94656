from __future__ import annotations

import logging
from typing import cast

import httpx
import orjson
import pytest

from langgraph_client.errors import (
    MAX_ERROR_BODY_BYTES,
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    BadRequestError,
    ConflictError,
    InternalServerError,
    LangGraphError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    UnprocessableEntityError,
    _araise_for_status_typed,
    _connection_error,
)


def make_response(
    status: int,
    *,
    json_body: dict | None = None,
    text_body: str | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    request = httpx.Request("GET", "https://example.com/test")
    content: bytes | None
    if json_body is not None:
        content = orjson.dumps(json_body)
    elif text_body is not None:
        content = text_body.encode()
    else:
        content = b""
    return httpx.Response(
        status, headers=headers or {}, content=content, request=request
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,exc_type",
    [
        (400, BadRequestError),
        (401, AuthenticationError),
        (403, PermissionDeniedError),
        (404, NotFoundError),
        (409, ConflictError),
        (422, UnprocessableEntityError),
        (429, RateLimitError),
        (500, InternalServerError),
        (503, InternalServerError),  # any 5xx
        (418, APIStatusError),  # unmapped 4xx falls back to base type
    ],
)
async def test_raise_for_status_typed_maps_exceptions_and_sets_status_code(
    status: int, exc_type: type[APIStatusError]
) -> None:
    r = make_response(
        status, json_body={"message": "boom", "code": "abc", "param": "p", "type": "t"}
    )

    with pytest.raises(exc_type) as ei:
        await _araise_for_status_typed(r)

    err = cast(APIStatusError, ei.value)
    assert err.status_code == status
    assert err.response.status_code == status
    assert isinstance(err, LangGraphError)
    assert isinstance(err, httpx.HTTPStatusError)


@pytest.mark.asyncio
async def test_success_status_does_not_raise() -> None:
    await _araise_for_status_typed(make_response(200, json_body={"ok": True}))


@pytest.mark.asyncio
async def test_request_id_is_extracted_when_present() -> None:
    r = make_response(
        404, json_body={"detail": "missing"}, headers={"x-request-id": "req-123"}
    )
    with pytest.raises(NotFoundError) as ei:
        await _araise_for_status_typed(r)
    assert ei.value.request_id == "req-123"
    assert ei.value.message == "missing"


@pytest.mark.asyncio
async def test_non_json_body_is_kept_as_text(caplog) -> None:
    r = make_response(429, text_body="Too many requests")
    with caplog.at_level(logging.ERROR, logger="langgraph_client.errors"):
        with pytest.raises(RateLimitError) as ei:
            await _araise_for_status_typed(r)
    err = ei.value
    assert err.status_code == 429
    assert err.body == "Too many requests"
    assert err.text == "Too many requests"
    assert str(err) == "HTTP error: 429 - Too many requests"
    assert "Error from langgraph-api: Too many requests" in caplog.text


@pytest.mark.asyncio
async def test_oversized_error_body_is_truncated() -> None:
    r = make_response(500, text_body="y" * (MAX_ERROR_BODY_BYTES * 3))
    with pytest.raises(InternalServerError) as ei:
        await _araise_for_status_typed(r)
    assert ei.value.text == "y" * MAX_ERROR_BODY_BYTES
    assert ei.value.body == ei.value.text


@pytest.mark.asyncio
async def test_field_extraction_from_json_body() -> None:
    r = make_response(
        400,
        json_body={
            "message": "Invalid parameter",
            "code": "invalid_param",
            "param": "limit",
            "type": "invalid_request_error",
        },
    )
    with pytest.raises(BadRequestError) as ei:
        await _araise_for_status_typed(r)
    err = ei.value
    assert err.code == "invalid_param"
    assert err.param == "limit"
    assert err.type == "invalid_request_error"


@pytest.mark.asyncio
async def test_nested_error_message_and_empty_body() -> None:
    r = make_response(500, json_body={"error": {"message": "kaboom"}})
    with pytest.raises(InternalServerError) as ei:
        await _araise_for_status_typed(r)
    assert ei.value.message == "kaboom"

    r = make_response(500)
    with pytest.raises(InternalServerError) as ei:
        await _araise_for_status_typed(r)
    assert ei.value.body is None
    assert ei.value.message == "500 Internal Server Error"


def test_connection_error_mapping() -> None:
    request = httpx.Request("GET", "https://example.com/test")

    err = _connection_error(httpx.ConnectError("refused", request=request))
    assert type(err) is APIConnectionError
    assert err.request is request
    assert str(err) == "refused"

    err = _connection_error(httpx.ReadTimeout("slow", request=request))
    assert isinstance(err, APITimeoutError)
    assert str(err) == "Request timed out."

    err = _connection_error(httpx.ConnectError("refused"))
    assert err.request is None
