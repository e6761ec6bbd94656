from __future__ import annotations

import logging
from contextlib import aclosing
from typing import Any, Literal, cast

import httpx
import orjson

logger = logging.getLogger(__name__)

# Error bodies past this size are truncated; the rest is never read.
MAX_ERROR_BODY_BYTES = 64 * 1024


class LangGraphError(Exception):
    pass


class APIConnectionError(LangGraphError):
    """The request could not be sent or no response was received."""

    request: httpx.Request | None

    def __init__(
        self, *, message: str = "Connection error.", request: httpx.Request | None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.request = request


class APITimeoutError(APIConnectionError):
    def __init__(self, request: httpx.Request | None) -> None:
        super().__init__(message="Request timed out.", request=request)


class APIError(httpx.HTTPStatusError, LangGraphError):
    message: str
    request: httpx.Request

    body: object | None
    code: str | None
    param: str | None
    type: str | None

    def __init__(
        self, message: str, response: httpx.Response, *, body: object | None
    ) -> None:
        httpx.HTTPStatusError.__init__(
            self, message, request=response.request, response=response
        )
        LangGraphError.__init__(self)

        self.request = response.request
        self.message = message
        self.body = body

        if isinstance(body, dict):
            b = cast(dict[str, Any], body)
            # Best-effort extraction of common fields if present
            code_val = b.get("code")
            self.code = code_val if isinstance(code_val, str) else None
            param_val = b.get("param")
            self.param = param_val if isinstance(param_val, str) else None
            t = b.get("type")
            self.type = t if isinstance(t, str) else None
        else:
            self.code = None
            self.param = None
            self.type = None


class APIStatusError(APIError):
    """The server answered with a status code of 400 or above."""

    response: httpx.Response
    status_code: int
    request_id: str | None
    text: str

    def __init__(
        self,
        message: str,
        *,
        response: httpx.Response,
        body: object | None,
        text: str = "",
    ) -> None:
        super().__init__(message, response, body=body)
        self.response = response
        self.status_code = response.status_code
        self.request_id = response.headers.get("x-request-id")
        self.text = text

    def __str__(self) -> str:
        if self.text:
            return f"HTTP error: {self.status_code} - {self.text}"
        return f"HTTP error: {self.status_code} - {self.message}"


class BadRequestError(APIStatusError):
    status_code: Literal[400] = 400


class AuthenticationError(APIStatusError):
    status_code: Literal[401] = 401


class PermissionDeniedError(APIStatusError):
    status_code: Literal[403] = 403


class NotFoundError(APIStatusError):
    status_code: Literal[404] = 404


class ConflictError(APIStatusError):
    status_code: Literal[409] = 409


class UnprocessableEntityError(APIStatusError):
    status_code: Literal[422] = 422


class RateLimitError(APIStatusError):
    status_code: Literal[429] = 429


class InternalServerError(APIStatusError):
    pass


class UnexpectedContentTypeError(LangGraphError):
    """A streaming request got a response that is not an event stream."""

    def __init__(self, content_type: str, *, response: httpx.Response) -> None:
        super().__init__(
            "Expected response header Content-Type to contain 'text/event-stream', "
            f"got {content_type!r}"
        )
        self.content_type = content_type
        self.response = response


class StreamInterruptedError(LangGraphError):
    """Reading an event stream failed before the server ended it."""

    def __init__(self, message: str, *, events_received: int) -> None:
        super().__init__(message)
        self.events_received = events_received


def _extract_error_message(body: object | None, fallback: str) -> str:
    if isinstance(body, dict):
        b = cast(dict[str, Any], body)
        for key in ("message", "detail", "error"):
            val = b.get(key)
            if isinstance(val, str) and val:
                return val
        # Sometimes errors are structured like {"error": {"message": "..."}}
        err = b.get("error")
        if isinstance(err, dict):
            e = cast(dict[str, Any], err)
            for key in ("message", "detail"):
                val = e.get(key)
                if isinstance(val, str) and val:
                    return val
    return fallback


async def _aread_bounded(r: httpx.Response, limit: int) -> bytes:
    buf = bytearray()
    async with aclosing(r.aiter_bytes()) as chunks:
        async for chunk in chunks:
            buf.extend(chunk)
            if len(buf) >= limit:
                break
    return bytes(buf[:limit])


async def _adecode_error_body(r: httpx.Response) -> tuple[object | None, str]:
    try:
        data = await _aread_bounded(r, MAX_ERROR_BODY_BYTES)
    except httpx.HTTPError:
        return None, ""
    if not data:
        return None, ""
    text = data.decode(errors="replace")
    try:
        return orjson.loads(data), text
    except orjson.JSONDecodeError:
        return text, text


def _map_status_error(
    response: httpx.Response, body: object | None, text: str = ""
) -> APIStatusError:
    status = response.status_code
    reason = response.reason_phrase or "HTTP Error"
    message = _extract_error_message(body, f"{status} {reason}")
    kwargs: dict[str, Any] = {"response": response, "body": body, "text": text}
    if status == 400:
        return BadRequestError(message, **kwargs)
    if status == 401:
        return AuthenticationError(message, **kwargs)
    if status == 403:
        return PermissionDeniedError(message, **kwargs)
    if status == 404:
        return NotFoundError(message, **kwargs)
    if status == 409:
        return ConflictError(message, **kwargs)
    if status == 422:
        return UnprocessableEntityError(message, **kwargs)
    if status == 429:
        return RateLimitError(message, **kwargs)
    if 500 <= status:
        return InternalServerError(message, **kwargs)
    return APIStatusError(message, **kwargs)


async def _araise_for_status_typed(r: httpx.Response) -> None:
    if r.status_code < 400:
        return
    body, text = await _adecode_error_body(r)
    err = _map_status_error(r, body, text)
    logger.error(f"Error from langgraph-api: {text or err.message}")
    raise err


def _connection_error(exc: httpx.TransportError) -> APIConnectionError:
    try:
        request: httpx.Request | None = exc.request
    except RuntimeError:
        # `.request` raises when the exception was created without one.
        request = None
    if isinstance(exc, httpx.TimeoutException):
        return APITimeoutError(request)
    return APIConnectionError(message=str(exc) or "Connection error.", request=request)
