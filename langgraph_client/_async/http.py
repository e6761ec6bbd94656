"""HTTP layer shared by the resource clients."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx
import orjson

from langgraph_client._async.stream import EventStream
from langgraph_client._shared.utilities import _orjson_default
from langgraph_client.errors import (
    UnexpectedContentTypeError,
    _araise_for_status_typed,
    _connection_error,
)
from langgraph_client.schema import FrameMode, QueryParamTypes

logger = logging.getLogger(__name__)

STREAM_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})

ResponseHook = Callable[[httpx.Response], None]


class HttpClient:
    """Wraps an `httpx.AsyncClient` with JSON encoding and typed errors.

    Every call raises `APIConnectionError` when no response arrives and an
    `APIStatusError` subclass for statuses of 400 and above.

    Attributes:
        client (httpx.AsyncClient): Underlying HTTPX async client.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def get(
        self,
        path: str,
        *,
        params: QueryParamTypes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return await self._request("GET", path, params=params, headers=headers)

    async def post(
        self,
        path: str,
        *,
        json: Any | None,
        params: QueryParamTypes | None = None,
        headers: Mapping[str, str] | None = None,
        on_response: ResponseHook | None = None,
    ) -> Any:
        return await self._request(
            "POST",
            path,
            json=json,
            params=params,
            headers=headers,
            on_response=on_response,
        )

    async def delete(
        self,
        path: str,
        *,
        params: QueryParamTypes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        await self._request("DELETE", path, params=params, headers=headers)

    async def request_reconnect(
        self,
        path: str,
        method: str,
        *,
        json: Any | None = None,
        params: QueryParamTypes | None = None,
        headers: Mapping[str, str] | None = None,
        reconnect_limit: int = 5,
    ) -> Any:
        """Send a request whose answer may take a long time to arrive.

        If the connection drops while the body is read and the server named a
        `Location` to poll, that URL is fetched with `GET` instead, up to
        `reconnect_limit` times.
        """
        request_headers, content = await _aencode_json(json)
        if headers:
            request_headers.update(headers)
        for attempt in range(reconnect_limit + 1):
            request = self.client.build_request(
                method, path, headers=request_headers, content=content, params=params
            )
            try:
                res = await self.client.send(request, stream=True)
            except httpx.TransportError as e:
                raise _connection_error(e) from e
            try:
                await _araise_for_status_typed(res)
                location = res.headers.get("location")
                try:
                    return await _adecode_json(res)
                except httpx.HTTPError:
                    if not location or attempt == reconnect_limit:
                        raise
                    logger.warning(
                        "Reading %s %s failed, reconnecting to %s",
                        method,
                        request.url,
                        location,
                    )
            finally:
                await res.aclose()
            method, path, content, params = "GET", location, None, None
            request_headers = dict(headers or {})

    async def open_stream(
        self,
        path: str,
        method: str,
        *,
        json: Any | None = None,
        params: QueryParamTypes | None = None,
        headers: Mapping[str, str] | None = None,
        on_response: ResponseHook | None = None,
    ) -> httpx.Response:
        """Send a request and return the open response of an event stream.

        The body is left unread. The caller owns the response and must close it.

        Raises:
            APIConnectionError: No response was received.
            APIStatusError: The server answered with a status of 400 or above.
            UnexpectedContentTypeError: The response is not `text/event-stream`.
        """
        method = method.upper()
        if method not in STREAM_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")
        request_headers, content = await _aencode_json(json)
        request_headers["Accept"] = "text/event-stream"
        request_headers["Cache-Control"] = "no-store"
        if headers:
            request_headers.update(headers)

        request = self.client.build_request(
            method, path, headers=request_headers, content=content, params=params
        )
        try:
            res = await self.client.send(request, stream=True)
        except httpx.TransportError as e:
            raise _connection_error(e) from e

        try:
            if on_response:
                on_response(res)
            await _araise_for_status_typed(res)
            content_type = res.headers.get("content-type", "").partition(";")[0]
            if content_type.strip().lower() != "text/event-stream":
                raise UnexpectedContentTypeError(content_type, response=res)
        except BaseException:
            await res.aclose()
            raise
        logger.debug("Opened event stream %s %s", method, request.url)
        return res

    async def stream(
        self,
        path: str,
        method: str,
        *,
        json: Any | None = None,
        params: QueryParamTypes | None = None,
        headers: Mapping[str, str] | None = None,
        on_response: ResponseHook | None = None,
        mode: FrameMode = "frame",
        buffer_size: int = 1,
    ) -> EventStream:
        """Open an event stream and start decoding it in the background.

        Returns as soon as the response headers are validated; events are then
        decoded while the caller consumes them.
        """
        res = await self.open_stream(
            path,
            method,
            json=json,
            params=params,
            headers=headers,
            on_response=on_response,
        )
        try:
            return EventStream(res, mode=mode, buffer_size=buffer_size)
        except BaseException:
            await res.aclose()
            raise

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        params: QueryParamTypes | None = None,
        headers: Mapping[str, str] | None = None,
        on_response: ResponseHook | None = None,
    ) -> Any:
        request_headers, content = await _aencode_json(json)
        if headers:
            request_headers.update(headers)
        try:
            res = await self.client.request(
                method, path, headers=request_headers, content=content, params=params
            )
        except httpx.TransportError as e:
            raise _connection_error(e) from e
        if on_response:
            on_response(res)
        await _araise_for_status_typed(res)
        return await _adecode_json(res)


async def _aencode_json(json: Any) -> tuple[dict[str, str], bytes | None]:
    """Encode a request body off the event loop; returns headers and content."""
    if json is None:
        return {}, None
    body = await asyncio.get_running_loop().run_in_executor(
        None,
        orjson.dumps,
        json,
        _orjson_default,
        orjson.OPT_SERIALIZE_NUMPY | orjson.OPT_NON_STR_KEYS,
    )
    return {"Content-Type": "application/json", "Content-Length": str(len(body))}, body


async def _adecode_json(res: httpx.Response) -> Any:
    body = await res.aread()
    if not body:
        return None
    return await asyncio.get_running_loop().run_in_executor(None, orjson.loads, body)
