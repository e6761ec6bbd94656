"""Async LangGraph client."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import TracebackType

import httpx

from langgraph_client._async.http import HttpClient
from langgraph_client._async.runs import RunsClient
from langgraph_client._async.threads import ThreadsClient
from langgraph_client._shared.utilities import NOT_PROVIDED, _get_headers
from langgraph_client.schema import TimeoutTypes

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:8123"


def get_client(
    *,
    url: str | None = None,
    api_key: str | None = NOT_PROVIDED,
    headers: Mapping[str, str] | None = None,
    timeout: TimeoutTypes | None = None,
    retries: int = 5,
    transport: httpx.AsyncBaseTransport | None = None,
) -> LangGraphClient:
    """Build a client for the LangGraph API at `url`.

    Nothing is shared between calls: each client owns its connection pool and
    should be closed with `aclose()` or used as an async context manager.

    Args:
        url: Base URL of the server. Defaults to `http://localhost:8123`.
        api_key: Key sent as `x-api-key`. When omitted it is read from
            `LANGGRAPH_API_KEY`, `LANGSMITH_API_KEY` or `LANGCHAIN_API_KEY`, in
            that order. Pass `None` to send no key at all.
        headers: Extra headers for every request. `x-api-key` is reserved.
        timeout: Seconds, a `(connect, read, write, pool)` tuple or an
            `httpx.Timeout`. Defaults to 5s to connect and 300s to read, which
            also bounds the wait between two chunks of a stream.
        retries: Connection attempts retried by the transport before failing.
            Ignored when `transport` is given.
        transport: Transport to use instead of the default, e.g.
            `httpx.MockTransport` in tests.

    ???+ example "Example"

        ```python
        async with get_client(url="http://localhost:8123", api_key=None) as client:
            await client.check_connection()
        ```
    """
    if transport is None:
        transport = httpx.AsyncHTTPTransport(retries=retries)
    client = httpx.AsyncClient(
        base_url=url or DEFAULT_URL,
        transport=transport,
        timeout=(
            httpx.Timeout(timeout)  # type: ignore[arg-type]
            if timeout is not None
            else httpx.Timeout(connect=5, read=300, write=300, pool=5)
        ),
        headers=_get_headers(api_key, headers),
    )
    return LangGraphClient(client)


class LangGraphClient:
    """Entry point to the API, grouping the resource clients.

    Attributes:
        http: Shared `HttpClient`.
        threads: `ThreadsClient` for creating and following threads.
        runs: `RunsClient` for starting and streaming runs.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.http = HttpClient(client)
        self.threads = ThreadsClient(self.http)
        self.runs = RunsClient(self.http)

    async def check_connection(self) -> None:
        """Check that the server is reachable and healthy.

        Raises:
            APIConnectionError: The server could not be reached.
            APIStatusError: The server answered with an error status.
        """
        await self.http.get("/ok")
        logger.debug("Connected to %s", self.http.client.base_url)

    async def __aenter__(self) -> LangGraphClient:
        """Enter the async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the async context manager."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if hasattr(self, "http"):
            await self.http.client.aclose()
