"""Background consumption of event-stream responses."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from types import TracebackType

import httpx

from langgraph_client.errors import StreamInterruptedError
from langgraph_client.schema import FrameMode, StreamEvent
from langgraph_client.sse import SSEDecoder, aiter_lines_raw

logger = logging.getLogger(__name__)


class EventStream:
    """A live event stream backed by an open HTTP response.

    Events are decoded by a background task and handed over through a
    bounded queue, so a slow consumer pauses reading from the connection.
    Iterate with `async for` to receive events in the order the server sent
    them. Iteration ends once the stream is closed, which happens when the
    server ends the response, when reading fails, or after `cancel()`.

    A stream that ended because reading failed is not silently treated as
    complete: check `error` (or call `raise_for_error()`) once iteration stops.

    ???+ example "Example Usage"

        ```python
        async with await client.runs.stream(None, "agent", input=...) as stream:
            async for event in stream:
                print(event.event, event.json())
        stream.raise_for_error()
        ```
    """

    def __init__(
        self,
        response: httpx.Response,
        *,
        mode: FrameMode = "frame",
        buffer_size: int = 1,
    ) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        self._response = response
        self._decoder = SSEDecoder(mode)
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue(buffer_size)
        self._closed = asyncio.Event()
        self._error: StreamInterruptedError | None = None
        self._emitted = 0
        self._reading = False
        self._cancelled = False
        self._task = asyncio.create_task(self._run())

    @property
    def response(self) -> httpx.Response:
        """The underlying HTTP response."""
        return self._response

    @property
    def error(self) -> StreamInterruptedError | None:
        """Why the stream ended early, or `None` if it ended normally or was cancelled."""
        return self._error

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        """Whether the stream is closed and no further events will arrive."""
        return self._closed.is_set()

    @property
    def last_event_id(self) -> str | None:
        """ID of the last event received, usable to resume with `join_stream`."""
        return self._decoder.last_event_id

    def cancel(self) -> None:
        """Stop the stream and release the connection.

        Safe to call any number of times, including after the stream ended.
        Events that were decoded but not yet consumed are discarded.
        """
        if self._cancelled or self._closed.is_set():
            return
        self._cancelled = True
        while not self._queue.empty():
            self._queue.get_nowait()
        # Only interrupt the task while it reads. Before its first step it
        # checks the flag itself, and once cleanup starts it must not be
        # interrupted or the stream would never be marked closed.
        if self._reading:
            self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait until the connection is closed and the stream is done."""
        await self._closed.wait()
        if self._task.done() and not self._task.cancelled():
            # Surfaces unexpected failures of the decoding task.
            self._task.result()

    async def aclose(self) -> None:
        """Cancel the stream and wait for it to shut down."""
        self.cancel()
        await self.wait_closed()

    def raise_for_error(self) -> None:
        """Raise `StreamInterruptedError` if the stream ended because reading failed."""
        if self._error is not None:
            raise self._error

    async def _run(self) -> None:
        self._reading = True
        try:
            if self._cancelled:
                return
            async for line in aiter_lines_raw(self._response):
                if self._cancelled:
                    return
                event = self._decoder.decode(bytes(line))
                if event is not None:
                    await self._queue.put(event)
                    self._emitted += 1
            if not self._cancelled and (event := self._decoder.flush()):
                await self._queue.put(event)
                self._emitted += 1
        except (httpx.HTTPError, UnicodeDecodeError) as exc:
            self._error = StreamInterruptedError(
                f"Event stream interrupted: {exc!r}", events_received=self._emitted
            )
            self._error.__cause__ = exc
            logger.warning(
                "Event stream from %s interrupted after %d events",
                self._response.request.url,
                self._emitted,
                exc_info=exc,
            )
        except Exception as exc:
            self._error = StreamInterruptedError(
                f"Event stream failed: {exc!r}", events_received=self._emitted
            )
            self._error.__cause__ = exc
            raise
        finally:
            self._reading = False
            try:
                await self._response.aclose()
            finally:
                self._closed.set()
            logger.debug(
                "Event stream from %s closed (events=%d, cancelled=%s)",
                self._response.request.url,
                self._emitted,
                self._cancelled,
            )

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self

    async def __anext__(self) -> StreamEvent:
        while not self._cancelled:
            if not self._queue.empty():
                return self._queue.get_nowait()
            if self._closed.is_set():
                break
            getter = asyncio.ensure_future(self._queue.get())
            closer = asyncio.ensure_future(self._closed.wait())
            try:
                await asyncio.wait(
                    {getter, closer}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                closer.cancel()
                if not getter.done():
                    getter.cancel()
            if getter.done() and not getter.cancelled():
                if self._cancelled:
                    break
                return getter.result()
        raise StopAsyncIteration

    async def __aenter__(self) -> EventStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
