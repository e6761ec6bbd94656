"""Adapted from httpx_sse to split lines on \n, \r, \r\n per the SSE spec."""

from collections.abc import AsyncIterator
from typing import Optional, Union

import httpx

from langgraph_client.schema import FrameMode, StreamEvent

BytesLike = Union[bytes, bytearray, memoryview]


class BytesLineDecoder:
    """
    Handles incrementally reading lines from text.

    Has the same behaviour as the stdlib bytes splitlines,
    but handling the input iteratively.
    """

    def __init__(self) -> None:
        self.buffer = bytearray()
        self.trailing_cr: bool = False

    def decode(self, text: bytes) -> list[BytesLike]:
        # See https://docs.python.org/3/glossary.html#term-universal-newlines
        NEWLINE_CHARS = b"\n\r"

        # We always push a trailing `\r` into the next decode iteration.
        if self.trailing_cr:
            text = b"\r" + text
            self.trailing_cr = False
        if text.endswith(b"\r"):
            self.trailing_cr = True
            text = text[:-1]

        if not text:
            return []

        trailing_newline = text[-1] in NEWLINE_CHARS
        lines = text.splitlines()

        if len(lines) == 1 and not trailing_newline:
            # No new lines, buffer the input and continue.
            self.buffer.extend(lines[0])
            return []

        if self.buffer:
            # Include any existing buffer in the first portion of the
            # splitlines result.
            self.buffer.extend(lines[0])
            lines = [self.buffer] + lines[1:]
            self.buffer = bytearray()

        if not trailing_newline:
            # If the last segment of splitlines is not newline terminated,
            # then drop it from our output and start a new buffer.
            self.buffer.extend(lines.pop())

        return lines

    def flush(self) -> list[BytesLike]:
        if not self.buffer and not self.trailing_cr:
            return []

        lines = [self.buffer]
        self.buffer = bytearray()
        self.trailing_cr = False
        return lines


class SSEDecoder:
    """Turns event-stream lines into `StreamEvent` records.

    In "frame" mode fields accumulate until a blank line ends the event. In
    "line" mode every field line is emitted on its own as soon as it is read.
    Either way an event is only produced if one of `event`, `data` or
    `metadata` is non-empty.
    """

    def __init__(self, mode: FrameMode = "frame") -> None:
        if mode not in ("frame", "line"):
            raise ValueError(f"Unknown frame mode: {mode!r}")
        self.mode = mode
        self._event = ""
        self._data: list[str] = []
        self._metadata: list[str] = []
        self._id: Optional[str] = None
        self._last_event_id: Optional[str] = None
        self._retry: Optional[int] = None

    @property
    def last_event_id(self) -> Optional[str]:
        """The most recent event ID received, kept across events."""
        return self._last_event_id

    @property
    def retry(self) -> Optional[int]:
        """The reconnection time (in ms) last advertised by the server."""
        return self._retry

    def decode(self, line: bytes) -> Optional[StreamEvent]:
        # See: https://html.spec.whatwg.org/multipage/server-sent-events.html#event-stream-interpretation  # noqa: E501

        if not line:
            return self.flush()

        if line.startswith(b":"):
            return None

        fieldname, _, value = line.partition(b":")

        if value.startswith(b" "):
            value = value[1:]

        if fieldname == b"event":
            self._event = value.decode()
        elif fieldname == b"data":
            self._data.append(value.decode())
        elif fieldname == b"metadata":
            self._metadata.append(value.decode())
        elif fieldname == b"id":
            if b"\0" in value:
                pass
            else:
                self._id = self._last_event_id = value.decode()
            return None
        elif fieldname == b"retry":
            try:
                self._retry = int(value)
            except (TypeError, ValueError):
                pass
            return None
        else:
            return None  # Field is ignored.

        if self.mode == "line":
            return self.flush()
        return None

    def flush(self) -> Optional[StreamEvent]:
        """Emit the pending event, if any, and reset for the next one."""
        # NOTE: as per the SSE spec, do not reset last_event_id.
        event = StreamEvent(
            event=self._event,
            data="\n".join(self._data),
            metadata="\n".join(self._metadata),
            id=self._id,
        )
        self._event = ""
        self._data = []
        self._metadata = []
        self._id = None
        if not (event.event or event.data or event.metadata):
            return None
        return event


async def aiter_lines_raw(response: httpx.Response) -> AsyncIterator[BytesLike]:
    decoder = BytesLineDecoder()
    async for chunk in response.aiter_bytes():
        for line in decoder.decode(chunk):
            yield line
    for line in decoder.flush():
        yield line
