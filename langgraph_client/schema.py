"""Types shared by the client: request options, API records and stream events."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Literal, NamedTuple, TypeAlias

import orjson
from typing_extensions import TypedDict

Json = dict[str, Any] | None
"""A JSON object as decoded from the API, or `None`."""

Input: TypeAlias = Any
"""Graph input. Mappings, dataclasses and pydantic models are all accepted."""

RunStatus = Literal["pending", "running", "error", "success", "timeout", "interrupted"]
"""Lifecycle state of a run as reported by the server."""

StreamMode = Literal[
    "values",
    "messages",
    "updates",
    "events",
    "tasks",
    "checkpoints",
    "debug",
    "custom",
    "messages-tuple",
]
"""
Which kinds of output a run streams. The name of the mode is echoed back as
the `event` field of each `StreamEvent`, e.g. "values" carries the full graph
state after each step and "updates" only the keys a node changed.
"""

ThreadStreamMode = Literal["run_modes", "lifecycle", "state_update"]
"""
Which events a thread stream carries: everything its runs stream ("run_modes"),
only run start and end ("lifecycle"), or state changes ("state_update").
"""

FrameMode = Literal["frame", "line"]
"""
How the event-stream body is split into events:
- "frame": A blank line terminates an event; field lines accumulate until then.
- "line": Every field line is emitted as its own event as soon as it is read.
"""

DisconnectMode = Literal["cancel", "continue"]
"""Whether the server cancels a run once its stream client goes away."""

MultitaskStrategy = Literal["reject", "interrupt", "rollback", "enqueue"]
"""What the server does when a run is started on a thread that is already busy."""

OnConflictBehavior = Literal["raise", "do_nothing"]
"""What `threads.create` does when the thread ID is taken."""

IfNotExists = Literal["create", "reject"]
"""Whether starting a run on an unknown thread creates it or fails."""

CancelAction = Literal["interrupt", "rollback"]
"""
How a run is cancelled. "rollback" also deletes the run and the checkpoints
it wrote.
"""

QueryParamTypes = (
    Mapping[str, Any] | Sequence[tuple[str, Any]] | str | bytes
)
"""Query parameters in any form httpx accepts."""

TimeoutTypes = (
    None
    | float
    | tuple[float | None, float | None]
    | tuple[float | None, float | None, float | None, float | None]
)
"""Timeout accepted by `get_client`: total seconds, or `(connect, read[, write, pool])`."""


class Config(TypedDict, total=False):
    """Per-run configuration forwarded to the graph."""

    tags: list[str]
    recursion_limit: int
    """Maximum number of graph steps. The server defaults to 25."""
    configurable: dict[str, Any]
    """Values read by configurable fields of the graph."""


class Command(TypedDict, total=False):
    """Instructions that steer a paused run instead of giving it new input."""

    goto: str | Sequence[str]
    """Node(s) to continue from."""
    update: dict[str, Any] | Sequence[tuple[str, Any]]
    """State changes to apply before continuing."""
    resume: Any
    """Value handed to the interrupted node."""


class Thread(TypedDict):
    """A thread as returned by the API."""

    thread_id: str
    created_at: datetime
    updated_at: datetime
    metadata: Json
    status: Literal["idle", "busy", "interrupted", "error"]
    values: Json
    """Latest state of the graph on this thread."""


class Run(TypedDict):
    """A run as returned by the API."""

    run_id: str
    thread_id: str
    assistant_id: str
    created_at: datetime
    updated_at: datetime
    status: RunStatus
    metadata: Json
    multitask_strategy: MultitaskStrategy


class RunCreateMetadata(TypedDict):
    """IDs of a newly started run, read from the `Content-Location` header."""

    run_id: str
    thread_id: str | None
    """`None` for stateless runs."""


class StreamEvent(NamedTuple):
    """One event decoded from an event-stream response.

    `data` and `metadata` are kept as the raw text sent by the server. Use
    `json()` to decode `data` when the server sends JSON payloads.
    """

    event: str = ""
    """The type of event, empty if the server omitted it."""
    data: str = ""
    """The raw payload associated with the event."""
    metadata: str = ""
    """Optional side-channel payload sent with the same event."""
    id: str | None = None
    """The ID of the event, if the server assigned one."""

    def json(self) -> Any:
        """Decode `data` as JSON. Returns `None` when there is no data."""
        return orjson.loads(self.data) if self.data else None
