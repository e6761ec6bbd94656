"""Starting, streaming and managing runs."""

from __future__ import annotations

import builtins
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import httpx

from langgraph_client._async.http import HttpClient
from langgraph_client._async.stream import EventStream
from langgraph_client._shared.utilities import (
    _get_run_metadata_from_response,
    _provided_vals,
    _resume_headers,
)
from langgraph_client.schema import (
    CancelAction,
    Command,
    Config,
    DisconnectMode,
    FrameMode,
    IfNotExists,
    Input,
    MultitaskStrategy,
    QueryParamTypes,
    Run,
    RunCreateMetadata,
    RunStatus,
    StreamMode,
)

RunCreatedHook = Callable[[RunCreateMetadata], None]


def _run_payload(
    assistant_id: str,
    *,
    input: Input | None,
    command: Command | None,
    **fields: Any,
) -> dict[str, Any]:
    if input is not None and command is not None:
        raise ValueError("Cannot provide both input and command.")
    return _provided_vals(
        {
            "assistant_id": assistant_id,
            "input": input,
            "command": _provided_vals(command) if command else None,
            **fields,
        }
    )


def _run_created_hook(
    on_run_created: RunCreatedHook | None,
) -> Callable[[httpx.Response], None] | None:
    if on_run_created is None:
        return None

    def on_response(res: httpx.Response) -> None:
        if metadata := _get_run_metadata_from_response(res):
            on_run_created(metadata)

    return on_response


class RunsClient:
    """Runs on threads, or stateless runs when `thread_id` is `None`.

    ???+ example "Example"

        ```python
        client = get_client()
        stream = await client.runs.stream(None, "agent", input={"messages": []})
        async for event in stream:
            print(event.event)
        ```
    """

    def __init__(self, http: HttpClient) -> None:
        self.http = http

    async def stream(
        self,
        thread_id: str | None,
        assistant_id: str,
        *,
        input: Input | None = None,
        command: Command | None = None,
        stream_mode: StreamMode | Sequence[StreamMode] = "values",
        stream_subgraphs: bool = False,
        stream_resumable: bool = False,
        metadata: Mapping[str, Any] | None = None,
        config: Config | None = None,
        checkpoint_id: str | None = None,
        multitask_strategy: MultitaskStrategy | None = None,
        if_not_exists: IfNotExists | None = None,
        on_disconnect: DisconnectMode | None = None,
        headers: Mapping[str, str] | None = None,
        params: QueryParamTypes | None = None,
        on_run_created: RunCreatedHook | None = None,
        mode: FrameMode = "frame",
        buffer_size: int = 1,
    ) -> EventStream:
        """Start a run and stream its output while it executes.

        The call returns once the server has accepted the run. Events arrive
        through the returned `EventStream`; cancelling it closes the
        connection, and with `on_disconnect="cancel"` the server stops the
        run as well.

        Args:
            thread_id: Thread to run on, or `None` for a stateless run.
            assistant_id: Assistant ID or graph name.
            input: Graph input. Mutually exclusive with `command`.
            command: Resume or redirect a paused graph instead of passing input.
            stream_mode: Kind(s) of output to stream.
            stream_subgraphs: Also stream output produced inside subgraphs.
            stream_resumable: Keep the output on the server so the stream can be
                rejoined with `join_stream` after a disconnect.
            metadata: Metadata stored with the run.
            config: Configuration forwarded to the graph.
            checkpoint_id: Checkpoint to start from.
            multitask_strategy: What to do if the thread is already busy.
            if_not_exists: Whether a missing thread is created or rejected.
            on_disconnect: Whether the server cancels the run when the stream
                is closed early.
            headers: Extra request headers.
            params: Extra query parameters.
            on_run_created: Called with the new run's IDs before any event is read.
            mode: How the response body is split into events, "frame" or "line".
            buffer_size: How many decoded events may wait for the consumer.

        Raises:
            ValueError: Both `input` and `command` were given.
        """
        payload = _run_payload(
            assistant_id,
            input=input,
            command=command,
            stream_mode=stream_mode,
            stream_subgraphs=stream_subgraphs,
            stream_resumable=stream_resumable,
            metadata=metadata,
            config=config,
            checkpoint_id=checkpoint_id,
            multitask_strategy=multitask_strategy,
            if_not_exists=if_not_exists,
            on_disconnect=on_disconnect,
        )
        path = f"/threads/{thread_id}/runs/stream" if thread_id else "/runs/stream"
        return await self.http.stream(
            path,
            "POST",
            json=payload,
            params=params,
            headers=headers,
            on_response=_run_created_hook(on_run_created),
            mode=mode,
            buffer_size=buffer_size,
        )

    async def join_stream(
        self,
        thread_id: str,
        run_id: str,
        *,
        cancel_on_disconnect: bool = False,
        stream_mode: StreamMode | Sequence[StreamMode] | None = None,
        last_event_id: str | None = None,
        headers: Mapping[str, str] | None = None,
        params: QueryParamTypes | None = None,
        mode: FrameMode = "frame",
        buffer_size: int = 1,
    ) -> EventStream:
        """Attach to the output of a run that is already executing.

        Only output produced after joining is received, unless the run was
        started with `stream_resumable=True` and `last_event_id` is given, in
        which case the server replays everything after that event. Pass the
        `last_event_id` of an interrupted `EventStream` to pick up where it
        stopped.
        """
        query: dict[str, Any] = {"cancel_on_disconnect": cancel_on_disconnect}
        if stream_mode is not None:
            query["stream_mode"] = stream_mode
        if params:
            query.update(params)
        return await self.http.stream(
            f"/threads/{thread_id}/runs/{run_id}/stream",
            "GET",
            params=query,
            headers=_resume_headers(last_event_id, headers),
            mode=mode,
            buffer_size=buffer_size,
        )

    async def create(
        self,
        thread_id: str | None,
        assistant_id: str,
        *,
        input: Input | None = None,
        command: Command | None = None,
        stream_mode: StreamMode | Sequence[StreamMode] = "values",
        stream_resumable: bool = False,
        metadata: Mapping[str, Any] | None = None,
        config: Config | None = None,
        checkpoint_id: str | None = None,
        multitask_strategy: MultitaskStrategy | None = None,
        if_not_exists: IfNotExists | None = None,
        headers: Mapping[str, str] | None = None,
        params: QueryParamTypes | None = None,
        on_run_created: RunCreatedHook | None = None,
    ) -> Run:
        """Start a run in the background and return it without waiting.

        Its output can be followed later with `join_stream`, or awaited with
        `join`. Arguments mean the same as for `stream`.
        """
        payload = _run_payload(
            assistant_id,
            input=input,
            command=command,
            stream_mode=stream_mode,
            stream_resumable=stream_resumable,
            metadata=metadata,
            config=config,
            checkpoint_id=checkpoint_id,
            multitask_strategy=multitask_strategy,
            if_not_exists=if_not_exists,
        )
        return await self.http.post(
            f"/threads/{thread_id}/runs" if thread_id else "/runs",
            json=payload,
            params=params,
            headers=headers,
            on_response=_run_created_hook(on_run_created),
        )

    async def list(
        self,
        thread_id: str,
        *,
        limit: int = 10,
        offset: int = 0,
        status: RunStatus | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> builtins.list[Run]:
        """List the runs of a thread, newest first."""
        query = _provided_vals({"limit": limit, "offset": offset, "status": status})
        return await self.http.get(
            f"/threads/{thread_id}/runs", params=query, headers=headers
        )

    async def get(
        self, thread_id: str, run_id: str, *, headers: Mapping[str, str] | None = None
    ) -> Run:
        return await self.http.get(f"/threads/{thread_id}/runs/{run_id}", headers=headers)

    async def cancel(
        self,
        thread_id: str,
        run_id: str,
        *,
        wait: bool = False,
        action: CancelAction = "interrupt",
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Stop a run on the server.

        This ends the run itself. To stop listening without affecting the
        run, cancel the `EventStream` instead. With `wait=True` the call
        returns only once the run has stopped.
        """
        path = f"/threads/{thread_id}/runs/{run_id}/cancel"
        query = {"wait": int(wait), "action": action}
        if wait:
            await self.http.request_reconnect(
                path, "POST", params=query, headers=headers
            )
        else:
            await self.http.post(path, json=None, params=query, headers=headers)

    async def join(
        self, thread_id: str, run_id: str, *, headers: Mapping[str, str] | None = None
    ) -> dict:
        """Wait for a run to finish and return the thread's final state."""
        return await self.http.request_reconnect(
            f"/threads/{thread_id}/runs/{run_id}/join", "GET", headers=headers
        )

    async def delete(
        self, thread_id: str, run_id: str, *, headers: Mapping[str, str] | None = None
    ) -> None:
        """Delete a finished run."""
        await self.http.delete(f"/threads/{thread_id}/runs/{run_id}", headers=headers)
