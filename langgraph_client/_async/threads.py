"""Creating threads and following their events."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from langgraph_client._async.http import HttpClient
from langgraph_client._async.stream import EventStream
from langgraph_client._shared.utilities import _resume_headers
from langgraph_client.schema import (
    FrameMode,
    Json,
    OnConflictBehavior,
    QueryParamTypes,
    Thread,
    ThreadStreamMode,
)


class ThreadsClient:
    """Threads hold the graph state that successive runs build on."""

    def __init__(self, http: HttpClient) -> None:
        self.http = http

    async def create(
        self,
        *,
        thread_id: str | None = None,
        metadata: Json = None,
        graph_id: str | None = None,
        if_exists: OnConflictBehavior | None = None,
        ttl: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Thread:
        """Create a thread.

        Args:
            thread_id: ID for the thread. The server generates one if omitted.
            metadata: Metadata stored with the thread.
            graph_id: Graph the thread belongs to, stored in its metadata.
            if_exists: What to do when `thread_id` is already taken.
            ttl: Minutes after which the server deletes the thread.
            headers: Extra request headers.
        """
        payload: dict[str, Any] = {}
        if thread_id:
            payload["thread_id"] = thread_id
        if graph_id:
            metadata = {**(metadata or {}), "graph_id": graph_id}
        if metadata:
            payload["metadata"] = metadata
        if if_exists:
            payload["if_exists"] = if_exists
        if ttl is not None:
            payload["ttl"] = {"ttl": ttl, "strategy": "delete"}
        return await self.http.post("/threads", json=payload, headers=headers)

    async def get(
        self, thread_id: str, *, headers: Mapping[str, str] | None = None
    ) -> Thread:
        return await self.http.get(f"/threads/{thread_id}", headers=headers)

    async def delete(
        self, thread_id: str, *, headers: Mapping[str, str] | None = None
    ) -> None:
        await self.http.delete(f"/threads/{thread_id}", headers=headers)

    async def join_stream(
        self,
        thread_id: str,
        *,
        stream_mode: ThreadStreamMode | Sequence[ThreadStreamMode] = "run_modes",
        last_event_id: str | None = None,
        headers: Mapping[str, str] | None = None,
        params: QueryParamTypes | None = None,
        mode: FrameMode = "frame",
        buffer_size: int = 1,
    ) -> EventStream:
        """Follow everything that happens on a thread, across runs.

        With `last_event_id` the server resumes right after that event.
        """
        query: dict[str, Any] = {"stream_mode": stream_mode}
        if params:
            query.update(params)
        return await self.http.stream(
            f"/threads/{thread_id}/stream",
            "GET",
            params=query,
            headers=_resume_headers(last_event_id, headers),
            mode=mode,
            buffer_size=buffer_size,
        )
