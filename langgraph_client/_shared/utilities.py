"""Helpers shared by the client and its resource clients."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from typing import Any, cast

import httpx

import langgraph_client
from langgraph_client.schema import RunCreateMetadata

RESERVED_HEADERS = ("x-api-key",)

# Checked in order; the first non-empty value wins.
API_KEY_ENV_VARS = ("LANGGRAPH_API_KEY", "LANGSMITH_API_KEY", "LANGCHAIN_API_KEY")

# Sentinel for "argument not passed", distinct from an explicit `None`.
NOT_PROVIDED = cast(None, object())

_CONTENT_LOCATION_RE = re.compile(
    r"(?:/threads/(?P<thread_id>[^/]+))?/runs/(?P<run_id>[^/?#]+)"
)


def _get_api_key(api_key: str | None = NOT_PROVIDED) -> str | None:
    """Resolve the API key to send.

    A string is used as is and `None` turns the lookup off. When nothing is
    passed, the variables in `API_KEY_ENV_VARS` are tried in order, with
    surrounding whitespace and quotes removed.
    """
    if api_key is not NOT_PROVIDED:
        return api_key
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name, "").strip().strip("\"'")
        if value:
            return value
    return None


def _get_headers(
    api_key: str | None,
    custom_headers: Mapping[str, str] | None,
) -> dict[str, str]:
    custom_headers = dict(custom_headers or {})
    lowered = {name.lower() for name in custom_headers}
    for header in RESERVED_HEADERS:
        if header in lowered:
            raise ValueError(f"Cannot set reserved header '{header}'")

    headers = {"User-Agent": f"langgraph-client-py/{langgraph_client.__version__}"}
    headers.update(custom_headers)
    if key := _get_api_key(api_key):
        headers["x-api-key"] = key
    return headers


def _orjson_default(obj: Any) -> Any:
    """Encode objects orjson does not know: pydantic models and sets."""
    if isinstance(obj, type):
        raise TypeError(
            f"Cannot serialize the class {obj.__name__}; pass an instance instead"
        )
    for method in ("model_dump", "dict"):
        dump = getattr(obj, method, None)
        if callable(dump):
            return dump()
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _get_run_metadata_from_response(
    response: httpx.Response,
) -> RunCreateMetadata | None:
    location = response.headers.get("Content-Location")
    if not location or not (match := _CONTENT_LOCATION_RE.search(location)):
        return None
    return RunCreateMetadata(
        run_id=match["run_id"], thread_id=match["thread_id"] or None
    )


def _provided_vals(d: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


def _resume_headers(
    last_event_id: str | None, headers: Mapping[str, str] | None
) -> dict[str, str]:
    """Headers for rejoining a stream after the event `last_event_id`."""
    resume = {"Last-Event-ID": last_event_id} if last_event_id else {}
    return {**resume, **(headers or {})}
