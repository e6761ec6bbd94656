"""Async client exports."""

from langgraph_client._async.client import LangGraphClient, get_client
from langgraph_client._async.http import HttpClient
from langgraph_client._async.runs import RunsClient
from langgraph_client._async.stream import EventStream
from langgraph_client._async.threads import ThreadsClient

__all__ = [
    "EventStream",
    "HttpClient",
    "LangGraphClient",
    "RunsClient",
    "ThreadsClient",
    "get_client",
]
