from langgraph_client._async import (
    EventStream,
    HttpClient,
    LangGraphClient,
    RunsClient,
    ThreadsClient,
    get_client,
)
from langgraph_client.schema import StreamEvent

__version__ = "0.1.0"

SKIP_AUTO_LOAD = None

__all__ = [
    "SKIP_AUTO_LOAD",
    "EventStream",
    "HttpClient",
    "LangGraphClient",
    "RunsClient",
    "StreamEvent",
    "ThreadsClient",
    "get_client",
]
