"""Network event correlation and delivery.

Links response metadata to response bodies reported by an event source
and delivers the result as a filtered, consumer-paced stream.

Usage:
    receiver = await start_page_event_stream(page, EventStreamConfig(content_type_substring_filter="json"))
    result = await wait_for_event(receiver, timeout=5.0)
"""

from netcapture.stream.channel import (
    ChannelClosedError,
    EventChannel,
    EventReceiver,
    EventSender,
    wait_for_event,
)
from netcapture.stream.core import start_event_stream, start_page_event_stream
from netcapture.stream.correlation import CorrelationTable
from netcapture.stream.source import (
    CDPEventSource,
    EventSource,
    EventSourceError,
    LoadingFinished,
    ResponseBody,
    ResponseMetadata,
)

__all__ = [
    "CDPEventSource",
    "ChannelClosedError",
    "CorrelationTable",
    "EventChannel",
    "EventReceiver",
    "EventSender",
    "EventSource",
    "EventSourceError",
    "LoadingFinished",
    "ResponseBody",
    "ResponseMetadata",
    "start_event_stream",
    "start_page_event_stream",
    "wait_for_event",
]
