"""Starting capture streams over an event source."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from netcapture.models import EventStreamConfig
from netcapture.stream.channel import EventChannel, EventReceiver
from netcapture.stream.correlation import CorrelationTable
from netcapture.stream.listeners import run_completion_listener, run_metadata_listener
from netcapture.stream.source import CDPEventSource, EventSource

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


async def start_event_stream(
    source: EventSource,
    config: EventStreamConfig | None = None,
) -> EventReceiver:
    """Enable tracking on a source and start both listener tasks.

    The stream ends (the receiver reports STREAM_CLOSED once drained)
    when the source stops producing events. Closing the receiver stops
    the completion listener at its next delivery; the metadata listener
    keeps running until the source itself ends.

    Args:
        source: Event source to capture from
        config: Filters and options (defaults to capturing everything)

    Returns:
        Receiver for the captured events

    Raises:
        SetupError: If tracking cannot be enabled
    """
    config = config or EventStreamConfig()
    await source.enable()

    channel = EventChannel()
    receiver = channel.receiver()
    table = CorrelationTable(ttl=config.pending_ttl)

    receiver.tasks.extend(
        [
            asyncio.create_task(
                run_metadata_listener(source, config, table),
                name="netcapture-metadata-listener",
            ),
            asyncio.create_task(
                run_completion_listener(source, table, channel.sender()),
                name="netcapture-completion-listener",
            ),
        ]
    )

    logger.info(
        f"Capture stream started (url filter: {config.url_substring_filter}, "
        f"content-type filter: {config.content_type_substring_filter})"
    )
    return receiver


async def start_page_event_stream(
    page: Page,
    config: EventStreamConfig | None = None,
) -> EventReceiver:
    """Start a stream over a Playwright page through the DevTools Protocol.

    Args:
        page: Chromium page to capture from
        config: Filters and options

    Returns:
        Receiver for the captured events

    Raises:
        SetupError: If the CDP session or Network.enable fails
    """
    return await start_event_stream(CDPEventSource(page), config)
