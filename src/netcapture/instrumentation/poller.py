"""Instrumentation + polling capture strategy.

Installs the page-side capture hooks, then drains the page's capture
queue at a fixed cadence and delivers the parsed events through the
same channel type as the protocol-based strategy. Unlike that strategy,
any evaluation failure ends the whole stream: the page is presumed gone.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from playwright.async_api import Error as PlaywrightError
from pydantic import TypeAdapter, ValidationError

from netcapture.instrumentation.payload import DRAIN_SCRIPT, INSTALL_SCRIPT, PROBE_SCRIPT
from netcapture.models import Event, EvaluationError, EventStreamConfig, SetupError
from netcapture.stream.channel import ChannelClosedError, EventChannel, EventReceiver, EventSender

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

_events_adapter = TypeAdapter(list[Event])


async def install_instrumentation(page: Page, config: EventStreamConfig) -> bool:
    """Install the capture hooks into the page's current document.

    Installation is idempotent: a page that already carries the hooks
    keeps them, along with the filters it was installed with.

    Args:
        page: Playwright page to instrument
        config: Filters applied inside the page

    Returns:
        True if the hooks were installed by this call, False if already present

    Raises:
        SetupError: If the script cannot be evaluated
    """
    try:
        installed = await page.evaluate(
            INSTALL_SCRIPT,
            {
                "urlFilter": config.url_substring_filter,
                "contentTypeFilter": config.content_type_substring_filter,
            },
        )
    except PlaywrightError as e:
        raise SetupError("install_instrumentation", e) from e

    if not installed:
        logger.debug("Capture hooks already installed; keeping existing filters")
    return bool(installed)


async def is_instrumented(page: Page) -> bool:
    """Check whether the page's current document carries the capture hooks.

    Raises:
        EvaluationError: If the page cannot be evaluated
    """
    try:
        return bool(await page.evaluate(PROBE_SCRIPT))
    except PlaywrightError as e:
        raise EvaluationError("evaluate", e) from e


async def drain_captured(page: Page) -> list[Event]:
    """Take every event queued inside the page.

    Returns an empty list if the current document was never instrumented
    (for example after a navigation).

    Raises:
        EvaluationError: If evaluation fails or the result cannot be parsed
    """
    try:
        raw = await page.evaluate(DRAIN_SCRIPT)
    except PlaywrightError as e:
        raise EvaluationError("evaluate", e) from e

    if not isinstance(raw, str):
        raise EvaluationError("parse", f"expected a JSON string, got {type(raw).__name__}")
    try:
        return _events_adapter.validate_json(raw)
    except ValidationError as e:
        raise EvaluationError("parse", e) from e


async def run_poller(page: Page, config: EventStreamConfig, sender: EventSender) -> None:
    """Drain the page queue every ``config.poll_interval`` seconds.

    Ends on the first evaluation failure or once the receiver is closed.
    The sender is closed when this task ends.

    Args:
        page: Instrumented page
        config: Stream options (poll interval)
        sender: Channel handle the events are pushed to
    """
    try:
        while True:
            for event in await drain_captured(page):
                sender.send(event)
            await asyncio.sleep(config.poll_interval)
    except EvaluationError as e:
        logger.warning(f"Ending polling stream: {e.message}")
    except ChannelClosedError:
        logger.debug("Receiver dropped; poller stopping")
    finally:
        sender.close()


async def start_polling_stream(
    page: Page,
    config: EventStreamConfig | None = None,
) -> EventReceiver:
    """Instrument a page and start polling it for captured responses.

    Hooks are not reinstalled after navigation; events from later
    documents are not captured.

    Args:
        page: Playwright page to capture from (any browser engine)
        config: Filters and poll interval

    Returns:
        Receiver for the captured events

    Raises:
        SetupError: If the hooks cannot be installed
    """
    config = config or EventStreamConfig()
    await install_instrumentation(page, config)

    channel = EventChannel()
    receiver = channel.receiver()
    receiver.tasks.append(
        asyncio.create_task(
            run_poller(page, config, channel.sender()),
            name="netcapture-poller",
        )
    )

    logger.info(f"Polling stream started (interval: {config.poll_interval}s)")
    return receiver
