"""Listener tasks correlating response metadata with completed bodies.

The metadata listener records responses that pass the filters; the
completion listener takes each record back out when its request finishes
loading, fetches the body, and delivers the resulting Event.
"""

from __future__ import annotations

import base64
import binascii
import logging

from netcapture.filters import extract_content_type, should_capture
from netcapture.models import (
    BodyDecodeError,
    BodyFetchError,
    CorrelationRecord,
    Event,
    EventStreamConfig,
)
from netcapture.stream.channel import ChannelClosedError, EventSender
from netcapture.stream.correlation import CorrelationTable
from netcapture.stream.source import EventSource, EventSourceError, ResponseBody

logger = logging.getLogger(__name__)


def decode_body(request_id: str, body: ResponseBody) -> str:
    """Turn a fetched body into text.

    Base64 bodies are decoded to bytes and read as UTF-8, replacing
    invalid sequences. Plain bodies are returned verbatim.

    Args:
        request_id: Request the body belongs to (for error context)
        body: Body as returned by the source

    Returns:
        Body text

    Raises:
        BodyDecodeError: If a base64-flagged body is not valid base64
    """
    if not body.base64_encoded:
        return body.body

    try:
        raw = base64.b64decode(body.body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BodyDecodeError(request_id, e) from e
    return raw.decode("utf-8", errors="replace")


async def run_metadata_listener(
    source: EventSource,
    config: EventStreamConfig,
    table: CorrelationTable,
) -> None:
    """Record filtered response metadata until the source ends.

    Args:
        source: Event source to subscribe to
        config: Stream filters
        table: Table shared with the completion listener
    """
    try:
        async for metadata in source.response_metadata():
            content_type = extract_content_type(metadata.headers)
            if not should_capture(config, metadata.url, content_type):
                continue

            record = CorrelationRecord(
                url=metadata.url,
                content_type=content_type,
                status=metadata.status,
            )
            await table.insert(metadata.request_id, record)
    except EventSourceError as e:
        logger.debug(f"Metadata listener stopped: {e}")
        return

    logger.debug("Metadata listener finished")


async def run_completion_listener(
    source: EventSource,
    table: CorrelationTable,
    sender: EventSender,
) -> None:
    """Deliver one Event per tracked request as it finishes loading.

    The sender is closed when this task ends, whatever the reason.

    Args:
        source: Event source to subscribe to
        table: Table shared with the metadata listener
        sender: Channel handle the events are pushed to
    """
    try:
        async for finished in source.loading_finished():
            request_id = finished.request_id
            record = await table.remove(request_id)
            if record is None:
                continue

            try:
                body = decode_body(request_id, await source.fetch_body(request_id))
            except BodyFetchError as e:
                logger.debug(f"Skipping {record.url}: {e.message}")
                continue
            except BodyDecodeError as e:
                logger.warning(e.message)
                continue

            event = Event(
                url=record.url,
                content_type=record.content_type,
                status=record.status,
                body=body,
            )
            try:
                sender.send(event)
            except ChannelClosedError:
                logger.debug("Receiver dropped; completion listener stopping")
                return
    except EventSourceError as e:
        logger.debug(f"Completion listener stopped: {e}")
    finally:
        sender.close()
