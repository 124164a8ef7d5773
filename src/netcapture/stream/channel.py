"""Delivery channel between the capture tasks and the consumer.

An unbounded FIFO with any number of senders and a single receiver.
The stream closes once every sender has been closed and the queue is
drained. Closing the receiver discards unread events and makes further
sends fail.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Final, cast

from netcapture.models import Event, WaitSignal

logger = logging.getLogger(__name__)

# Queued behind the last event once every sender is closed
_CLOSED: Final = object()


class ChannelClosedError(Exception):
    """Raised by EventSender.send after the receiver has been closed."""


class EventChannel:
    """Shared state behind one receiver and its senders."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._open_senders = 0
        self._sealed = False
        self._receiver_closed = False
        self._receiver: EventReceiver | None = None

    def sender(self) -> EventSender:
        """Create a new sender handle.

        Raises:
            RuntimeError: If every earlier sender is already closed
        """
        if self._sealed:
            raise RuntimeError("Channel is closed to new senders")
        self._open_senders += 1
        return EventSender(self)

    def receiver(self) -> EventReceiver:
        """Return the single receiver handle for this channel."""
        if self._receiver is None:
            self._receiver = EventReceiver(self)
        return self._receiver

    def _release_sender(self) -> None:
        self._open_senders -= 1
        if self._open_senders == 0:
            self._sealed = True
            self._queue.put_nowait(_CLOSED)


class EventSender:
    """Producer handle. Each producing task owns one and closes it when done."""

    def __init__(self, channel: EventChannel) -> None:
        self._channel = channel
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: Event) -> None:
        """Queue an event for the consumer.

        Raises:
            ChannelClosedError: If the receiver was closed or this sender released
        """
        if self._closed or self._channel._receiver_closed:
            raise ChannelClosedError("Receiver is closed")
        self._channel._queue.put_nowait(event)

    def close(self) -> None:
        """Release this sender. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._channel._release_sender()


class EventReceiver:
    """Consumer handle for a capture stream.

    Also keeps references to the tasks producing into the channel, so
    they stay alive as long as the receiver does.
    """

    def __init__(self, channel: EventChannel) -> None:
        self._channel = channel
        self._drained = False
        self.tasks: list[asyncio.Task[None]] = []

    @property
    def closed(self) -> bool:
        """True once the receiver was closed or the stream has ended."""
        return self._drained or self._channel._receiver_closed

    def pending(self) -> int:
        """Number of events queued and not yet received."""
        if self.closed:
            return 0
        size = self._channel._queue.qsize()
        return size - 1 if self._channel._sealed and size else size

    def recv_nowait(self) -> Event | None:
        """Take the next queued event without waiting.

        Returns:
            The event, or None if the stream has ended

        Raises:
            asyncio.QueueEmpty: If the stream is open but nothing is queued
        """
        if self.closed:
            return None
        return self._unwrap(self._channel._queue.get_nowait())

    async def recv(self) -> Event | None:
        """Wait for the next event.

        Returns:
            The event, or None once every sender is closed and the queue drained
        """
        if self.closed:
            return None
        return self._unwrap(await self._channel._queue.get())

    def close(self) -> None:
        """Stop receiving. Unread events are discarded and senders start failing."""
        if self._channel._receiver_closed:
            return
        self._channel._receiver_closed = True
        queue = self._channel._queue
        while not queue.empty():
            queue.get_nowait()
        queue.put_nowait(_CLOSED)
        logger.debug("Event receiver closed")

    def _unwrap(self, item: object) -> Event | None:
        if item is _CLOSED:
            self._drained = True
            return None
        return cast(Event, item)

    def __aiter__(self) -> AsyncIterator[Event]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Event]:
        while (event := await self.recv()) is not None:
            yield event


async def wait_for_event(receiver: EventReceiver, timeout: float) -> Event | WaitSignal:
    """Receive at most one event, waiting no longer than ``timeout`` seconds.

    An already queued event is returned at once whatever the timeout.
    A timeout consumes nothing, so the caller may simply wait again.

    Args:
        receiver: Receiver of a capture stream
        timeout: Maximum wait in seconds

    Returns:
        The next Event, WaitSignal.STREAM_CLOSED once the stream has ended
        and is drained, or WaitSignal.TIMEOUT
    """
    try:
        event = receiver.recv_nowait()
    except asyncio.QueueEmpty:
        if timeout <= 0:
            return WaitSignal.TIMEOUT
        try:
            event = await asyncio.wait_for(receiver.recv(), timeout=timeout)
        except TimeoutError:
            return WaitSignal.TIMEOUT

    if event is None:
        return WaitSignal.STREAM_CLOSED
    return event
