"""Capture session handling for the command line and MCP surfaces.

A CaptureSession couples a browser page with one running capture stream.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, ClassVar

from netcapture.browser.manager import BrowserSession
from netcapture.instrumentation import start_polling_stream
from netcapture.models import CaptureStrategy, Event, EventStreamConfig, WaitSignal
from netcapture.stream import CDPEventSource, EventReceiver, start_event_stream, wait_for_event

logger = logging.getLogger(__name__)


class CaptureSession:
    """A browser page with a capture stream attached.

    Attributes:
        strategy: Capture strategy in use
        config: Stream configuration
        browser: Underlying browser session
        receiver: Receiver of the running stream (None until started)
        events_delivered: Number of events handed to the caller
    """

    def __init__(
        self,
        config: EventStreamConfig,
        strategy: CaptureStrategy = CaptureStrategy.CDP,
        headless: bool | None = None,
    ) -> None:
        self.strategy = strategy
        self.config = config
        self.browser = BrowserSession(headless=headless)
        self.receiver: EventReceiver | None = None
        self.events_delivered = 0
        self._source: CDPEventSource | None = None

    async def start(self, url: str | None = None) -> None:
        """Open the browser, start capturing and navigate to ``url``.

        The protocol strategy starts before the first navigation, so the
        initial document's requests are captured. The polling strategy
        needs a document to instrument and starts after it.

        Raises:
            SetupError: If the capture stream cannot be started
        """
        page = await self.browser.start()
        try:
            if self.strategy is CaptureStrategy.CDP:
                self._source = CDPEventSource(page)
                self.receiver = await start_event_stream(self._source, self.config)
                if url:
                    await page.goto(url, wait_until="domcontentloaded")
            else:
                if url:
                    await page.goto(url, wait_until="domcontentloaded")
                self.receiver = await start_polling_stream(page, self.config)
        except BaseException:
            await self.close()
            raise

    async def navigate(self, url: str) -> str:
        """Navigate the captured page.

        Returns:
            Navigation result with page title

        Raises:
            RuntimeError: If the session is not started
        """
        page = self.browser.page
        await page.goto(url, wait_until="domcontentloaded")
        title = await page.title()
        message = f"Navigated to {url}, title: {title}"
        if self.strategy is CaptureStrategy.POLL:
            message += " (capture hooks are not reinstalled after navigation)"
        return message

    async def next_event(self, timeout: float) -> Event | WaitSignal:
        """Wait up to ``timeout`` seconds for the next captured event.

        Raises:
            RuntimeError: If the session is not started
        """
        if self.receiver is None:
            raise RuntimeError("Session not started")
        result = await wait_for_event(self.receiver, timeout)
        if isinstance(result, Event):
            self.events_delivered += 1
        return result

    async def close(self) -> None:
        """Stop capturing and close the browser."""
        receiver, self.receiver = self.receiver, None
        if receiver is not None:
            receiver.close()
        source, self._source = self._source, None
        if source is not None:
            await source.close()
        if receiver is not None:
            for task in receiver.tasks:
                task.cancel()
            for task in receiver.tasks:
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            logger.info(f"Capture stream stopped ({self.events_delivered} event(s) delivered)")
        await self.browser.close()

    def status(self) -> dict[str, Any]:
        """Describe the session for status reporting."""
        return {
            "strategy": self.strategy.value,
            "url_filter": self.config.url_substring_filter,
            "content_type_filter": self.config.content_type_substring_filter,
            "browser_open": self.browser.is_open,
            "stream_open": self.receiver is not None and not self.receiver.closed,
            "queued_events": self.receiver.pending() if self.receiver is not None else 0,
            "events_delivered": self.events_delivered,
        }


class CaptureSessionManager:
    """Singleton manager sharing one CaptureSession across MCP tools.

    Ensures only one capture session is active at a time.
    """

    _instance: ClassVar[CaptureSession | None] = None
    _lock: ClassVar[asyncio.Lock | None] = None

    @classmethod
    def _get_lock(cls) -> asyncio.Lock:
        if cls._lock is None:
            cls._lock = asyncio.Lock()
        return cls._lock

    @classmethod
    async def get_or_create(
        cls,
        url: str | None,
        config: EventStreamConfig,
        strategy: CaptureStrategy = CaptureStrategy.CDP,
    ) -> CaptureSession:
        """Get the active session or start a new one.

        An active session is returned as is, whatever the arguments.

        Raises:
            SetupError: If a new session's stream cannot be started
        """
        async with cls._get_lock():
            if cls._instance is None:
                session = CaptureSession(config, strategy)
                await session.start(url)
                cls._instance = session
            return cls._instance

    @classmethod
    async def get_active_session(cls) -> CaptureSession | None:
        """Return the active session, if any."""
        async with cls._get_lock():
            return cls._instance

    @classmethod
    async def close(cls) -> bool:
        """Close the active session if one exists.

        Returns:
            True if a session was closed
        """
        async with cls._get_lock():
            if cls._instance is None:
                return False
            session, cls._instance = cls._instance, None
            await session.close()
            return True

    @classmethod
    def get_status(cls) -> dict[str, Any]:
        """Get current session status.

        Returns:
            Status dict with active flag and session details
        """
        if cls._instance is None:
            return {"active": False}
        return {"active": True, **cls._instance.status()}
