"""Event sources feeding the correlation engine.

Defines the EventSource contract consumed by the listeners and its
Chrome DevTools Protocol implementation on top of a Playwright page.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any, Final, Generic, Protocol, TypeVar

from playwright.async_api import Error as PlaywrightError
from pydantic import BaseModel, Field, ValidationError

from netcapture.models import BodyFetchError, SetupError

if TYPE_CHECKING:
    from playwright.async_api import CDPSession, Page

logger = logging.getLogger(__name__)

T = TypeVar("T")

_END: Final = object()


class EventSourceError(Exception):
    """The source stopped producing events (page closed, session detached)."""


class ResponseMetadata(BaseModel):
    """Response headers became available for a request.

    Attributes:
        request_id: Identifier shared with the matching LoadingFinished
        url: Response URL
        status: HTTP status code
        headers: Response headers as reported by the browser
    """

    request_id: str
    url: str
    status: int | None = Field(default=None, ge=0, le=65535)
    headers: dict[str, Any] = {}


class LoadingFinished(BaseModel):
    """A request finished loading; its body can now be fetched."""

    request_id: str


class ResponseBody(BaseModel):
    """Body returned by the source for one request.

    Attributes:
        body: Body text, base64 when ``base64_encoded`` is set
        base64_encoded: Whether ``body`` is base64 of the raw bytes
    """

    body: str
    base64_encoded: bool = False


class EventSource(Protocol):
    """Provider of network lifecycle events and on-demand bodies."""

    async def enable(self) -> None:
        """Start tracking. Idempotent; raises SetupError on failure."""
        ...

    def response_metadata(self) -> AsyncIterator[ResponseMetadata]:
        """Iterate response-metadata events until the source ends."""
        ...

    def loading_finished(self) -> AsyncIterator[LoadingFinished]:
        """Iterate loading-finished events until the source ends."""
        ...

    async def fetch_body(self, request_id: str) -> ResponseBody:
        """Retrieve a response body; raises BodyFetchError on failure."""
        ...

    async def close(self) -> None:
        """Stop producing events."""
        ...


class EventFeed(Generic[T]):
    """Buffered single-consumer feed filled from protocol callbacks."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False
        self._subscribed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, item: T) -> None:
        """Buffer an item. Items pushed after close are ignored."""
        if not self._closed:
            self._queue.put_nowait(item)

    def close(self) -> None:
        """End the feed once buffered items are consumed."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_END)

    def __aiter__(self) -> AsyncIterator[T]:
        if self._subscribed:
            raise EventSourceError(f"Feed {self.name} already has a subscriber")
        self._subscribed = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            yield item  # type: ignore[misc]


class CDPEventSource:
    """EventSource backed by a DevTools Protocol session on a Playwright page.

    Uses the Network domain: ``Network.responseReceived`` for metadata,
    ``Network.loadingFinished`` for completion and ``Network.getResponseBody``
    for bodies. Both feeds end when the page closes or ``close`` is called.
    """

    def __init__(self, page: Page) -> None:
        """Initialize the source.

        Args:
            page: Playwright page to observe (Chromium only)
        """
        self._page = page
        self._session: CDPSession | None = None
        self._metadata: EventFeed[ResponseMetadata] = EventFeed("Network.responseReceived")
        self._finished: EventFeed[LoadingFinished] = EventFeed("Network.loadingFinished")

    @property
    def enabled(self) -> bool:
        return self._session is not None

    async def enable(self) -> None:
        """Open a CDP session and enable the Network domain.

        Raises:
            SetupError: If the session cannot be created or Network.enable fails
        """
        if self._session is not None:
            return

        try:
            session = await self._page.context.new_cdp_session(self._page)
        except PlaywrightError as e:
            raise SetupError("new_cdp_session", e) from e

        try:
            await session.send("Network.enable")
        except PlaywrightError as e:
            raise SetupError("Network.enable", e) from e

        session.on("Network.responseReceived", self._on_response_received)
        session.on("Network.loadingFinished", self._on_loading_finished)
        self._page.on("close", self._on_page_close)
        self._session = session
        logger.debug("Network tracking enabled")

    def response_metadata(self) -> AsyncIterator[ResponseMetadata]:
        return aiter(self._metadata)

    def loading_finished(self) -> AsyncIterator[LoadingFinished]:
        return aiter(self._finished)

    async def fetch_body(self, request_id: str) -> ResponseBody:
        """Fetch a body with Network.getResponseBody.

        Raises:
            BodyFetchError: If tracking is not enabled or the protocol call fails
        """
        if self._session is None:
            raise BodyFetchError(request_id, "network tracking is not enabled")

        try:
            result = await self._session.send("Network.getResponseBody", {"requestId": request_id})
        except PlaywrightError as e:
            raise BodyFetchError(request_id, e) from e

        try:
            return ResponseBody(
                body=result.get("body", ""),
                base64_encoded=bool(result.get("base64Encoded", False)),
            )
        except ValidationError as e:
            raise BodyFetchError(request_id, e) from e

    async def close(self) -> None:
        """Detach the CDP session and end both feeds."""
        self._end_feeds()
        session, self._session = self._session, None
        if session is not None:
            try:
                await session.detach()
            except PlaywrightError as e:
                logger.debug(f"CDP session detach failed: {e}")

    def _on_response_received(self, params: dict[str, Any]) -> None:
        response = params.get("response", {})
        try:
            metadata = ResponseMetadata(
                request_id=params["requestId"],
                url=response.get("url", ""),
                status=int(response["status"]) if response.get("status") is not None else None,
                headers=response.get("headers") or {},
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"Ignoring malformed responseReceived event: {e}")
            return
        self._metadata.push(metadata)

    def _on_loading_finished(self, params: dict[str, Any]) -> None:
        request_id = params.get("requestId")
        if isinstance(request_id, str):
            self._finished.push(LoadingFinished(request_id=request_id))

    def _on_page_close(self, *_: object) -> None:
        logger.debug("Page closed; ending network feeds")
        self._end_feeds()

    def _end_feeds(self) -> None:
        self._metadata.close()
        self._finished.close()
