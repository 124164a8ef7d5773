"""Pytest configuration and shared fixtures for netcapture tests.

Provides an in-memory EventSource and factories for source events.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterable
from unittest.mock import AsyncMock, MagicMock

import pytest

from netcapture.models import BodyFetchError, EventStreamConfig
from netcapture.stream.source import EventSourceError, LoadingFinished, ResponseBody, ResponseMetadata


class FakeEventSource:
    """In-memory EventSource.

    Replays preset metadata events, then (once they are all consumed)
    the preset loading-finished events, mirroring the browser's
    metadata-before-completion ordering.

    Attributes:
        bodies: request id -> body, or an exception to raise from fetch_body
        fetch_calls: request ids passed to fetch_body, in order
        enable_calls: number of enable() calls
    """

    def __init__(
        self,
        metadata: Iterable[ResponseMetadata] = (),
        finished: Iterable[LoadingFinished] = (),
        bodies: dict[str, ResponseBody | Exception] | None = None,
        enable_error: Exception | None = None,
        feed_error: bool = False,
    ) -> None:
        self.metadata = list(metadata)
        self.finished = list(finished)
        self.bodies = bodies or {}
        self.fetch_calls: list[str] = []
        self.enable_calls = 0
        self.closed = False
        self._enable_error = enable_error
        self._feed_error = feed_error
        self._metadata_done = asyncio.Event()

    async def enable(self) -> None:
        self.enable_calls += 1
        if self._enable_error is not None:
            raise self._enable_error

    async def response_metadata(self) -> AsyncIterator[ResponseMetadata]:
        try:
            for item in self.metadata:
                yield item
            if self._feed_error:
                raise EventSourceError("page closed")
        finally:
            self._metadata_done.set()

    async def loading_finished(self) -> AsyncIterator[LoadingFinished]:
        await self._metadata_done.wait()
        for item in self.finished:
            yield item
        if self._feed_error:
            raise EventSourceError("page closed")

    async def fetch_body(self, request_id: str) -> ResponseBody:
        self.fetch_calls.append(request_id)
        body = self.bodies.get(request_id)
        if body is None:
            raise BodyFetchError(request_id, "No resource with given identifier found")
        if isinstance(body, Exception):
            raise body
        return body

    async def close(self) -> None:
        self.closed = True


# ============================================================================
# Event Source Fixtures
# ============================================================================


@pytest.fixture
def fake_source() -> type[FakeEventSource]:
    """The in-memory EventSource class, to be built per test."""
    return FakeEventSource


# ============================================================================
# Source Event Factories
# ============================================================================


@pytest.fixture
def make_metadata() -> Callable[..., ResponseMetadata]:
    """Factory for response-metadata events."""

    def factory(
        request_id: str,
        url: str = "https://example.com/api/v1/items",
        status: int | None = 200,
        content_type: str | None = "application/json",
        headers: dict[str, object] | None = None,
    ) -> ResponseMetadata:
        if headers is None:
            headers = {"content-type": content_type} if content_type is not None else {}
        return ResponseMetadata(request_id=request_id, url=url, status=status, headers=headers)

    return factory


@pytest.fixture
def make_finished() -> Callable[[str], LoadingFinished]:
    """Factory for loading-finished events."""
    return lambda request_id: LoadingFinished(request_id=request_id)


@pytest.fixture
def text_body() -> Callable[[str], ResponseBody]:
    """Factory for plain-text bodies."""
    return lambda body: ResponseBody(body=body, base64_encoded=False)


@pytest.fixture
def json_config() -> EventStreamConfig:
    """Configuration capturing JSON responses only."""
    return EventStreamConfig(content_type_substring_filter="application/json")


# ============================================================================
# Playwright Fixtures
# ============================================================================


@pytest.fixture
def mock_cdp_session() -> MagicMock:
    """Mock Playwright CDPSession recording its event handlers.

    Registered handlers are available in ``session.handlers``.
    """
    session = MagicMock()
    session.handlers = {}
    session.send = AsyncMock(return_value={})
    session.detach = AsyncMock()
    session.on = MagicMock(side_effect=lambda name, handler: session.handlers.__setitem__(name, handler))
    return session


@pytest.fixture
def mock_page(mock_cdp_session: MagicMock) -> MagicMock:
    """Mock Playwright page whose context hands out ``mock_cdp_session``.

    Page event handlers are available in ``page.handlers``.
    """
    page = MagicMock()
    page.handlers = {}
    page.on = MagicMock(side_effect=lambda name, handler: page.handlers.__setitem__(name, handler))
    page.context.new_cdp_session = AsyncMock(return_value=mock_cdp_session)
    page.evaluate = AsyncMock()
    page.goto = AsyncMock()
    page.title = AsyncMock(return_value="Example")
    page.is_closed = MagicMock(return_value=False)
    return page
