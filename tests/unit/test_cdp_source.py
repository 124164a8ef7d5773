"""Unit tests for the DevTools Protocol event source."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from playwright.async_api import Error as PlaywrightError

from netcapture.models import BodyFetchError, SetupError
from netcapture.stream.source import CDPEventSource, EventFeed, EventSourceError, LoadingFinished


def _response_received(request_id: str, url: str = "https://x/api", status: object = 200, headers=None) -> dict:
    return {
        "requestId": request_id,
        "response": {"url": url, "status": status, "headers": headers or {"content-type": "application/json"}},
    }


class TestEventFeed:
    """Tests for EventFeed."""

    @pytest.mark.asyncio
    async def test_yields_buffered_items_until_closed(self) -> None:
        feed: EventFeed[int] = EventFeed("numbers")
        feed.push(1)
        feed.push(2)
        feed.close()
        feed.push(3)

        assert [item async for item in feed] == [1, 2]

    def test_single_subscriber(self) -> None:
        feed: EventFeed[int] = EventFeed("numbers")
        aiter(feed)

        with pytest.raises(EventSourceError):
            aiter(feed)


class TestCDPEventSourceEnable:
    """Tests for CDPEventSource.enable."""

    @pytest.mark.asyncio
    async def test_registers_network_handlers(self, mock_page, mock_cdp_session) -> None:
        source = CDPEventSource(mock_page)

        await source.enable()

        assert source.enabled is True
        mock_cdp_session.send.assert_awaited_once_with("Network.enable")
        assert set(mock_cdp_session.handlers) == {"Network.responseReceived", "Network.loadingFinished"}
        assert "close" in mock_page.handlers

    @pytest.mark.asyncio
    async def test_is_idempotent(self, mock_page) -> None:
        source = CDPEventSource(mock_page)

        await source.enable()
        await source.enable()

        mock_page.context.new_cdp_session.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_session_creation_failure(self, mock_page) -> None:
        mock_page.context.new_cdp_session = AsyncMock(side_effect=PlaywrightError("CDP not supported"))
        source = CDPEventSource(mock_page)

        with pytest.raises(SetupError) as exc_info:
            await source.enable()

        assert exc_info.value.stage == "new_cdp_session"
        assert source.enabled is False

    @pytest.mark.asyncio
    async def test_network_enable_failure(self, mock_page, mock_cdp_session) -> None:
        mock_cdp_session.send = AsyncMock(side_effect=PlaywrightError("Target closed"))
        source = CDPEventSource(mock_page)

        with pytest.raises(SetupError) as exc_info:
            await source.enable()

        assert exc_info.value.stage == "Network.enable"
        assert "Target closed" in exc_info.value.message


class TestCDPEventSourceFeeds:
    """Tests for the metadata and completion feeds."""

    @pytest.mark.asyncio
    async def test_response_received_becomes_metadata(self, mock_page, mock_cdp_session) -> None:
        source = CDPEventSource(mock_page)
        await source.enable()

        mock_cdp_session.handlers["Network.responseReceived"](_response_received("1", status=201))
        await source.close()

        items = [item async for item in source.response_metadata()]
        assert len(items) == 1
        assert items[0].request_id == "1"
        assert items[0].url == "https://x/api"
        assert items[0].status == 201
        assert items[0].headers == {"content-type": "application/json"}

    @pytest.mark.asyncio
    async def test_malformed_events_are_dropped(self, mock_page, mock_cdp_session) -> None:
        source = CDPEventSource(mock_page)
        await source.enable()
        on_response = mock_cdp_session.handlers["Network.responseReceived"]

        on_response({"response": {"url": "https://x/"}})
        on_response(_response_received("2", status=70000))
        on_response(_response_received("3", status="abc"))
        mock_cdp_session.handlers["Network.loadingFinished"]({})
        await source.close()

        assert [item async for item in source.response_metadata()] == []
        assert [item async for item in source.loading_finished()] == []

    @pytest.mark.asyncio
    async def test_loading_finished_feed(self, mock_page, mock_cdp_session) -> None:
        source = CDPEventSource(mock_page)
        await source.enable()

        mock_cdp_session.handlers["Network.loadingFinished"]({"requestId": "7", "encodedDataLength": 10})
        await source.close()

        assert [item async for item in source.loading_finished()] == [LoadingFinished(request_id="7")]

    @pytest.mark.asyncio
    async def test_page_close_ends_feeds(self, mock_page, mock_cdp_session) -> None:
        source = CDPEventSource(mock_page)
        await source.enable()

        mock_cdp_session.handlers["Network.loadingFinished"]({"requestId": "1"})
        mock_page.handlers["close"](mock_page)
        mock_cdp_session.handlers["Network.loadingFinished"]({"requestId": "2"})

        assert [item.request_id async for item in source.loading_finished()] == ["1"]

    @pytest.mark.asyncio
    async def test_close_detaches_session(self, mock_page, mock_cdp_session) -> None:
        source = CDPEventSource(mock_page)
        await source.enable()

        await source.close()
        await source.close()

        mock_cdp_session.detach.assert_awaited_once()
        assert source.enabled is False


class TestCDPEventSourceFetchBody:
    """Tests for CDPEventSource.fetch_body."""

    @pytest.mark.asyncio
    async def test_fetches_base64_body(self, mock_page, mock_cdp_session) -> None:
        source = CDPEventSource(mock_page)
        await source.enable()
        mock_cdp_session.send = AsyncMock(return_value={"body": "SGVsbG8=", "base64Encoded": True})

        body = await source.fetch_body("5")

        mock_cdp_session.send.assert_awaited_once_with("Network.getResponseBody", {"requestId": "5"})
        assert body.body == "SGVsbG8="
        assert body.base64_encoded is True

    @pytest.mark.asyncio
    async def test_fetches_text_body(self, mock_page, mock_cdp_session) -> None:
        source = CDPEventSource(mock_page)
        await source.enable()
        mock_cdp_session.send = AsyncMock(return_value={"body": '{"a":1}', "base64Encoded": False})

        body = await source.fetch_body("5")

        assert body.body == '{"a":1}'
        assert body.base64_encoded is False

    @pytest.mark.asyncio
    async def test_protocol_error(self, mock_page, mock_cdp_session) -> None:
        source = CDPEventSource(mock_page)
        await source.enable()
        mock_cdp_session.send = AsyncMock(side_effect=PlaywrightError("No resource with given identifier found"))

        with pytest.raises(BodyFetchError) as exc_info:
            await source.fetch_body("5")

        assert exc_info.value.request_id == "5"

    @pytest.mark.asyncio
    async def test_requires_enable(self, mock_page) -> None:
        source = CDPEventSource(mock_page)

        with pytest.raises(BodyFetchError):
            await source.fetch_body("5")
