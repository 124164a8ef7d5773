"""Tests for starting capture streams."""

from __future__ import annotations

import asyncio

import pytest

from netcapture.models import Event, EventStreamConfig, SetupError, WaitSignal
from netcapture.stream import start_event_stream, start_page_event_stream, wait_for_event


async def _collect(receiver, timeout: float = 1.0) -> list[Event]:
    events = []
    while isinstance(result := await wait_for_event(receiver, timeout), Event):
        events.append(result)
    assert result is WaitSignal.STREAM_CLOSED
    return events


class TestStartEventStream:
    """Tests for start_event_stream."""

    @pytest.mark.asyncio
    async def test_delivers_filtered_events(self, fake_source, make_metadata, make_finished, text_body) -> None:
        source = fake_source(
            metadata=[
                make_metadata("1", url="https://x/api/v1/items"),
                make_metadata("2", url="https://x/api/v2/items"),
                make_metadata("3", url="https://x/api/v1/users"),
            ],
            finished=[make_finished("3"), make_finished("2"), make_finished("1")],
            bodies={"1": text_body("items"), "2": text_body("v2"), "3": text_body("users")},
        )

        receiver = await start_event_stream(source, EventStreamConfig(url_substring_filter="api/v1"))
        events = await _collect(receiver)

        assert [event.body for event in events] == ["users", "items"]
        assert source.enable_calls == 1
        assert "2" not in source.fetch_calls

    @pytest.mark.asyncio
    async def test_default_config_captures_everything(self, fake_source, make_metadata, make_finished, text_body) -> None:
        source = fake_source(
            metadata=[make_metadata("1", content_type=None)],
            finished=[make_finished("1")],
            bodies={"1": text_body("raw")},
        )

        receiver = await start_event_stream(source)

        assert await _collect(receiver) == [Event(url="https://example.com/api/v1/items", status=200, body="raw")]

    @pytest.mark.asyncio
    async def test_keeps_listener_tasks_on_receiver(self, fake_source) -> None:
        receiver = await start_event_stream(fake_source())

        assert len(receiver.tasks) == 2
        await _collect(receiver)
        await asyncio.gather(*receiver.tasks)
        assert all(task.done() for task in receiver.tasks)

    @pytest.mark.asyncio
    async def test_setup_failure_starts_nothing(self, fake_source) -> None:
        source = fake_source(enable_error=SetupError("Network.enable", "Target closed"))
        before = asyncio.all_tasks()

        with pytest.raises(SetupError) as exc_info:
            await start_event_stream(source)

        assert exc_info.value.stage == "Network.enable"
        assert asyncio.all_tasks() == before

    @pytest.mark.asyncio
    async def test_idle_stream_times_out(self, fake_source) -> None:
        """With no traffic at all, the wait reports TIMEOUT rather than blocking."""
        source = fake_source()

        async def never_ending():
            await asyncio.Event().wait()
            yield

        source.response_metadata = never_ending
        receiver = await start_event_stream(source)

        assert await wait_for_event(receiver, 0.05) is WaitSignal.TIMEOUT

        receiver.close()
        for task in receiver.tasks:
            task.cancel()
        await asyncio.gather(*receiver.tasks, return_exceptions=True)


class TestStartPageEventStream:
    """Tests for start_page_event_stream."""

    @pytest.mark.asyncio
    async def test_enables_network_domain(self, mock_page, mock_cdp_session) -> None:
        receiver = await start_page_event_stream(mock_page, EventStreamConfig())

        mock_page.context.new_cdp_session.assert_awaited_once_with(mock_page)
        mock_cdp_session.send.assert_awaited_once_with("Network.enable")

        mock_page.handlers["close"]()
        assert await wait_for_event(receiver, 1.0) is WaitSignal.STREAM_CLOSED
