"""Capture MCP tools.

Lets an agent open a page, capture its filtered network responses and
consume them one at a time.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Annotated

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from pydantic import ValidationError

from netcapture.config import config_from_env
from netcapture.decorators import handle_capture_error
from netcapture.models import CaptureStrategy, Event, WaitSignal
from netcapture.session import CaptureSessionManager

if TYPE_CHECKING:
    from fastmcp import FastMCP

NO_SESSION_MESSAGE = "Error: No active capture session. Start one with capture_start."


def format_event(event: Event) -> str:
    """Render an event as JSON for tool output."""
    return json.dumps(event.model_dump(), ensure_ascii=False, indent=2)


def register_capture_tools(mcp: FastMCP) -> None:
    """Register capture MCP tools with the server.

    Args:
        mcp: FastMCP server instance to register tools with
    """

    @mcp.tool()
    @handle_capture_error
    async def capture_start(
        url: Annotated[str | None, "URL to open once capture is running"] = None,
        url_filter: Annotated[str | None, "Capture only URLs containing this substring"] = None,
        content_type_filter: Annotated[str | None, "Capture only Content-Types containing this substring"] = None,
        strategy: Annotated[str, "Capture strategy: 'cdp' (DevTools events) or 'poll' (page hooks)"] = "cdp",
        poll_interval_ms: Annotated[int | None, "Polling cadence for the 'poll' strategy"] = None,
    ) -> str:
        """Open a browser page and start capturing its network responses.

        Only one capture session can be active; an active session is reused as is.
        """
        try:
            chosen = CaptureStrategy(strategy)
        except ValueError:
            return f"Error: Unknown strategy {strategy!r}. Use 'cdp' or 'poll'."

        try:
            config = config_from_env(
                url_substring_filter=url_filter,
                content_type_substring_filter=content_type_filter,
                poll_interval=poll_interval_ms / 1000 if poll_interval_ms is not None else None,
            )
        except (ValidationError, ValueError) as e:
            return f"Error: Invalid configuration: {e}"
        try:
            session = await CaptureSessionManager.get_or_create(url, config, chosen)
        except PlaywrightTimeoutError:
            return f"Error: Navigation to {url} timed out."
        except PlaywrightError as e:
            return f"Error: Failed to start capture session: {e}"
        return f"Capture session started (strategy: {session.strategy.value})"

    @mcp.tool()
    @handle_capture_error
    async def capture_next_event(
        timeout_ms: Annotated[int, "Maximum time to wait for an event"] = 5000,
    ) -> str:
        """Return the next captured response as JSON.

        Returns a timeout message if nothing arrives in time, and a closed
        message once the page is gone and every event has been read.
        """
        session = await CaptureSessionManager.get_active_session()
        if session is None:
            return NO_SESSION_MESSAGE
        result = await session.next_event(timeout_ms / 1000)
        if isinstance(result, Event):
            return format_event(result)
        if result is WaitSignal.TIMEOUT:
            return f"No event within {timeout_ms} ms"
        return "Capture stream closed"

    @mcp.tool()
    async def capture_navigate(
        url: Annotated[str, "URL to navigate to"],
    ) -> str:
        """Navigate the captured page to a URL."""
        session = await CaptureSessionManager.get_active_session()
        if session is None:
            return NO_SESSION_MESSAGE
        try:
            return await session.navigate(url)
        except PlaywrightTimeoutError:
            return f"Error: Navigation to {url} timed out."
        except (PlaywrightError, RuntimeError) as e:
            return f"Error: {e}"

    @mcp.tool()
    async def capture_status() -> str:
        """Report whether a capture session is active and its counters."""
        return json.dumps(CaptureSessionManager.get_status(), ensure_ascii=False, indent=2)

    @mcp.tool()
    async def capture_stop() -> str:
        """Stop capturing and close the browser. Unread events are discarded."""
        if await CaptureSessionManager.close():
            return "Capture session stopped"
        return "No active capture session"
