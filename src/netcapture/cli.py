"""CLI interface for network capture.

Opens a page, captures the responses matching the filters and writes
them as JSON lines.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Annotated, TextIO

import typer
from pydantic import ValidationError

from netcapture.config import config_from_env
from netcapture.models import CaptureError, CaptureStrategy, Event, EventStreamConfig
from netcapture.session import CaptureSession
from netcapture.utils.logging import setup_logging

app = typer.Typer(
    name="netcapture",
    help="Capture filtered network responses from a web page",
)


@app.callback()
def _callback() -> None:
    """Capture filtered network responses from a web page."""


async def run_watch(
    url: str,
    config: EventStreamConfig,
    write: Callable[[str], None],
    strategy: CaptureStrategy = CaptureStrategy.CDP,
    idle_timeout: float = 10.0,
    max_events: int | None = None,
    headless: bool | None = None,
) -> int:
    """Capture events from ``url`` and pass each one to ``write`` as JSON.

    Stops when the stream closes, when no event arrives for
    ``idle_timeout`` seconds, or after ``max_events`` events.

    Returns:
        Number of events written

    Raises:
        SetupError: If capture cannot be started
    """
    session = CaptureSession(config, strategy, headless=headless)
    count = 0
    try:
        await session.start(url)
        while max_events is None or count < max_events:
            result = await session.next_event(idle_timeout)
            if not isinstance(result, Event):
                break
            write(result.model_dump_json())
            count += 1
    finally:
        await session.close()
    return count


def _line_writer(stream: TextIO) -> Callable[[str], None]:
    def write(line: str) -> None:
        stream.write(line + "\n")
        stream.flush()

    return write


@app.command()
def watch(
    url: Annotated[
        str,
        typer.Argument(help="URL to open"),
    ],
    url_filter: Annotated[
        str | None,
        typer.Option(
            "--url-filter",
            "-u",
            help="Capture only URLs containing this substring",
        ),
    ] = None,
    content_type_filter: Annotated[
        str | None,
        typer.Option(
            "--content-type-filter",
            "-c",
            help="Capture only Content-Types containing this substring (e.g., 'json')",
        ),
    ] = None,
    strategy: Annotated[
        CaptureStrategy,
        typer.Option(
            "--strategy",
            "-s",
            help="'cdp' uses DevTools network events, 'poll' injects fetch/XHR hooks",
        ),
    ] = CaptureStrategy.CDP,
    poll_interval_ms: Annotated[
        int | None,
        typer.Option(
            "--poll-interval-ms",
            help="Polling cadence for the 'poll' strategy (default: 300)",
        ),
    ] = None,
    idle_timeout: Annotated[
        float,
        typer.Option(
            "--idle-timeout",
            "-t",
            help="Stop after this many seconds without an event",
        ),
    ] = 10.0,
    max_events: Annotated[
        int | None,
        typer.Option(
            "--max-events",
            "-n",
            help="Stop after this many events",
        ),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Write events to this file instead of stdout (JSON lines)",
        ),
    ] = None,
    headed: Annotated[
        bool,
        typer.Option(
            "--headed",
            help="Show the browser window",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging",
        ),
    ] = False,
) -> None:
    """Open URL and print captured responses as JSON lines.

    Example:
        netcapture watch https://example.com -c json -n 10
    """
    setup_logging(logging.DEBUG if verbose else logging.WARNING)

    try:
        config = config_from_env(
            url_substring_filter=url_filter,
            content_type_substring_filter=content_type_filter,
            poll_interval=poll_interval_ms / 1000 if poll_interval_ms is not None else None,
        )
    except (ValidationError, ValueError) as e:
        typer.echo(f"❌ Invalid configuration: {e}", err=True)
        raise typer.Exit(1) from e

    handle = output.open("w", encoding="utf-8") if output else None
    try:
        count = asyncio.run(
            run_watch(
                url,
                config,
                _line_writer(handle or sys.stdout),
                strategy=strategy,
                idle_timeout=idle_timeout,
                max_events=max_events,
                headless=False if headed else None,
            )
        )
    except CaptureError as e:
        typer.echo(f"❌ Error [{e.code.value}]: {e.message}", err=True)
        raise typer.Exit(1) from e
    except KeyboardInterrupt:
        typer.echo("\n⚠️  Capture interrupted", err=True)
        raise typer.Exit(0) from None
    finally:
        if handle:
            handle.close()

    typer.echo(f"✅ Captured {count} event(s)", err=True)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
