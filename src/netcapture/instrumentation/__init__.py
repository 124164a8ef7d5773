"""Instrumentation-based capture for pages without protocol access.

Hooks the page's fetch and XMLHttpRequest primitives and polls the
captured responses out of the page.

Usage:
    receiver = await start_polling_stream(page, EventStreamConfig(url_substring_filter="/api/"))
"""

from netcapture.instrumentation.poller import (
    drain_captured,
    install_instrumentation,
    is_instrumented,
    run_poller,
    start_polling_stream,
)

__all__ = [
    "drain_captured",
    "install_instrumentation",
    "is_instrumented",
    "run_poller",
    "start_polling_stream",
]
