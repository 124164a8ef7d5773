"""Decorators for MCP tool handlers.

Usage:
    @mcp.tool()
    @handle_capture_error
    async def handler(...) -> str:
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec

from netcapture.models import CaptureError

logger = logging.getLogger(__name__)

P = ParamSpec("P")


def handle_capture_error(
    func: Callable[P, Awaitable[str]],
) -> Callable[P, Awaitable[str]]:
    """Decorator to catch and format CaptureError exceptions.

    Wraps the function in a try-except block. If CaptureError is raised,
    returns a formatted error message. Other exceptions are propagated.

    Args:
        func: The async function to wrap.

    Returns:
        Wrapped function that catches CaptureError exceptions.
    """

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> str:
        try:
            return await func(*args, **kwargs)
        except CaptureError as e:
            logger.error(
                "CaptureError in %s: code=%s, message=%s",
                func.__name__,
                e.code.value,
                e.message,
                exc_info=True,
            )
            return f"Error [{e.code.value}]: {e.message}"

    return wrapper
