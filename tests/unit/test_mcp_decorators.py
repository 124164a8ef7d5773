"""Unit tests for MCP tool handler decorators."""

from __future__ import annotations

import pytest

from netcapture.decorators import handle_capture_error
from netcapture.models import BodyFetchError, SetupError


class TestHandleCaptureErrorDecorator:
    """Tests for the handle_capture_error decorator."""

    @pytest.mark.asyncio
    async def test_passes_through_result(self) -> None:
        @handle_capture_error
        async def handler(value: str) -> str:
            return f"ok: {value}"

        assert await handler("x") == "ok: x"

    @pytest.mark.asyncio
    async def test_formats_capture_error(self) -> None:
        """CaptureError is turned into a message carrying its code."""

        @handle_capture_error
        async def handler() -> str:
            raise SetupError("Network.enable", "Target closed")

        result = await handler()

        assert result.startswith("Error [setup_failed]:")
        assert "Target closed" in result

    @pytest.mark.asyncio
    async def test_formats_every_capture_error(self) -> None:
        @handle_capture_error
        async def handler() -> str:
            raise BodyFetchError("3", "gone")

        assert (await handler()).startswith("Error [body_fetch_failed]:")

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate(self) -> None:
        @handle_capture_error
        async def handler() -> str:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await handler()

    def test_preserves_function_metadata(self) -> None:
        @handle_capture_error
        async def capture_tool() -> str:
            """Tool docstring."""
            return ""

        assert capture_tool.__name__ == "capture_tool"
        assert capture_tool.__doc__ == "Tool docstring."
