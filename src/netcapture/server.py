"""FastMCP server exposing network capture tools.

Run with: uv run python -m netcapture
Or via fastmcp: uv run fastmcp run netcapture.server:mcp
"""

from __future__ import annotations

from fastmcp import FastMCP

from netcapture.mcp_tools import register_capture_tools

# Create MCP server instance
mcp = FastMCP("netcapture")

register_capture_tools(mcp)
