"""MCP server exposing ragpack as tools."""

from ragpack.server.mcp_server import create_mcp_server
from ragpack.server.tools import RagTools

__all__ = ["RagTools", "create_mcp_server"]
