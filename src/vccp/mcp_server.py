"""
MCP server exposing the control-plane tools to an LLM agent (stdio transport).
"""

import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from vccp.tools import TOOL_DEFINITIONS, ControlPlane

logger = logging.getLogger(__name__)


class VCCPMCPServer:
    def __init__(self, control: ControlPlane, name: str = "vccp"):
        self.server = Server(name)
        self._control = control
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            return [
                Tool(
                    name=tool["name"],
                    description=tool["description"],
                    inputSchema=tool["inputSchema"],
                )
                for tool in TOOL_DEFINITIONS
            ]

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            result = await self._control.call(name, arguments)
            if not result.ok:
                logger.info("Tool %s failed: %s", name, result.text)
            return [TextContent(type="text", text=result.text)]

    async def run_stdio(self) -> None:
        logger.info("Starting VCCP MCP server (stdio)")
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )
