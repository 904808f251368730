"""
VCCPServer - wires one SessionRegistry into the router, dispatcher, the
WebSocket data plane and the MCP control plane.
"""

import asyncio
import logging
from typing import Optional

from vccp.config import ServerConfig
from vccp.dispatcher import ActionDispatcher
from vccp.mcp_server import VCCPMCPServer
from vccp.models.categories import DEFAULT_PAYLOAD_SCHEMAS
from vccp.registry import SessionRegistry
from vccp.router import MessageRouter
from vccp.tools import ControlPlane
from vccp.transport.websocket import DataPlaneServer
from vccp.validator import MessageValidator

logger = logging.getLogger(__name__)


class VCCPServer:
    def __init__(self, config: Optional[ServerConfig] = None, registry: Optional[SessionRegistry] = None):
        self.config = config or ServerConfig()
        self.registry = registry or SessionRegistry()

        schemas = DEFAULT_PAYLOAD_SCHEMAS.copy() if self.config.enforce_payload_schemas else None
        validator = MessageValidator(schemas)
        self.router = MessageRouter(self.registry, validator)
        self.dispatcher = ActionDispatcher(self.registry, validator)
        self.control = ControlPlane(self.registry, self.dispatcher, validator)
        self.data_plane = DataPlaneServer(
            self.registry,
            self.router,
            host=self.config.host,
            port=self.config.port,
            ws_path=self.config.ws_path,
        )
        self.mcp = VCCPMCPServer(self.control)

    async def run(self) -> None:
        """Serve until the MCP client goes away, or forever without MCP."""
        async with self.data_plane:
            logger.info("VCCP server started on port %d", self.data_plane.port)
            if self.config.mcp_transport == "stdio":
                await self.mcp.run_stdio()
            else:
                await asyncio.Future()
