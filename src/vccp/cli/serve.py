"""CLI: vccp serve"""

from typing import Optional

import click
from rich.console import Console

from vccp.app import VCCPServer

console = Console(stderr=True)


def _load_config(overrides=None):
    from vccp.cli.main import _load_config
    return _load_config(overrides)


def _run(coro):
    from vccp.cli.main import _run
    return _run(coro)


@click.command("serve")
@click.option("--host", default=None)
@click.option("--port", default=None, type=int)
@click.option("--ws-path", default=None, help="WebSocket path prefix (default /vccp)")
@click.option("--no-mcp", is_flag=True, help="Serve only the WebSocket data plane")
@click.option("--enforce-schemas", is_flag=True, help="Reject known categories whose payload does not match")
def serve_cmd(host: Optional[str], port: Optional[int], ws_path: Optional[str], no_mcp: bool, enforce_schemas: bool):
    """Run the VCCP bridge."""
    config = _load_config({
        "host": host,
        "port": port,
        "ws_path": ws_path,
        "mcp_transport": "none" if no_mcp else None,
        "enforce_payload_schemas": True if enforce_schemas else None,
    })
    server = VCCPServer(config)
    console.print(f"[green]WebSocket endpoint: ws://{config.host}:{config.port}{config.ws_path}/<session-id>[/green]")
    if config.mcp_transport == "stdio":
        console.print("[dim]MCP tools served on stdio[/dim]")
    try:
        _run(server.run())
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")
