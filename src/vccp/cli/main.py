"""
VCCP CLI: `vccp` command.

Commands:
  vccp serve                Run the bridge (WebSocket data plane + MCP over stdio)
  vccp avatar <session-id>  Run a demo avatar client
  vccp validate <file>      Validate an envelope JSON file
  vccp config show|init     Inspect or write the config file
"""

import asyncio
import logging
from typing import Any, Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install vccp-bridge[cli]")

from vccp import __version__
from vccp.config import ServerConfig, load_config
from vccp.errors import ConfigError

# stdout carries MCP traffic under `vccp serve`
console = Console(stderr=True)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(overrides: Optional[dict[str, Any]] = None) -> ServerConfig:
    ctx = click.get_current_context()
    path = (ctx.find_root().obj or {}).get("config_path")
    try:
        return load_config(path, overrides)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option(__version__)
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Config file (default ~/.vccp/config.json)")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], log_level: Optional[str]):
    """VCCP bridge: drive a virtual character from an LLM agent."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    level = log_level
    if not level:
        try:
            level = load_config(config_path).log_level
        except ConfigError:
            level = "INFO"
    _setup_logging(level)


# Register subcommands from separate modules
from vccp.cli.avatar import avatar_cmd
from vccp.cli.config import config
from vccp.cli.serve import serve_cmd
from vccp.cli.validate import validate_cmd

main.add_command(serve_cmd)
main.add_command(avatar_cmd)
main.add_command(validate_cmd)
main.add_command(config)


if __name__ == "__main__":
    main()
