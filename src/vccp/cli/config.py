"""CLI: vccp config show|init"""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from vccp.config import CONFIG_FILE, ServerConfig, save_config

console = Console()


def _load_config(overrides=None):
    from vccp.cli.main import _load_config
    return _load_config(overrides)


@click.group()
def config():
    """Configuration commands."""


@config.command("show")
def config_show():
    """Show the effective configuration."""
    cfg = _load_config()
    table = Table(title="VCCP configuration")
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in cfg.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)


@config.command("init")
@click.option("-f", "--force", is_flag=True, help="Overwrite an existing file")
@click.pass_context
def config_init(ctx: click.Context, force: bool):
    """Write a config file with default values."""
    path = Path((ctx.find_root().obj or {}).get("config_path") or CONFIG_FILE)
    if path.exists() and not force:
        console.print(f"[yellow]{path} exists; use --force to overwrite.[/yellow]")
        return
    target = save_config(ServerConfig(), path)
    console.print(f"[green]Config written to {target}[/green]")
