"""CLI: vccp validate"""

import json

import click
from rich.console import Console

from vccp.errors import ValidationError
from vccp.models.categories import DEFAULT_PAYLOAD_SCHEMAS
from vccp.validator import MessageValidator

console = Console()


@click.command("validate")
@click.argument("source", type=click.File("r"))
@click.option("--payload", "check_payload", is_flag=True, help="Also check payloads of known categories")
def validate_cmd(source, check_payload: bool):
    """Validate an envelope JSON file ('-' for stdin)."""
    try:
        raw = json.load(source)
    except json.JSONDecodeError as e:
        console.print(f"[red]Not JSON: {e}[/red]")
        raise SystemExit(1)

    validator = MessageValidator(DEFAULT_PAYLOAD_SCHEMAS if check_payload else None)
    result = validator.validate(raw)
    if isinstance(result, ValidationError):
        console.print(f"[red]Invalid: {result.message}[/red]")
        raise SystemExit(1)
    console.print(f"[green]Valid {result.kind}/{result.category} envelope[/green]")
