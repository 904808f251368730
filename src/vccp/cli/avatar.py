"""CLI: vccp avatar"""

import json
from typing import Any, Optional

import click
from rich.console import Console

from vccp.errors import ConnectionError
from vccp.models.envelope import Envelope
from vccp.transport.client import AvatarClient

console = Console()

DEFAULT_ACTIONS: list[dict[str, Any]] = [
    {"category": "movement", "description": "Walk to a position",
     "data": {"target": {"x": "number", "y": "number", "z": "number"}, "speed": "number (optional)"}},
    {"category": "lookAt", "description": "Look at a position or object",
     "data": {"target": {"type": "position | object", "value": {"x": "number", "y": "number", "z": "number"}}}},
    {"category": "expression", "description": "Set a facial expression preset",
     "data": {"preset": "joy | angry | sorrow | fun | neutral | blink | a | e | i | o | u"}},
    {"category": "anim", "description": "Play a BVH animation", "data": {"bvh": "string"}},
]


def _load_config(overrides=None):
    from vccp.cli.main import _load_config
    return _load_config(overrides)


def _run(coro):
    from vccp.cli.main import _run
    return _run(coro)


def _load_actions(path: Optional[str]) -> list[Any]:
    if path is None:
        return DEFAULT_ACTIONS
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise click.BadParameter(f"cannot read {path}: {e}", param_hint="--capability")
    if isinstance(data, dict):
        data = data.get("actions")
    if not isinstance(data, list):
        raise click.BadParameter("expected a list of actions or {\"actions\": [...]}", param_hint="--capability")
    return data


@click.command("avatar")
@click.argument("session_id")
@click.option("--url", default=None, help="Server URL (default ws://{host}:{port} from config)")
@click.option("--capability", "capability_file", default=None, type=click.Path(exists=True, dir_okay=False),
              help="JSON file with the action definitions to declare")
@click.option("--json-output", "--json", is_flag=True)
def avatar_cmd(session_id: str, url: Optional[str], capability_file: Optional[str], json_output: bool):
    """Run a demo avatar that declares capability and prints received actions."""
    config = _load_config()
    server_url = url or f"ws://{config.host}:{config.port}"
    actions = _load_actions(capability_file)

    def show(envelope: Envelope) -> None:
        if json_output:
            click.echo(json.dumps(envelope.to_wire(), ensure_ascii=False))
        else:
            console.print(f"[green]{envelope.kind}/{envelope.category}[/green] {json.dumps(envelope.payload, ensure_ascii=False)}")

    async def _avatar():
        client = AvatarClient(server_url, session_id, ws_path=config.ws_path)
        client.on_action(show)
        try:
            await client.connect()
        except ConnectionError as e:
            console.print(f"[red]{e}[/red]")
            raise SystemExit(1)
        try:
            await client.send_capability(actions)
            if not json_output:
                console.print(f"[cyan]Connected as {session_id}, {len(actions)} actions declared (Ctrl+C to exit)[/cyan]")
            await client.run()
        finally:
            await client.disconnect()

    try:
        _run(_avatar())
    except KeyboardInterrupt:
        pass
