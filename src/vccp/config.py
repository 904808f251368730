"""
Server configuration.

Precedence, lowest first: defaults, ~/.vccp/config.json (or an explicit
path), VCCP_* environment variables, then explicit overrides (CLI flags).
"""

import json
from pathlib import Path
from typing import Any, Literal, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, EnvSettingsSource, SettingsConfigDict

from vccp.errors import ConfigError

CONFIG_FILE = Path.home() / ".vccp" / "config.json"


class ServerConfig(BaseSettings):
    """Bridge settings. Environment variables use the VCCP_ prefix, e.g. VCCP_PORT."""

    model_config = SettingsConfigDict(
        env_prefix="VCCP_",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = 8080
    ws_path: str = "/vccp"
    mcp_transport: Literal["stdio", "none"] = "stdio"
    log_level: str = "INFO"
    enforce_payload_schemas: bool = False


def _load_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def load_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> ServerConfig:
    data = _load_file(Path(path) if path else CONFIG_FILE)
    try:
        # File values yield to the environment; init kwargs would otherwise win.
        for name in EnvSettingsSource(ServerConfig)():
            data.pop(name, None)
        data.update({k: v for k, v in (overrides or {}).items() if v is not None})
        config = ServerConfig(**data)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")
    return config.model_copy(update={"ws_path": "/" + config.ws_path.strip("/")})


def save_config(config: ServerConfig, path: Optional[Union[str, Path]] = None) -> Path:
    target = Path(path) if path else CONFIG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(config.model_dump(), indent=2))
    return target
