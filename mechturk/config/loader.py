"""Configuration loading utilities."""

import json
import os
from pathlib import Path
from typing import Any

from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from mechturk.config.schema import Config
from mechturk.utils.parameters import camel_to_snake

# Environment names honoured by earlier releases of the bridge client.
LEGACY_HOST_ENV = "GODOT_BRIDGE_HOST"
LEGACY_PORT_ENV = "GODOT_BRIDGE_PORT"


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".mechturk" / "config.json"


class _FileOnlyConfig(Config):
    """Config built from init values alone, without MECHTURK_* environment variables."""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings,)


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        cfg = Config(**_read_config_file(path))
    else:
        cfg = Config()

    _apply_legacy_env_vars(cfg)
    return cfg


def default_config() -> Config:
    """Built-in defaults, ignoring environment overrides."""
    return _FileOnlyConfig()


def load_config_file(config_path: Path | None = None) -> Config:
    """Load only the values stored in the file; environment overrides are not applied."""
    path = config_path or get_config_path()
    if not path.exists():
        return default_config()
    return _FileOnlyConfig(**_read_config_file(path))


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("config root must be a JSON object")
        allowed = set(Config.model_fields)
        data = {k: v for k, v in convert_keys(data).items() if k in allowed}
        # Validate here so schema errors carry the same message as syntax errors.
        _FileOnlyConfig(**data)
    except (json.JSONDecodeError, ValueError) as e:
        raise ValueError(
            f"Failed to load config from {path}: {e}. "
            "Fix the file or remove it to regenerate defaults."
        ) from e
    return data


def _apply_legacy_env_vars(cfg: Config) -> None:
    """Apply GODOT_BRIDGE_HOST/PORT unless the MECHTURK_ equivalents are set."""
    host = os.environ.get(LEGACY_HOST_ENV, "").strip()
    if host and not os.environ.get("MECHTURK_BRIDGE__HOST"):
        cfg.bridge.host = host
    port = os.environ.get(LEGACY_PORT_ENV, "").strip()
    if port and not os.environ.get("MECHTURK_BRIDGE__PORT"):
        try:
            cfg.bridge.port = int(port)
        except ValueError as e:
            raise ValueError(f"{LEGACY_PORT_ENV} must be an integer, got {port!r}") from e


def resolve_bridge_endpoint(config: Config | None = None) -> tuple[str, int]:
    """Return the (host, port) a controller should dial, legacy env vars included."""
    cfg = config if config is not None else Config()
    _apply_legacy_env_vars(cfg)
    return cfg.bridge.host, cfg.bridge.port


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump())

    with open(path, "w") as f:
        json.dump(data, f, indent=2)


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase."""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
