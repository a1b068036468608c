"""Configuration module for mechturk."""

from mechturk.config.loader import (
    get_config_path,
    load_config,
    load_config_file,
    resolve_bridge_endpoint,
    save_config,
)
from mechturk.config.schema import BridgeConfig, Config, LoggingConfig, TargetConfig

__all__ = [
    "Config",
    "BridgeConfig",
    "TargetConfig",
    "LoggingConfig",
    "load_config",
    "load_config_file",
    "save_config",
    "get_config_path",
    "resolve_bridge_endpoint",
]
