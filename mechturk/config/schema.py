"""Configuration schema using Pydantic.

Persisted to ~/.mechturk/config.json; every field can also be set through
MECHTURK_* environment variables (nested with `__`, e.g. MECHTURK_BRIDGE__PORT).
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings

DEFAULT_BRIDGE_HOST = "localhost"
DEFAULT_BRIDGE_PORT = 9080


class BridgeConfig(BaseModel):
    """Controller-side bridge client configuration."""
    host: str = DEFAULT_BRIDGE_HOST
    port: int = DEFAULT_BRIDGE_PORT
    connect_timeout_ms: int = 5000
    request_timeout_ms: int = 30000  # Default per-call deadline

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"


class TargetConfig(BaseModel):
    """Target-side listener and frame loop configuration."""
    host: str = "127.0.0.1"
    port: int = DEFAULT_BRIDGE_PORT
    frame_interval_ms: int = 16  # ~60 ticks per second
    viewport_width: int = 320
    viewport_height: int = 180


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file_sink: bool = True


class Config(BaseSettings):
    """Root configuration for mechturk."""
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    target: TargetConfig = Field(default_factory=TargetConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(
        env_prefix="MECHTURK_",
        env_nested_delimiter="__"
    )
