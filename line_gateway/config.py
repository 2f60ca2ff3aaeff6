"""Channel configuration loading.

The channel file is a JSON list; each entry becomes one registered channel::

    [
      {
        "channel_id": 1234567890,
        "user_id": "U4af4980629...",
        "secret_env": "LINE_CHANNEL_SECRET",
        "handler": "line_gateway.handlers:EchoHandler"
      }
    ]
"""

from __future__ import annotations

import importlib
import json
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

from line_gateway.channels.channel import Channel, WebhookEventHandler
from line_gateway.channels.registry import ChannelRegistry

DEFAULT_HANDLER = "line_gateway.handlers:EchoHandler"


class ConfigError(Exception):
    """Raised when the channel configuration cannot be loaded."""


class ChannelConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    channel_id: int
    user_id: str = Field(min_length=1)
    secret: str | None = Field(default=None, repr=False)
    secret_env: str | None = None
    access_token: str | None = Field(default=None, repr=False)
    handler: str = DEFAULT_HANDLER

    @model_validator(mode="after")
    def _one_secret_source(self) -> ChannelConfig:
        if (self.secret is None) == (self.secret_env is None):
            raise ValueError("exactly one of 'secret' or 'secret_env' is required")
        return self

    def resolve_secret(self) -> str:
        if self.secret is not None:
            return self.secret
        value = os.environ.get(self.secret_env or "")
        if not value:
            raise ConfigError(
                f"Environment variable {self.secret_env} is not set "
                f"(secret for channel {self.channel_id})",
            )
        return value


def load_channel_configs(path: str) -> list[ChannelConfig]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Channel config file not found: {path}")
    raw = json.loads(config_path.read_text())
    if not isinstance(raw, list):
        raise ConfigError(f"Channel config must be a JSON list: {path}")
    return [ChannelConfig.model_validate(entry) for entry in raw]


def load_handler(import_path: str) -> WebhookEventHandler:
    """Instantiate a handler from a ``module:attribute`` import path."""
    module_name, _, attr = import_path.partition(":")
    if not module_name or not attr:
        raise ConfigError(f"Handler must be given as 'module:attribute', got {import_path!r}")
    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as exc:
        raise ConfigError(f"Cannot import handler {import_path!r}: {exc}") from exc
    return factory()


def build_channel(config: ChannelConfig) -> Channel:
    return Channel(
        channel_id=config.channel_id,
        user_id=config.user_id,
        secret=config.resolve_secret(),
        handler=load_handler(config.handler),
        access_token=config.access_token,
    )


def build_registry(configs: list[ChannelConfig]) -> ChannelRegistry:
    registry = ChannelRegistry()
    for config in configs:
        registry.register(build_channel(config))
    return registry
