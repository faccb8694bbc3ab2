from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .utils.io import load_yaml

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "configs" / "default.yaml"


class ConfigurationError(Exception):
    """A required credential or setting is missing."""


class Settings(BaseModel):
    runway_api_secret: Optional[str] = None
    runway_base_url: str = "https://api.dev.runwayml.com/v1"
    runway_api_version: str = "2024-11-06"
    runway_model: str = "veo3.1_fast"
    request_timeout: float = Field(default=30.0, gt=0)
    default_ratio: str = "16:9"

    poll_interval: float = Field(default=3.0, gt=0)
    poll_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)

    openai_api_key: Optional[str] = None
    chat_model: str = "gpt-4o-mini"
    chat_max_tokens: int = Field(default=4096, ge=1)

    log_level: str = "INFO"

    @classmethod
    def from_path(cls, path: Path) -> "Settings":
        data = load_yaml(path)
        return cls(**_flatten(data))


def _flatten(data: Dict[str, Any]) -> Dict[str, Any]:
    runway = data.get("runway", {})
    polling = data.get("polling", {})
    chat = data.get("chat", {})
    flat: Dict[str, Any] = {
        "runway_base_url": runway.get("base_url"),
        "runway_api_version": runway.get("api_version"),
        "runway_model": runway.get("model"),
        "request_timeout": runway.get("request_timeout"),
        "default_ratio": runway.get("default_ratio"),
        "poll_interval": polling.get("interval"),
        "poll_retries": polling.get("retries"),
        "retry_delay": polling.get("retry_delay"),
        "chat_model": chat.get("model"),
        "chat_max_tokens": chat.get("max_tokens"),
        "log_level": data.get("logging", {}).get("level"),
    }
    return {key: value for key, value in flat.items() if value is not None}


ENV_OVERRIDES = {
    "RUNWAYML_API_SECRET": "runway_api_secret",
    "RUNWAY_API_BASE": "runway_base_url",
    "RUNWAY_MODEL": "runway_model",
    "RUNWAY_POLL_INTERVAL": "poll_interval",
    "OPENAI_API_KEY": "openai_api_key",
    "CHAT_MODEL": "chat_model",
    "STUDIO_LOGLEVEL": "log_level",
}


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load YAML defaults, then apply environment overrides."""
    settings = Settings.from_path(path or DEFAULT_CONFIG_PATH)
    overrides = {field: os.environ[env] for env, field in ENV_OVERRIDES.items() if os.getenv(env)}
    if not overrides:
        return settings
    return Settings(**(settings.model_dump() | overrides))
