"""
config/settings.py — Central configuration via env vars + YAML override.

Priority: ENV > config.yaml > defaults
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RECONNECT_INTERVAL = 5.0


class OBSSettings(BaseSettings):
    host: str = Field("localhost", description="OBS WebSocket host")
    port: int = Field(4455, description="OBS WebSocket port")
    password: str = Field("", description="OBS WebSocket password (empty = no auth)")
    auto_connect: bool = Field(True, description="Connect on startup and retry while OBS is away")
    reconnect_interval: float = Field(
        DEFAULT_RECONNECT_INTERVAL, description="Seconds between caller-driven reconnect attempts"
    )

    model_config = SettingsConfigDict(env_prefix="OBS_", frozen=True)

    @field_validator("reconnect_interval")
    @classmethod
    def _default_interval(cls, v: float) -> float:
        return v if v > 0 else DEFAULT_RECONNECT_INTERVAL

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


class LoggingSettings(BaseSettings):
    level: str = Field("info", description="Log level (debug, info, warning, error)")

    model_config = SettingsConfigDict(env_prefix="LOG_")


class Settings(BaseSettings):
    obs: OBSSettings = Field(default_factory=OBSSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    config_file: Path = Field(Path("config.yaml"), description="Path to YAML config file")

    model_config = SettingsConfigDict(env_prefix="DECK_")

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings, merging YAML file if present."""
        path = config_path or Path(os.environ.get("DECK_CONFIG_FILE", "config.yaml"))
        yaml_data: dict = {}

        if path.exists():
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}

        obs = OBSSettings(**yaml_data.get("obs", {}))
        logging_ = LoggingSettings(**yaml_data.get("logging", {}))

        return cls(obs=obs, logging=logging_, config_file=path)

    def to_yaml(self, path: Path) -> None:
        """Save current settings to YAML."""
        data = {
            "obs": self.obs.model_dump(),
            "logging": self.logging.model_dump(),
        }
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings(config_path: Optional[Path] = None) -> Settings:
    global _settings
    _settings = Settings.load(config_path)
    return _settings
