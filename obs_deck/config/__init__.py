"""config — Settings, env loading, YAML config."""
from .settings import LoggingSettings, OBSSettings, Settings, get_settings, reload_settings

__all__ = ["LoggingSettings", "OBSSettings", "Settings", "get_settings", "reload_settings"]
