"""Configuration for AgentBridge."""

from .config_loader import ConfigError, ConfigLoader
from .config_schema import AppConfigSchema

__all__ = ["AppConfigSchema", "ConfigError", "ConfigLoader"]
