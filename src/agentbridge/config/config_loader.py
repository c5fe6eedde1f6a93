"""
Configuration loader for AgentBridge.

This module provides functionality for loading and managing
configuration settings.

"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from xdg.BaseDirectory import xdg_config_home

from agentbridge.config.config_schema import AppConfigSchema

logger = logging.getLogger(__name__)

ENV_PREFIX = "AGENTBRIDGE_"

# Constant for minimum number of parts in environment variable
MIN_ENV_VAR_PARTS = 2


class ConfigError(Exception):
	"""Exception raised for configuration errors."""


class ConfigLoader:
	"""
	Loads and manages configuration for AgentBridge.

	Values come from the schema defaults, then the YAML file, then
	``AGENTBRIDGE_<SECTION>_<KEY>`` environment variables. The merged result
	is validated against ``AppConfigSchema``.

	"""

	def __init__(self, config_file: Path | str | None = None) -> None:
		"""
		Initialize the configuration loader.

		Args:
		    config_file: Path to configuration file (optional)

		Raises:
		    ConfigError: If the file cannot be parsed or fails validation

		"""
		self.config_file = self._resolve_config_file(config_file)
		self._raw: dict[str, Any] = {}
		self._app_config = self._load_config()

	@property
	def get(self) -> AppConfigSchema:
		"""The validated configuration."""
		return self._app_config

	@staticmethod
	def default_config_path() -> Path:
		"""Location used for saving when no file was found."""
		return Path(xdg_config_home) / "agentbridge" / "config.yml"

	def _resolve_config_file(self, config_file: Path | str | None = None) -> Path | None:
		"""
		Resolve the configuration file path.

		If a config file is specified, use that. Otherwise, look in standard locations:
		1. ./.agentbridge.yml in the current directory
		2. $XDG_CONFIG_HOME/agentbridge/config.yml
		3. ~/.agentbridge/config.yml

		Args:
		    config_file: Explicitly provided config file path (optional)

		Returns:
		    Optional[Path]: Resolved config file path or None if no suitable file found

		"""
		if config_file:
			path = Path(config_file).expanduser().resolve()
			if not path.exists():
				logger.warning("Specified config file not found: %s", path)
			return path

		local_config = Path(".agentbridge.yml")
		if local_config.exists():
			return local_config

		xdg_config_file = self.default_config_path()
		if xdg_config_file.exists():
			return xdg_config_file

		legacy_config = Path.home() / ".agentbridge" / "config.yml"
		if legacy_config.exists():
			return legacy_config

		return None

	def _load_config(self) -> AppConfigSchema:
		raw: dict[str, Any] = {}

		if self.config_file and self.config_file.exists():
			try:
				with self.config_file.open(encoding="utf-8") as f:
					file_config = yaml.safe_load(f)
			except (OSError, yaml.YAMLError) as e:
				error_msg = f"Error loading configuration from {self.config_file}: {e}"
				logger.exception(error_msg)
				raise ConfigError(error_msg) from e
			if file_config is not None and not isinstance(file_config, dict):
				error_msg = f"Configuration in {self.config_file} must be a mapping"
				raise ConfigError(error_msg)
			raw = file_config or {}
			logger.info("Loaded configuration from %s", self.config_file)

		self._raw = raw
		merged = self._apply_env_overrides(raw)
		return self._validate(merged)

	@staticmethod
	def _validate(data: dict[str, Any]) -> AppConfigSchema:
		try:
			return AppConfigSchema.model_validate(data)
		except ValidationError as e:
			error_msg = f"Invalid configuration: {e}"
			logger.exception(error_msg)
			raise ConfigError(error_msg) from e

	@staticmethod
	def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
		"""Return a copy of ``raw`` with AGENTBRIDGE_SECTION_KEY overrides applied."""
		merged = {section: dict(values) if isinstance(values, dict) else values for section, values in raw.items()}
		sections = AppConfigSchema.model_fields

		for env_var, value in os.environ.items():
			if not env_var.startswith(ENV_PREFIX):
				continue
			parts = env_var[len(ENV_PREFIX) :].lower().split("_")
			if len(parts) < MIN_ENV_VAR_PARTS or parts[0] not in sections:
				continue
			section, key = parts[0], "_".join(parts[1:])
			section_values = merged.setdefault(section, {})
			if isinstance(section_values, dict):
				# Left as strings; validation parses numbers and booleans
				section_values[key] = value
				logger.debug("Applied environment override %s", env_var)
		return merged

	def set(self, key: str, value: Any) -> None:  # noqa: ANN401
		"""
		Set a configuration value using dot notation (e.g. ``server.token``).

		The value is validated before it is accepted; ``None`` removes the key
		so the default applies again.

		Raises:
		    ConfigError: If the key is malformed or the value is invalid

		"""
		parts = key.split(".")
		if len(parts) != MIN_ENV_VAR_PARTS:
			msg = f"Configuration keys must look like 'section.key', got {key!r}"
			raise ConfigError(msg)
		section, name = parts

		raw = {s: dict(v) if isinstance(v, dict) else v for s, v in self._raw.items()}
		section_values = raw.setdefault(section, {})
		if value is None:
			section_values.pop(name, None)
		else:
			section_values[name] = value

		self._app_config = self._validate(self._apply_env_overrides(raw))
		self._raw = raw

	def save(self, config_file: Path | str | None = None) -> Path:
		"""
		Save the file-level configuration (without env overrides).

		Args:
		    config_file: Path to save to (defaults to the resolved file, or the XDG path)

		Returns:
		    The path written

		Raises:
		    ConfigError: If configuration cannot be saved

		"""
		save_path = Path(config_file) if config_file else (self.config_file or self.default_config_path())

		try:
			save_path.parent.mkdir(parents=True, exist_ok=True)
			with save_path.open("w", encoding="utf-8") as f:
				yaml.safe_dump(self._raw, f, default_flow_style=False, sort_keys=True)
		except OSError as e:
			error_msg = f"Error saving configuration to {save_path}: {e}"
			logger.exception(error_msg)
			raise ConfigError(error_msg) from e

		self.config_file = save_path
		logger.info("Configuration saved to %s", save_path)
		return save_path
