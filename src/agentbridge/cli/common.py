"""Helpers shared by the CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

from agentbridge.config import ConfigError, ConfigLoader
from agentbridge.utils.cli_utils import exit_with_error

if TYPE_CHECKING:
	from pathlib import Path


def load_config(ctx: typer.Context) -> ConfigLoader:
	"""Load configuration from the ``--config`` option or the default locations."""
	config_file: Path | None = ctx.meta.get("config_file")
	try:
		return ConfigLoader(config_file)
	except ConfigError as e:
		exit_with_error("Could not load the configuration.", exception=e)
		raise  # exit_with_error always raises; keeps type checkers happy
