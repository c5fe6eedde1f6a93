"""Command for authorizing against the agent server in a browser."""

from __future__ import annotations

import logging
from typing import Annotated

import asyncer
import typer

logger = logging.getLogger(__name__)

NoBrowserFlag = Annotated[
	bool,
	typer.Option("--no-browser", help="Print the authorization URL instead of opening a browser"),
]


def register_command(app: typer.Typer) -> None:
	"""Register the auth command with the CLI app."""

	@app.command(name="auth")
	@asyncer.runnify
	async def auth_command(ctx: typer.Context, no_browser: NoBrowserFlag = False) -> None:
		"""
		Authorize this machine with the agent server.

		Opens the server's authorization page in your browser and waits until
		you approve it. Press Ctrl-C to cancel.

		"""
		await _auth_command_impl(ctx, open_browser=not no_browser)


async def _auth_command_impl(ctx: typer.Context, open_browser: bool) -> None:
	"""Actual implementation of the auth command."""
	from agentbridge.agent import HttpAgent
	from agentbridge.auth import AuthFlowController, AuthOutcome, InvariantViolationError
	from agentbridge.host import ConsoleHost
	from agentbridge.utils.cli_utils import exit_with_error, handle_keyboard_interrupt

	from .common import load_config

	config = load_config(ctx)
	controller = AuthFlowController(
		agent=HttpAgent(config),
		host=ConsoleHost(open_browser=open_browser),
		on_auth_start=lambda: logger.debug("Authorization started"),
		on_auth_end=lambda: logger.debug("Authorization ended"),
	)

	try:
		outcome = await controller.run()
	except KeyboardInterrupt:
		handle_keyboard_interrupt()
	except InvariantViolationError:
		raise
	except Exception as e:
		logger.exception("An unexpected error occurred during authorization.")
		exit_with_error(f"An unexpected error occurred: {e}", exception=e)
	else:
		if outcome == AuthOutcome.FAILED:
			raise typer.Exit(1)
