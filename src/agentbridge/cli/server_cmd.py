"""Commands for configuring and checking the agent server connection."""

from __future__ import annotations

import logging
from typing import Annotated

import asyncer
import typer

logger = logging.getLogger(__name__)

server_app = typer.Typer(help="Configure and check the agent server connection.", no_args_is_help=True)

UrlArg = Annotated[str | None, typer.Argument(help="URL of the agent server (prompted when omitted)")]
TokenArg = Annotated[
	str | None,
	typer.Argument(help="Personal token (prompted when omitted; an empty value clears it)"),
]


def _endpoint_error(value: str) -> str | None:
	"""Return a validation message for ``value``, or None when it is a usable URL."""
	from agentbridge.config.config_schema import validate_endpoint_url

	try:
		validate_endpoint_url(value)
	except ValueError as e:
		return str(e)
	return None


@server_app.command(name="set-endpoint")
@asyncer.runnify
async def set_endpoint_command(ctx: typer.Context, url: UrlArg = None) -> None:
	"""Set the URL of the agent server."""
	from agentbridge.config import ConfigError
	from agentbridge.host import ConsoleHost
	from agentbridge.utils.cli_utils import exit_with_error
	from agentbridge.utils.log_setup import console

	from .common import load_config

	config = load_config(ctx)
	if url is None:
		url = await ConsoleHost().show_input_box(
			"Enter the URL of your agent server",
			value=config.get.server.endpoint,
			validate=_endpoint_error,
		)
		if url is None:
			return

	error = _endpoint_error(url)
	if error:
		exit_with_error(error)

	try:
		config.set("server.endpoint", url)
		saved_to = config.save()
	except ConfigError as e:
		exit_with_error("Could not save the endpoint.", exception=e)
		return
	console.print(f"[green]Endpoint set to {config.get.server.endpoint}[/green] [dim]({saved_to})[/dim]")


@server_app.command(name="set-token")
@asyncer.runnify
async def set_token_command(ctx: typer.Context, token: TokenArg = None) -> None:
	"""Set (or clear) the personal token used to talk to the agent server."""
	from agentbridge.config import ConfigError
	from agentbridge.host import ConsoleHost
	from agentbridge.utils.cli_utils import exit_with_error
	from agentbridge.utils.log_setup import console

	from .common import load_config

	config = load_config(ctx)
	if token is None:
		current = config.get.server.token
		token = await ConsoleHost().show_input_box(
			"Enter your personal token",
			value=current or None,
			password=True,
		)
		if token is None:
			# Prompt dismissed
			return

	token = token.strip()
	try:
		config.set("server.token", token or None)
		saved_to = config.save()
	except ConfigError as e:
		exit_with_error("Could not save the token.", exception=e)
		return

	if token:
		console.print(f"[green]Token saved[/green] [dim]({saved_to})[/dim]")
	else:
		console.print(f"[yellow]Token cleared[/yellow] [dim]({saved_to})[/dim]")


@server_app.command(name="status")
@asyncer.runnify
async def status_command(ctx: typer.Context) -> None:
	"""Check whether the agent server is reachable and this client is authorized."""
	from agentbridge.agent import AgentError, AgentStatus, HttpAgent
	from agentbridge.utils.log_setup import console

	from .common import load_config

	config = load_config(ctx)
	agent = HttpAgent(config)
	try:
		status = await agent.check_health()
	except AgentError as e:
		logger.debug("Health check failed: %s", e)
		status = agent.get_status()

	style = "green" if status == AgentStatus.READY else "red"
	console.print(f"{config.get.server.endpoint}: [{style}]{status.value}[/{style}]")
	if status != AgentStatus.READY:
		raise typer.Exit(1)
