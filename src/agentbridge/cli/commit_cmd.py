"""Command for generating a commit message with the agent."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import asyncer
import typer

logger = logging.getLogger(__name__)

PathsArg = Annotated[
	list[Path] | None,
	typer.Argument(
		help="Workspace folders to look for repositories in (defaults to the current directory)",
		exists=True,
		file_okay=False,
	),
]

CommitFlag = Annotated[
	bool,
	typer.Option(
		"--commit",
		help="Commit the staged changes with the generated message (skipped when nothing is staged)",
	),
]

NOTHING_STAGED = "The message describes unstaged changes. Stage them and commit manually."

YesFlag = Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation before committing")]


def register_command(app: typer.Typer) -> None:
	"""Register the commit-message command with the CLI app."""

	@app.command(name="commit-message")
	@asyncer.runnify
	async def commit_message_command(
		ctx: typer.Context,
		paths: PathsArg = None,
		commit: CommitFlag = False,
		yes: YesFlag = False,
	) -> None:
		"""
		Generate a commit message for your changes.

		Staged changes are described if there are any, otherwise unstaged
		ones. Files edited longest ago are shown to the agent first.

		"""
		await _commit_message_command_impl(ctx, paths=paths or [Path.cwd()], commit=commit, yes=yes)


async def _commit_message_command_impl(ctx: typer.Context, paths: list[Path], commit: bool, yes: bool) -> None:
	"""Actual implementation of the commit-message command."""
	import questionary
	from rich.panel import Panel

	from agentbridge.agent import AgentError, HttpAgent
	from agentbridge.commit import CommitMessageOrchestrator, CommitOutcome
	from agentbridge.git import GitError, discover_repositories, run_git_command
	from agentbridge.host import ConsoleHost, notifications
	from agentbridge.utils.cli_utils import exit_with_error, handle_keyboard_interrupt, show_warning
	from agentbridge.utils.log_setup import console

	from .common import load_config

	config = load_config(ctx)
	repositories = discover_repositories(paths, max_depth=config.get.commit.discovery_depth)
	orchestrator = CommitMessageOrchestrator(HttpAgent(config), ConsoleHost(), repositories)

	try:
		result = await orchestrator.run()
	except KeyboardInterrupt:
		handle_keyboard_interrupt()
		return
	except (AgentError, GitError) as e:
		exit_with_error(notifications.COMMIT_MESSAGE_FAILED, exception=e)
		return

	if result.outcome == CommitOutcome.NO_REPOSITORY:
		raise typer.Exit(1)
	if result.outcome == CommitOutcome.EMPTY_DIFF:
		show_warning(notifications.EMPTY_DIFF)
		return
	if result.outcome != CommitOutcome.GENERATED or result.repository is None:
		return

	repository = result.repository
	message = repository.input_box.value
	console.print(Panel(message, title=f"Commit message for {repository.name}", border_style="green"))

	if not commit:
		return
	if not result.staged:
		show_warning(NOTHING_STAGED)
		return
	if not yes and not await questionary.confirm("Commit with this message?", default=True).ask_async():
		console.print("[yellow]Commit skipped.[/yellow]")
		return
	try:
		run_git_command(["git", "commit", "-m", message], cwd=repository.root)
	except GitError as e:
		exit_with_error("Git commit failed.", exception=e)
	console.print(f"[green]Committed to {repository.name}.[/green]")
