"""Terminal implementation of the host services."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import webbrowser
from typing import TYPE_CHECKING, Any, TypeVar

import questionary
from rich.markup import escape

from agentbridge.utils.cancellation import CancellationTokenSource
from agentbridge.utils.cli_utils import is_non_interactive_environment
from agentbridge.utils.log_setup import console

from .base import Host, Progress, QuickPickItem

if TYPE_CHECKING:
	from collections.abc import Awaitable, Callable, Iterator, Sequence

	from rich.status import Status

	from agentbridge.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConsoleProgress(Progress):
	"""Progress reported through a rich status line."""

	def __init__(self, title: str, status: Status | None) -> None:
		"""Wrap an active status (or None when live output is disabled)."""
		self.title = title
		self.status = status

	def report(self, message: str) -> None:
		"""Update the status line with ``message``."""
		logger.info("%s: %s", self.title, message)
		if self.status is not None:
			self.status.update(f"{escape(self.title)} [dim]{escape(message)}[/dim]")


@contextlib.contextmanager
def _status(title: str) -> Iterator[Status | None]:
	if is_non_interactive_environment():
		yield None
		return
	with console.status(escape(title)) as status:
		yield status


class ConsoleHost(Host):
	"""
	Host backed by the terminal.

	Progress is a rich spinner; Ctrl-C during a cancellable task requests
	cancellation instead of killing the process. Pickers and prompts use
	questionary.

	"""

	def __init__(self, open_browser: bool = True) -> None:
		"""
		Initialize the host.

		Args:
		    open_browser: Whether ``open_external`` launches the system browser;
		        the URL is printed either way

		"""
		self.open_browser = open_browser

	@staticmethod
	def _on_interrupt(source: CancellationTokenSource) -> None:
		console.print("\n[yellow]Cancelling...[/yellow]")
		source.cancel()

	async def with_progress(
		self,
		title: str,
		task: Callable[[Progress, CancellationToken], Awaitable[T]],
		cancellable: bool = True,
	) -> T:
		"""Run ``task`` under a spinner, wiring Ctrl-C to its cancellation token."""
		source = CancellationTokenSource()
		loop = asyncio.get_running_loop()
		handler_installed = False
		if cancellable:
			try:
				loop.add_signal_handler(signal.SIGINT, self._on_interrupt, source)
				handler_installed = True
			except (NotImplementedError, RuntimeError, ValueError):
				# Windows event loops and non-main threads cannot install handlers
				logger.debug("SIGINT handler unavailable; Ctrl-C will interrupt the process")

		try:
			with _status(title) as status:
				return await task(ConsoleProgress(title, status), source.token)
		finally:
			if handler_installed:
				loop.remove_signal_handler(signal.SIGINT)

	def open_external(self, url: str) -> None:
		"""Print ``url`` and open it in the system browser."""
		console.print(f"Open this URL to continue: [link={url}]{escape(url)}[/link]")
		if self.open_browser and not webbrowser.open(url):
			logger.warning("Could not launch a browser; open the URL manually")

	def show_information(self, message: str) -> None:
		"""Print an informational message."""
		console.print(f"[blue]i[/blue] {escape(message)}")

	def show_error(self, message: str) -> None:
		"""Print an error message."""
		console.print(f"[bold red]Error:[/bold red] {escape(message)}")

	async def show_quick_pick(self, items: Sequence[QuickPickItem[Any]], placeholder: str) -> QuickPickItem[Any] | None:
		"""Show a questionary select; None if the user aborts it."""
		choices = [
			questionary.Choice(
				title=f"{item.label}  ({item.detail})" if item.detail else item.label,
				value=index,
			)
			for index, item in enumerate(items)
		]
		default = next((choice for choice, item in zip(choices, items, strict=True) if item.picked), None)
		index = await questionary.select(placeholder, choices=choices, default=default).ask_async()
		if index is None:
			return None
		return items[index]

	async def show_input_box(
		self,
		prompt: str,
		value: str | None = None,
		password: bool = False,
		validate: Callable[[str], str | None] | None = None,
	) -> str | None:
		"""Ask for text (hidden when ``password``); None if the user aborts."""

		def _validate(text: str) -> bool | str:
			if validate is None:
				return True
			return validate(text) or True

		if password:
			question = questionary.password(prompt, default=value or "", validate=_validate)
		else:
			question = questionary.text(prompt, default=value or "", validate=_validate)
		return await question.ask_async()

	def focus_scm_view(self) -> None:
		"""Separate the generated output from earlier terminal output."""
		console.rule("Source Control", style="dim")
