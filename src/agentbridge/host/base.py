"""Contract of the editor host the flows run inside."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
	from collections.abc import Awaitable, Callable, Sequence

	from agentbridge.utils.cancellation import CancellationToken

T = TypeVar("T")


class Progress(ABC):
	"""Sink for progress messages of a running task."""

	@abstractmethod
	def report(self, message: str) -> None:
		"""Show ``message`` as the task's current step."""


@dataclass
class QuickPickItem(Generic[T]):
	"""One entry of a selection list."""

	label: str
	value: T
	detail: str = ""
	picked: bool = False


class Host(ABC):
	"""UI services provided by the editor (or terminal) running the flows."""

	@abstractmethod
	async def with_progress(
		self,
		title: str,
		task: Callable[[Progress, CancellationToken], Awaitable[T]],
		cancellable: bool = True,
	) -> T:
		"""
		Run ``task`` while showing progress.

		Args:
		    title: Title of the progress indicator
		    task: Coroutine function receiving a Progress and a CancellationToken
		    cancellable: Whether the user may cancel the task

		Returns:
		    Whatever ``task`` returns

		"""

	@abstractmethod
	def open_external(self, url: str) -> None:
		"""Open ``url`` outside the host (e.g. in the system browser)."""

	@abstractmethod
	def show_information(self, message: str) -> None:
		"""Show an informational notification."""

	@abstractmethod
	def show_error(self, message: str) -> None:
		"""Show an error notification."""

	@abstractmethod
	async def show_quick_pick(self, items: Sequence[QuickPickItem[Any]], placeholder: str) -> QuickPickItem[Any] | None:
		"""Let the user pick one item; None when the picker is dismissed."""

	@abstractmethod
	async def show_input_box(
		self,
		prompt: str,
		value: str | None = None,
		password: bool = False,
		validate: Callable[[str], str | None] | None = None,
	) -> str | None:
		"""
		Ask for a line of text.

		Args:
		    prompt: Question to display
		    value: Pre-filled value
		    password: Hide the typed characters
		    validate: Returns an error message for invalid input, None otherwise

		Returns:
		    The entered text, or None when the prompt is dismissed

		"""

	def focus_scm_view(self) -> None:  # noqa: B027
		"""Bring the source-control view to the front. Optional for hosts."""
