"""Generate a commit message for one of the host's repositories."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from agentbridge.git.diff_prioritizer import prioritize_diff
from agentbridge.host import notifications
from agentbridge.host.base import QuickPickItem
from agentbridge.utils.cancellation import AbortError, CancellationBridge

if TYPE_CHECKING:
	import os
	from collections.abc import Sequence
	from pathlib import Path

	from agentbridge.agent.base import Agent
	from agentbridge.git.utils import CommitInputBox
	from agentbridge.host.base import Host, Progress
	from agentbridge.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

PROGRESS_TITLE = "Generating commit message..."
PICKER_PLACEHOLDER = "Select a Git repository"


class Repository(Protocol):
	"""What the orchestrator needs from a repository."""

	root: Path
	selected: bool
	input_box: CommitInputBox

	@property
	def name(self) -> str:
		"""Display name of the repository."""
		...

	async def diff(self, staged: bool) -> str:
		"""Staged (index vs HEAD) or unstaged (worktree vs index) diff."""
		...

	async def stat(self, path: str) -> os.stat_result:
		"""Stat a path relative to the root."""
		...


class CommitOutcome(Enum):
	"""How a commit-message request ended."""

	GENERATED = "generated"
	NO_REPOSITORY = "no_repository"
	SELECTION_ABANDONED = "selection_abandoned"
	EMPTY_DIFF = "empty_diff"
	CANCELLED = "cancelled"


@dataclass
class CommitResult:
	"""
	Outcome plus the repository and message involved, when there are any.

	``staged`` tells whether the message describes the index (True) or the
	unstaged working-tree changes (False).

	"""

	outcome: CommitOutcome
	repository: Repository | None = None
	message: str | None = None
	staged: bool = False


def _parent_index(items: Sequence[QuickPickItem[Repository]], index: int) -> int | None:
	# Nearest ancestor: the longest other root that is a string prefix of this one
	detail = items[index].detail
	candidates = [i for i, other in enumerate(items) if other.detail != detail and detail.startswith(other.detail)]
	return max(candidates, key=lambda i: len(items[i].detail), default=None)


def sort_repository_choices(repositories: Sequence[Repository]) -> list[QuickPickItem[Repository]]:
	"""
	Build picker items for ``repositories``.

	Roots form a forest under the string-prefix relation. The forest is
	walked depth first with siblings ordered by name (case-insensitive), so a
	parent always precedes its children whatever the input order.

	"""
	items = sorted(
		(
			QuickPickItem(label=repo.name, detail=str(repo.root), picked=repo.selected, value=repo)
			for repo in repositories
		),
		key=lambda item: (item.label.casefold(), item.detail),
	)
	children: dict[int | None, list[int]] = {}
	for index in range(len(items)):
		children.setdefault(_parent_index(items, index), []).append(index)

	ordered: list[QuickPickItem[Repository]] = []
	pending = list(reversed(children.get(None, [])))
	while pending:
		index = pending.pop()
		ordered.append(items[index])
		pending.extend(reversed(children.get(index, [])))
	return ordered


class CommitMessageOrchestrator:
	"""Selects a repository, prioritizes its diff and asks the agent for a message."""

	def __init__(self, agent: Agent, host: Host, repositories: Sequence[Repository]) -> None:
		"""
		Initialize the orchestrator.

		Args:
		    agent: Agent that writes the message
		    host: UI services (picker, progress, notifications)
		    repositories: Repositories known to the host

		"""
		self.agent = agent
		self.host = host
		self.repositories = list(repositories)

	async def select_repository(self) -> Repository | None:
		"""Return the only repository, or let the user pick one."""
		if len(self.repositories) == 1:
			return self.repositories[0]
		selected = await self.host.show_quick_pick(
			sort_repository_choices(self.repositories),
			placeholder=PICKER_PLACEHOLDER,
		)
		return selected.value if selected is not None else None

	@staticmethod
	async def get_diff(repository: Repository) -> tuple[str, bool]:
		"""
		The staged diff, or the unstaged diff when nothing is staged.

		Returns:
		    The stripped diff and whether it is the staged one

		"""
		diff = (await repository.diff(staged=True)).strip()
		if diff:
			return diff, True
		logger.debug("Nothing staged in %s, using unstaged changes", repository.root)
		return (await repository.diff(staged=False)).strip(), False

	async def run(self) -> CommitResult:
		"""
		Generate a commit message and put it in the repository's input box.

		Returns:
		    The result; only GENERATED touches the input box

		Raises:
		    AgentError: If the agent fails to generate a message
		    GitError: If the repository diff cannot be read

		"""
		if not self.repositories:
			notifications.show_information_no_repository(self.host)
			return CommitResult(CommitOutcome.NO_REPOSITORY)

		repository = await self.select_repository()
		if repository is None:
			logger.debug("Repository selection dismissed")
			return CommitResult(CommitOutcome.SELECTION_ABANDONED)

		diff, staged = await self.get_diff(repository)
		if not diff:
			logger.info("No changes in %s", repository.root)
			return CommitResult(CommitOutcome.EMPTY_DIFF, repository=repository, staged=False)

		self.host.focus_scm_view()

		async def _generate(_progress: Progress, token: CancellationToken) -> str:
			with CancellationBridge(token) as signal:
				diff_chunks = await prioritize_diff(diff, repository, signal)
				return await self.agent.generate_commit_message(diff_chunks, signal)

		try:
			message = await self.host.with_progress(PROGRESS_TITLE, _generate, cancellable=True)
		except AbortError:
			logger.info("Commit message generation cancelled")
			return CommitResult(CommitOutcome.CANCELLED, repository=repository, staged=staged)

		repository.input_box.value = message
		return CommitResult(CommitOutcome.GENERATED, repository=repository, message=message, staged=staged)
