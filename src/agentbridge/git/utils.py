"""Git utilities for AgentBridge."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles.os
from asyncer import asyncify
from pygit2 import Commit, Diff, Patch, Repository, discover_repository
from pygit2 import GitError as Pygit2Error

if TYPE_CHECKING:
	from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)

# Directories never descended into while looking for nested repositories
SKIPPED_DIRECTORIES = frozenset({".git", "node_modules", ".venv", "venv", "__pycache__", "dist", "build"})


class GitError(Exception):
	"""Custom exception for Git-related errors."""


def run_git_command(command: list[str], cwd: Path | None = None) -> str:
	"""
	Run a Git command and return its output.

	Args:
	    command: Git command to run
	    cwd: Working directory (optional)

	Returns:
	    Command output as string

	Raises:
	    GitError: If the command fails

	"""
	try:
		# Arguments are passed as a list and never through a shell
		result = subprocess.run(  # noqa: S603
			command,
			cwd=cwd,
			capture_output=True,
			text=True,
			check=True,
		)
	except (subprocess.CalledProcessError, FileNotFoundError) as e:
		stderr = getattr(e, "stderr", "") or str(e)
		error_msg = f"Git command failed: {' '.join(command)}\nError: {stderr}"
		logger.exception(error_msg)
		raise GitError(error_msg) from e
	else:
		return result.stdout


@dataclass
class CommitInputBox:
	"""The commit-message input of a repository."""

	value: str = ""


class GitRepository:
	"""A working-tree repository known to the host, backed by pygit2."""

	def __init__(self, root: Path | str, *, selected: bool = False) -> None:
		"""
		Open the repository rooted at ``root``.

		Args:
		    root: Working-tree root directory
		    selected: Whether the host considers this the active repository

		Raises:
		    GitError: If ``root`` is not a non-bare Git repository

		"""
		try:
			self.repo = Repository(str(root))
		except Pygit2Error as e:
			msg = f"Not a git repository: {root}"
			raise GitError(msg) from e
		if self.repo.workdir is None:
			msg = f"Bare repositories have no working tree: {root}"
			raise GitError(msg)

		self.root = Path(self.repo.workdir).resolve()
		self.selected = selected
		self.input_box = CommitInputBox()

	def __repr__(self) -> str:
		"""Return a debugging representation."""
		return f"GitRepository(root={str(self.root)!r})"

	@property
	def name(self) -> str:
		"""Base name of the repository root."""
		return self.root.name

	def _diff_sync(self, staged: bool) -> str:
		if staged:
			if self.repo.head_is_unborn:
				# No commits yet: everything in the index is new
				base = self.repo[self.repo.TreeBuilder().write()]
			else:
				base = self.repo.head.peel(Commit).tree
			diff = self.repo.diff(base, cached=True)
		else:
			diff = self.repo.diff()

		if isinstance(diff, Diff):
			return diff.patch or ""
		if isinstance(diff, Patch):
			return diff.text or ""
		return ""

	async def diff(self, staged: bool) -> str:
		"""
		Get the unified diff of the repository.

		Args:
		    staged: Diff the index against HEAD if True, else the working tree
		        against the index

		Returns:
		    Patch text, empty when there are no changes

		Raises:
		    GitError: If pygit2 fails to produce the diff

		"""
		try:
			return await asyncify(self._diff_sync)(staged)
		except Pygit2Error as e:
			kind = "staged" if staged else "unstaged"
			logger.exception("Failed to get %s diff for %s", kind, self.root)
			msg = f"Failed to get {kind} diff for {self.root}: {e}"
			raise GitError(msg) from e

	async def stat(self, path: str) -> os.stat_result:
		"""
		Stat a file given relative to the repository root.

		Raises:
		    OSError: If the file does not exist (e.g. it was deleted)

		"""
		return await aiofiles.os.stat(self.root / path)


def _find_nested_roots(base: Path, max_depth: int) -> Iterator[Path]:
	if max_depth <= 0 or not base.is_dir():
		return
	try:
		entries = sorted(base.iterdir())
	except OSError as e:
		logger.debug("Cannot list %s: %s", base, e)
		return
	for entry in entries:
		if entry.name in SKIPPED_DIRECTORIES or not entry.is_dir() or entry.is_symlink():
			continue
		if (entry / ".git").exists():
			yield entry
		yield from _find_nested_roots(entry, max_depth - 1)


def discover_repositories(
	paths: Iterable[Path],
	max_depth: int = 2,
	cwd: Path | None = None,
) -> list[GitRepository]:
	"""
	Find the Git repositories of a set of workspace folders.

	For each path, the enclosing repository is found by walking up, and
	nested repositories are found by walking down at most ``max_depth``
	levels. The repository with the deepest root containing ``cwd`` is
	flagged as selected.

	Args:
	    paths: Workspace folders
	    max_depth: How deep to look for nested repositories
	    cwd: Directory used to pick the selected repository (defaults to the
	        current working directory)

	Returns:
	    Repositories de-duplicated by root, in discovery order

	"""
	found: dict[Path, GitRepository] = {}

	def _add(root: Path) -> None:
		try:
			repository = GitRepository(root)
		except GitError as e:
			logger.debug("Skipping %s: %s", root, e)
			return
		found.setdefault(repository.root, repository)

	for path in paths:
		resolved = Path(path).expanduser().resolve()
		git_dir = discover_repository(str(resolved))
		if git_dir is not None:
			_add(Path(git_dir))
		for nested_root in _find_nested_roots(resolved, max_depth):
			_add(nested_root)

	current = (cwd or Path.cwd()).resolve()
	containing = [root for root in found if current == root or root in current.parents]
	if containing:
		found[max(containing, key=lambda root: len(root.parts))].selected = True

	logger.debug("Discovered %d repositories: %s", len(found), [str(root) for root in found])
	return list(found.values())
