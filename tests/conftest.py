"""Global test fixtures and in-memory collaborators."""

from __future__ import annotations

import os
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from agentbridge.agent.base import Agent, AgentStatus, AuthUrl
from agentbridge.git.utils import CommitInputBox
from agentbridge.host.base import Host, Progress, QuickPickItem
from agentbridge.utils.cancellation import AbortSignal, CancellationToken, CancellationTokenSource


class FakeProgress(Progress):
	"""Records reported messages."""

	def __init__(self) -> None:
		self.messages: list[str] = []

	def report(self, message: str) -> None:
		self.messages.append(message)


class FakeHost(Host):
	"""Host that records every interaction instead of drawing UI."""

	def __init__(self, pick: Callable[[Sequence[QuickPickItem[Any]]], QuickPickItem[Any] | None] | None = None) -> None:
		self.pick = pick
		self.progress = FakeProgress()
		self.progress_titles: list[str] = []
		self.token_source: CancellationTokenSource | None = None
		self.information: list[str] = []
		self.errors: list[str] = []
		self.opened_urls: list[str] = []
		self.picker_items: list[QuickPickItem[Any]] | None = None
		self.scm_focused = False
		self.input_answer: str | None = None

	async def with_progress(
		self,
		title: str,
		task: Callable[[Progress, CancellationToken], Awaitable[Any]],
		cancellable: bool = True,
	) -> Any:
		self.progress_titles.append(title)
		self.token_source = CancellationTokenSource()
		return await task(self.progress, self.token_source.token)

	def cancel(self) -> None:
		"""Simulate the user pressing the progress notification's cancel button."""
		assert self.token_source is not None
		self.token_source.cancel()

	def open_external(self, url: str) -> None:
		self.opened_urls.append(url)

	def show_information(self, message: str) -> None:
		self.information.append(message)

	def show_error(self, message: str) -> None:
		self.errors.append(message)

	async def show_quick_pick(self, items: Sequence[QuickPickItem[Any]], placeholder: str) -> QuickPickItem[Any] | None:
		self.picker_items = list(items)
		return self.pick(items) if self.pick else None

	async def show_input_box(
		self,
		prompt: str,
		value: str | None = None,
		password: bool = False,
		validate: Callable[[str], str | None] | None = None,
	) -> str | None:
		return self.input_answer

	def focus_scm_view(self) -> None:
		self.scm_focused = True

	@property
	def notifications(self) -> list[str]:
		return self.information + self.errors


class FakeAgent(Agent):
	"""Scriptable agent double."""

	def __init__(
		self,
		auth_url: AuthUrl | None = None,
		status: AgentStatus = AgentStatus.UNAUTHORIZED,
		status_after_poll: AgentStatus = AgentStatus.READY,
		commit_message: str = "feat(core): add things",
	) -> None:
		self.auth_url = auth_url
		self.status = status
		self.status_after_poll = status_after_poll
		self.commit_message = commit_message
		self.request_error: Exception | None = None
		self.poll_error: Exception | None = None
		self.generate_error: Exception | None = None
		self.poll_hook: Callable[[AbortSignal], Awaitable[None]] | None = None
		self.generate_hook: Callable[[AbortSignal], Awaitable[None]] | None = None
		self.polled_codes: list[str] = []
		self.generate_calls: list[list[str]] = []
		self.signals: list[AbortSignal] = []

	async def request_auth_url(self, signal: AbortSignal) -> AuthUrl | None:
		self.signals.append(signal)
		signal.raise_if_aborted()
		if self.request_error is not None:
			raise self.request_error
		return self.auth_url

	async def poll_auth_token(self, code: str, signal: AbortSignal) -> None:
		self.polled_codes.append(code)
		if self.poll_hook is not None:
			await self.poll_hook(signal)
		signal.raise_if_aborted()
		if self.poll_error is not None:
			raise self.poll_error
		self.status = self.status_after_poll

	def get_status(self) -> AgentStatus:
		return self.status

	async def generate_commit_message(self, diff_chunks: Sequence[str], signal: AbortSignal) -> str:
		self.generate_calls.append(list(diff_chunks))
		if self.generate_hook is not None:
			await self.generate_hook(signal)
		signal.raise_if_aborted()
		if self.generate_error is not None:
			raise self.generate_error
		return self.commit_message


class FakeRepository:
	"""In-memory repository with canned diffs and modification times."""

	def __init__(
		self,
		root: str,
		staged: str = "",
		unstaged: str = "",
		mtimes: dict[str, float] | None = None,
		selected: bool = False,
	) -> None:
		self.root = Path(root)
		self.staged = staged
		self.unstaged = unstaged
		self.mtimes = mtimes or {}
		self.selected = selected
		self.input_box = CommitInputBox()
		self.diff_calls: list[bool] = []
		self.stat_calls: list[str] = []

	@property
	def name(self) -> str:
		return self.root.name

	async def diff(self, staged: bool) -> str:
		self.diff_calls.append(staged)
		return self.staged if staged else self.unstaged

	async def stat(self, path: str) -> os.stat_result:
		self.stat_calls.append(path)
		if path not in self.mtimes:
			raise FileNotFoundError(path)
		return SimpleNamespace(st_mtime=self.mtimes[path])  # type: ignore[return-value]


def make_file_diff(path: str, body: str = "+added line\n") -> str:
	"""Build a minimal git diff for one file."""
	return (
		f"diff --git a/{path} b/{path}\n"
		"index 1111111..2222222 100644\n"
		f"--- a/{path}\n"
		f"+++ b/{path}\n"
		"@@ -1,1 +1,2 @@\n"
		" unchanged\n"
		f"{body}"
	)


@pytest.fixture
def host() -> FakeHost:
	"""A recording host."""
	return FakeHost()


@pytest.fixture
def agent() -> FakeAgent:
	"""An agent that issues a URL and becomes ready after polling."""
	return FakeAgent(auth_url=AuthUrl(url="https://agent.example/auth?code=abc", code="abc"))


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
	"""Keep tests away from the user's real configuration and environment."""
	config_home = tmp_path / "xdg"
	config_home.mkdir()
	monkeypatch.setattr("agentbridge.config.config_loader.xdg_config_home", str(config_home))
	monkeypatch.setenv("HOME", str(tmp_path / "home"))
	for name in list(os.environ):
		if name.startswith("AGENTBRIDGE_"):
			monkeypatch.delenv(name)
	monkeypatch.chdir(tmp_path)
	return config_home
