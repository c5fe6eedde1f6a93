"""
Interactive authorization handshake with the agent.

The handshake is an explicit state machine::

    IDLE -> REQUESTING -> AWAITING_USER_ACTION -> POLLING_TOKEN -> SUCCEEDED
                                                                 | FAILED
                                                                 | CANCELLED

Cancellation is a normal outcome and produces no notification. Any other
error becomes a single "authorization failed" notification, except a broken
post-condition, which propagates.

"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from agentbridge.agent.base import AgentStatus
from agentbridge.host import notifications
from agentbridge.utils.cancellation import AbortError, CancellationBridge

if TYPE_CHECKING:
	from collections.abc import Callable, Iterator

	from agentbridge.agent.base import Agent
	from agentbridge.host.base import Host, Progress
	from agentbridge.utils.cancellation import AbortSignal, CancellationToken

logger = logging.getLogger(__name__)

PROGRESS_TITLE = "Agent Server Authorization"


class AuthState(Enum):
	"""States of the handshake."""

	IDLE = auto()
	REQUESTING = auto()
	AWAITING_USER_ACTION = auto()
	POLLING_TOKEN = auto()
	SUCCEEDED = auto()
	FAILED = auto()
	CANCELLED = auto()

	@property
	def is_terminal(self) -> bool:
		"""Whether the handshake is over in this state."""
		return self in (AuthState.SUCCEEDED, AuthState.FAILED, AuthState.CANCELLED)


class AuthOutcome(Enum):
	"""What a handshake invocation amounted to."""

	SUCCEEDED = "succeeded"
	ALREADY_AUTHORIZED = "already_authorized"
	FAILED = "failed"
	CANCELLED = "cancelled"


class InvariantViolationError(AssertionError):
	"""A post-condition of a successful step does not hold."""


@dataclass
class AuthSession:
	"""State of one in-progress handshake."""

	signal: AbortSignal
	url: str | None = None
	code: str | None = None


class AuthFlowController:
	"""
	Drives the browser authorization handshake.

	Each ``run()`` creates its own AuthSession, so separate controllers never
	interfere with each other's cancellation.

	"""

	def __init__(
		self,
		agent: Agent,
		host: Host,
		on_auth_start: Callable[[], None] | None = None,
		on_auth_end: Callable[[], None] | None = None,
	) -> None:
		"""
		Initialize the controller.

		Args:
		    agent: The agent to authorize against
		    host: UI services (progress, browser, notifications)
		    on_auth_start: Called once when the flow starts
		    on_auth_end: Called once when the flow reaches a terminal state,
		        whatever that state is

		"""
		self.agent = agent
		self.host = host
		self.on_auth_start = on_auth_start
		self.on_auth_end = on_auth_end
		self.state = AuthState.IDLE
		self.transitions: list[AuthState] = [AuthState.IDLE]
		self.session: AuthSession | None = None
		self._running = False

	def _transition(self, state: AuthState) -> None:
		logger.debug("Auth flow: %s -> %s", self.state.name, state.name)
		self.state = state
		self.transitions.append(state)

	@contextlib.contextmanager
	def _flow_hooks(self) -> Iterator[None]:
		if self.on_auth_start is not None:
			self.on_auth_start()
		try:
			yield
		finally:
			if self.on_auth_end is not None:
				self.on_auth_end()

	async def run(self) -> AuthOutcome:
		"""
		Run the handshake under a cancellable progress indicator.

		Returns:
		    The outcome of this invocation

		Raises:
		    InvariantViolationError: If the agent is not ready after a
		        successful token exchange
		    RuntimeError: If this controller is already running a handshake

		"""
		# Claimed before the first await so a second caller cannot slip in
		if self._running:
			msg = "An authorization handshake is already running on this controller"
			raise RuntimeError(msg)
		self._running = True

		self.state = AuthState.IDLE
		self.transitions = [AuthState.IDLE]
		try:
			return await self.host.with_progress(PROGRESS_TITLE, self._run_with_progress, cancellable=True)
		finally:
			self._running = False

	async def _run_with_progress(self, progress: Progress, token: CancellationToken) -> AuthOutcome:
		with CancellationBridge(token) as signal, self._flow_hooks():
			self.session = AuthSession(signal=signal)
			try:
				return await self._handshake(self.session, progress)
			except (AbortError, asyncio.CancelledError):
				self._transition(AuthState.CANCELLED)
				if not signal.aborted:
					raise
				logger.info("Authorization cancelled")
				return AuthOutcome.CANCELLED
			except InvariantViolationError:
				self._transition(AuthState.FAILED)
				raise
			except Exception:
				self._transition(AuthState.FAILED)
				logger.exception("Authorization failed")
				notifications.show_information_when_auth_failed(self.host)
				return AuthOutcome.FAILED
			finally:
				self.session = None

	async def _handshake(self, session: AuthSession, progress: Progress) -> AuthOutcome:
		self._transition(AuthState.REQUESTING)
		progress.report("Generating authorization url...")
		auth_url = await self.agent.request_auth_url(session.signal)

		if auth_url is None:
			if self.agent.get_status() == AgentStatus.READY:
				self._transition(AuthState.SUCCEEDED)
				notifications.show_information_when_start_auth_but_already_authorized(self.host)
				return AuthOutcome.ALREADY_AUTHORIZED
			self._transition(AuthState.FAILED)
			logger.warning("Agent issued no authorization URL (status: %s)", self.agent.get_status().value)
			notifications.show_information_when_auth_failed(self.host)
			return AuthOutcome.FAILED

		session.url, session.code = auth_url.url, auth_url.code
		self.host.open_external(session.url)
		self._transition(AuthState.AWAITING_USER_ACTION)
		progress.report("Waiting for authorization from browser...")

		session.signal.raise_if_aborted()
		self._transition(AuthState.POLLING_TOKEN)
		await self.agent.poll_auth_token(session.code, session.signal)

		status = self.agent.get_status()
		if status != AgentStatus.READY:
			msg = f"Agent status is {status.value!r} after a successful token exchange"
			raise InvariantViolationError(msg)

		self._transition(AuthState.SUCCEEDED)
		notifications.show_information_auth_success(self.host)
		return AuthOutcome.SUCCEEDED
