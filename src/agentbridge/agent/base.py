"""Logical contract of the remote coding-assistant agent."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from collections.abc import Sequence

	from agentbridge.utils.cancellation import AbortSignal


class AgentStatus(str, Enum):
	"""Readiness of the agent."""

	NOT_INITIALIZED = "notInitialized"
	READY = "ready"
	DISCONNECTED = "disconnected"
	UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class AuthUrl:
	"""An issued authorization URL and the code used to claim its token."""

	url: str
	code: str


class Agent(ABC):
	"""
	Handle to the remote agent.

	Instances are passed explicitly to the flows that need them; there is no
	process-wide agent.

	"""

	@abstractmethod
	async def request_auth_url(self, signal: AbortSignal) -> AuthUrl | None:
		"""
		Ask the agent to issue an authorization URL.

		Returns:
		    The URL and exchange code, or None if no URL was issued (check
		    ``get_status()`` to tell "already authorized" from failure)

		Raises:
		    AbortError: If ``signal`` fires
		    AgentError: On any other failure

		"""

	@abstractmethod
	async def poll_auth_token(self, code: str, signal: AbortSignal) -> None:
		"""
		Wait until the user completes authorization for ``code``.

		Raises:
		    AbortError: If ``signal`` fires
		    AgentError: On any other failure

		"""

	@abstractmethod
	def get_status(self) -> AgentStatus:
		"""Return the agent's last known status."""

	@abstractmethod
	async def generate_commit_message(self, diff_chunks: Sequence[str], signal: AbortSignal) -> str:
		"""
		Synthesize a commit message from diff chunks, read in the given order.

		Raises:
		    AbortError: If ``signal`` fires
		    AgentError: On any other failure

		"""
