"""Error types for the remote agent."""

from __future__ import annotations


class AgentError(Exception):
	"""Base exception for failures reported by, or talking to, the agent."""


class AgentConnectionError(AgentError):
	"""The agent server could not be reached."""


class AgentAuthError(AgentError):
	"""The authorization exchange was rejected or never completed."""


class AgentResponseError(AgentError):
	"""The agent answered with something unusable."""

	def __init__(self, message: str, status_code: int | None = None) -> None:
		"""
		Initialize the error.

		Args:
		    message: Error description
		    status_code: HTTP status of the response, if any

		"""
		super().__init__(message)
		self.status_code = status_code
