"""Remote agent contract and its HTTP implementation."""

from .base import Agent, AgentStatus, AuthUrl
from .client import HttpAgent
from .errors import AgentAuthError, AgentConnectionError, AgentError, AgentResponseError

__all__ = [
	"Agent",
	"AgentAuthError",
	"AgentConnectionError",
	"AgentError",
	"AgentResponseError",
	"AgentStatus",
	"AuthUrl",
	"HttpAgent",
]
