"""Pydantic schemas for the AgentBridge configuration file."""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from agentbridge.config.defaults import DEFAULT_ENDPOINT, DEFAULT_PROMPT_TEMPLATE, DEFAULT_RESPONSE_MATCHER


def validate_endpoint_url(value: str) -> str:
	"""
	Check that ``value`` is an http(s) URL with a host.

	Returns:
	    The URL without a trailing slash

	Raises:
	    ValueError: If the URL is not a valid http or https URL

	"""
	parsed = urlparse(value.strip())
	if parsed.scheme not in ("http", "https") or not parsed.netloc:
		msg = "Please enter a valid http or https URL."
		raise ValueError(msg)
	return value.strip().rstrip("/")


class ServerSchema(BaseModel):
	"""Connection to the agent server."""

	endpoint: str = DEFAULT_ENDPOINT
	token: str = ""
	request_timeout: float = Field(default=30.0, gt=0)

	@field_validator("endpoint")
	@classmethod
	def _check_endpoint(cls, value: str) -> str:
		return validate_endpoint_url(value)

	@field_validator("token")
	@classmethod
	def _strip_token(cls, value: str) -> str:
		return value.strip()


class AuthSchema(BaseModel):
	"""Browser authorization handshake settings."""

	poll_interval: float = Field(default=5.0, gt=0)
	max_poll_attempts: int = Field(default=60, ge=1)


class CommitSchema(BaseModel):
	"""Commit message generation settings."""

	max_diff_length: int = Field(default=3600, ge=1)
	prompt_template: str = DEFAULT_PROMPT_TEMPLATE
	response_matcher: str | None = DEFAULT_RESPONSE_MATCHER
	discovery_depth: int = Field(default=2, ge=0)

	@field_validator("prompt_template")
	@classmethod
	def _require_diff_placeholder(cls, value: str) -> str:
		if "{diff}" not in value:
			msg = "prompt_template must contain the {diff} placeholder"
			raise ValueError(msg)
		return value


class AppConfigSchema(BaseModel):
	"""Root of the configuration file."""

	server: ServerSchema = Field(default_factory=ServerSchema)
	auth: AuthSchema = Field(default_factory=AuthSchema)
	commit: CommitSchema = Field(default_factory=CommitSchema)
