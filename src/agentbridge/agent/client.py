"""
HTTP client for a Tabby-style agent server.

Requests are made with ``requests`` in a worker thread (``asyncer.asyncify``)
and raced against the caller's abort signal, so a cancelled operation returns
promptly while the request itself runs to completion in the background.

"""

from __future__ import annotations

import asyncio
import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

import requests
from asyncer import asyncify

from agentbridge.config.config_loader import ConfigError

from .base import Agent, AgentStatus, AuthUrl
from .errors import AgentAuthError, AgentConnectionError, AgentResponseError
from .prompts import build_commit_message_prompt, extract_commit_message

if TYPE_CHECKING:
	from collections.abc import Sequence

	from agentbridge.config.config_loader import ConfigLoader
	from agentbridge.utils.cancellation import AbortSignal

logger = logging.getLogger(__name__)

HEALTH_PATH = "/v1/health"
AUTH_URL_PATH = "/v1beta/auth/url"
AUTH_TOKEN_PATH = "/v1beta/auth/token"  # noqa: S105
CHAT_COMPLETIONS_PATH = "/v1/chat/completions"

UNAUTHORIZED_CODES = (HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN)
PENDING_CODES = (HTTPStatus.ACCEPTED, HTTPStatus.NOT_FOUND)


class HttpAgent(Agent):
	"""Agent implementation speaking HTTP to the agent server."""

	def __init__(self, config_loader: ConfigLoader, session: requests.Session | None = None) -> None:
		"""
		Initialize the client.

		Args:
		    config_loader: Source of endpoint, token and tuning values; the
		        token obtained by authorization is written back to it
		    session: Optional requests session (tests inject one)

		"""
		self.config_loader = config_loader
		self.session = session or requests.Session()
		self._status = AgentStatus.NOT_INITIALIZED

	@property
	def endpoint(self) -> str:
		"""Base URL of the agent server."""
		return self.config_loader.get.server.endpoint

	def get_status(self) -> AgentStatus:
		"""Return the status recorded by the last server round-trip."""
		return self._status

	def _headers(self) -> dict[str, str]:
		headers = {"Accept": "application/json"}
		token = self.config_loader.get.server.token
		if token:
			headers["Authorization"] = f"Bearer {token}"
		return headers

	def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:  # noqa: ANN401
		url = f"{self.endpoint}{path}"
		logger.debug("%s %s", method, url)
		try:
			return self.session.request(
				method,
				url,
				headers=self._headers(),
				timeout=self.config_loader.get.server.request_timeout,
				**kwargs,
			)
		except requests.RequestException as e:
			self._status = AgentStatus.DISCONNECTED
			msg = f"Could not reach agent server at {self.endpoint}: {e}"
			raise AgentConnectionError(msg) from e

	async def _send(self, signal: AbortSignal | None, method: str, path: str, **kwargs: Any) -> requests.Response:  # noqa: ANN401
		call = asyncify(self._request)(method, path, **kwargs)
		if signal is None:
			return await call
		return await signal.race(call)

	@staticmethod
	def _json(response: requests.Response) -> dict[str, Any]:
		try:
			data = response.json()
		except ValueError as e:
			msg = f"Agent server returned invalid JSON (HTTP {response.status_code})"
			raise AgentResponseError(msg, response.status_code) from e
		if not isinstance(data, dict):
			msg = "Agent server returned an unexpected payload"
			raise AgentResponseError(msg, response.status_code)
		return data

	async def check_health(self, signal: AbortSignal | None = None) -> AgentStatus:
		"""
		Refresh the status from the server's health endpoint.

		Returns:
		    The new status

		Raises:
		    AgentConnectionError: If the server cannot be reached
		    AgentResponseError: On an unexpected HTTP status

		"""
		response = await self._send(signal, "GET", HEALTH_PATH)
		if response.status_code == HTTPStatus.OK:
			self._status = AgentStatus.READY
		elif response.status_code in UNAUTHORIZED_CODES:
			self._status = AgentStatus.UNAUTHORIZED
		else:
			self._status = AgentStatus.DISCONNECTED
			msg = f"Health check failed with HTTP {response.status_code}"
			raise AgentResponseError(msg, response.status_code)
		logger.debug("Agent status: %s", self._status.value)
		return self._status

	async def request_auth_url(self, signal: AbortSignal) -> AuthUrl | None:
		"""Issue an authorization URL, or None if already authorized or unsupported."""
		if await self.check_health(signal) == AgentStatus.READY:
			return None

		response = await self._send(signal, "POST", AUTH_URL_PATH)
		if response.status_code == HTTPStatus.NOT_FOUND:
			logger.warning("Agent server at %s does not support browser authorization", self.endpoint)
			return None
		if response.status_code != HTTPStatus.OK:
			msg = f"Requesting an authorization URL failed with HTTP {response.status_code}"
			raise AgentResponseError(msg, response.status_code)

		data = self._json(response)
		url, code = data.get("authUrl"), data.get("code")
		if not url or not code:
			msg = "Authorization response is missing 'authUrl' or 'code'"
			raise AgentResponseError(msg, response.status_code)
		return AuthUrl(url=str(url), code=str(code))

	async def poll_auth_token(self, code: str, signal: AbortSignal) -> None:
		"""
		Poll until the user approves ``code`` in the browser.

		The token is stored in the configuration (and persisted when a
		configuration file is in use), then the health check is repeated.

		Raises:
		    AbortError: If ``signal`` fires
		    AgentAuthError: If the code is rejected or never approved

		"""
		auth_config = self.config_loader.get.auth
		for attempt in range(1, auth_config.max_poll_attempts + 1):
			signal.raise_if_aborted()
			response = await self._send(signal, "GET", AUTH_TOKEN_PATH, params={"code": code})

			if response.status_code == HTTPStatus.OK:
				token = self._json(response).get("token")
				if not token:
					msg = "Authorization token response is missing 'token'"
					raise AgentResponseError(msg, response.status_code)
				self._store_token(str(token))
				await self.check_health(signal)
				return
			if response.status_code not in PENDING_CODES:
				msg = f"Authorization was rejected (HTTP {response.status_code})"
				raise AgentAuthError(msg)

			logger.debug("Authorization pending (attempt %d/%d)", attempt, auth_config.max_poll_attempts)
			await signal.race(asyncio.sleep(auth_config.poll_interval))

		msg = f"Authorization was not completed after {auth_config.max_poll_attempts} attempts"
		raise AgentAuthError(msg)

	def _store_token(self, token: str) -> None:
		self.config_loader.set("server.token", token)
		if self.config_loader.config_file is None:
			return
		try:
			self.config_loader.save()
		except ConfigError:
			logger.warning("Authorized, but the token could not be saved; it is valid for this session only")

	async def generate_commit_message(self, diff_chunks: Sequence[str], signal: AbortSignal) -> str:
		"""
		Ask the server's chat model for a commit message.

		Raises:
		    AbortError: If ``signal`` fires
		    AgentError: If the request fails or yields no message

		"""
		commit_config = self.config_loader.get.commit
		prompt = build_commit_message_prompt(
			commit_config.prompt_template,
			diff_chunks,
			commit_config.max_diff_length,
		)
		payload = {
			"messages": [{"role": "user", "content": prompt}],
			"stream": False,
		}
		response = await self._send(signal, "POST", CHAT_COMPLETIONS_PATH, json=payload)
		if response.status_code in UNAUTHORIZED_CODES:
			self._status = AgentStatus.UNAUTHORIZED
			msg = "The agent server rejected the request; run 'agentbridge auth' first"
			raise AgentAuthError(msg)
		if response.status_code != HTTPStatus.OK:
			msg = f"Commit message generation failed with HTTP {response.status_code}"
			raise AgentResponseError(msg, response.status_code)

		data = self._json(response)
		try:
			content = data["choices"][0]["message"]["content"]
		except (KeyError, IndexError, TypeError) as e:
			msg = "Chat completion response has no message content"
			raise AgentResponseError(msg, response.status_code) from e

		message = extract_commit_message(str(content or ""), commit_config.response_matcher)
		if not message:
			msg = "The agent returned an empty commit message"
			raise AgentResponseError(msg, response.status_code)
		return message
