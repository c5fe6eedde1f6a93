"""Tests for the HTTP agent client."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest
import requests
import yaml

from agentbridge.agent.base import AgentStatus, AuthUrl
from agentbridge.agent.client import (
	AUTH_TOKEN_PATH,
	AUTH_URL_PATH,
	CHAT_COMPLETIONS_PATH,
	HEALTH_PATH,
	HttpAgent,
)
from agentbridge.agent.errors import AgentAuthError, AgentConnectionError, AgentResponseError
from agentbridge.config.config_loader import ConfigLoader
from agentbridge.utils.cancellation import AbortController, AbortError


def _response(status_code: int, payload: Any = None) -> Mock:  # noqa: ANN401
	response = Mock(spec=requests.Response)
	response.status_code = status_code
	response.json.return_value = payload
	return response


def _make_agent(*responses: Any, config_file: Path | None = None) -> tuple[HttpAgent, Mock]:  # noqa: ANN401
	session = Mock(spec=requests.Session)
	session.request.side_effect = list(responses)
	loader = ConfigLoader(config_file)
	loader.set("server.endpoint", "http://agent.test:8080")
	loader.set("auth.poll_interval", 0.01)
	loader.set("auth.max_poll_attempts", 3)
	return HttpAgent(loader, session=session), session


def _called_paths(session: Mock) -> list[tuple[str, str]]:
	return [(c.args[0], c.args[1].removeprefix("http://agent.test:8080")) for c in session.request.call_args_list]


@pytest.mark.unit
@pytest.mark.agent
class TestHealth:
	"""Status tracking through the health endpoint."""

	@pytest.mark.asyncio
	async def test_initial_status(self) -> None:
		"""No round-trip yet means not initialized."""
		agent, _ = _make_agent()

		assert agent.get_status() == AgentStatus.NOT_INITIALIZED

	@pytest.mark.asyncio
	@pytest.mark.parametrize(
		("status_code", "expected"),
		[(200, AgentStatus.READY), (401, AgentStatus.UNAUTHORIZED), (403, AgentStatus.UNAUTHORIZED)],
	)
	async def test_health_status(self, status_code: int, expected: AgentStatus) -> None:
		"""The health response code maps onto the agent status."""
		agent, session = _make_agent(_response(status_code))

		assert await agent.check_health() == expected
		assert agent.get_status() == expected
		assert _called_paths(session) == [("GET", HEALTH_PATH)]

	@pytest.mark.asyncio
	async def test_unexpected_health_code(self) -> None:
		"""A server error marks the agent disconnected."""
		agent, _ = _make_agent(_response(500))

		with pytest.raises(AgentResponseError) as exc_info:
			await agent.check_health()

		assert exc_info.value.status_code == 500
		assert agent.get_status() == AgentStatus.DISCONNECTED

	@pytest.mark.asyncio
	async def test_connection_error(self) -> None:
		"""Network failures become AgentConnectionError."""
		agent, _ = _make_agent(requests.ConnectionError("refused"))

		with pytest.raises(AgentConnectionError, match="agent.test"):
			await agent.check_health()

		assert agent.get_status() == AgentStatus.DISCONNECTED


@pytest.mark.unit
@pytest.mark.agent
@pytest.mark.auth
class TestAuthorization:
	"""Issuing and redeeming authorization codes."""

	@pytest.mark.asyncio
	async def test_already_authorized_returns_none(self) -> None:
		"""A ready agent issues no URL."""
		agent, session = _make_agent(_response(200))

		assert await agent.request_auth_url(AbortController().signal) is None
		assert _called_paths(session) == [("GET", HEALTH_PATH)]

	@pytest.mark.asyncio
	async def test_request_auth_url(self) -> None:
		"""An unauthorized agent issues a URL and a code."""
		agent, session = _make_agent(
			_response(401),
			_response(200, {"authUrl": "https://agent.test/auth?code=xyz", "code": "xyz"}),
		)

		auth_url = await agent.request_auth_url(AbortController().signal)

		assert auth_url == AuthUrl(url="https://agent.test/auth?code=xyz", code="xyz")
		assert _called_paths(session) == [("GET", HEALTH_PATH), ("POST", AUTH_URL_PATH)]

	@pytest.mark.asyncio
	async def test_auth_unsupported_returns_none(self) -> None:
		"""Servers without the auth endpoint issue no URL."""
		agent, _ = _make_agent(_response(401), _response(404))

		assert await agent.request_auth_url(AbortController().signal) is None
		assert agent.get_status() == AgentStatus.UNAUTHORIZED

	@pytest.mark.asyncio
	async def test_malformed_auth_url_response(self) -> None:
		"""A response without a code is an error."""
		agent, _ = _make_agent(_response(401), _response(200, {"authUrl": "https://agent.test/auth"}))

		with pytest.raises(AgentResponseError, match="code"):
			await agent.request_auth_url(AbortController().signal)

	@pytest.mark.asyncio
	async def test_poll_until_token(self) -> None:
		"""Pending responses are retried; the token is stored and used."""
		agent, session = _make_agent(_response(202), _response(200, {"token": "secret"}), _response(200))

		await agent.poll_auth_token("xyz", AbortController().signal)

		assert agent.get_status() == AgentStatus.READY
		assert agent.config_loader.get.server.token == "secret"
		assert _called_paths(session) == [("GET", AUTH_TOKEN_PATH), ("GET", AUTH_TOKEN_PATH), ("GET", HEALTH_PATH)]
		assert session.request.call_args_list[0].kwargs["params"] == {"code": "xyz"}
		assert session.request.call_args_list[2].kwargs["headers"]["Authorization"] == "Bearer secret"

	@pytest.mark.asyncio
	async def test_token_is_saved_when_config_file_used(self, tmp_path: Path) -> None:
		"""With a configuration file the token survives the session."""
		config_file = tmp_path / "config.yml"
		config_file.write_text("server:\n  endpoint: http://agent.test:8080\n")
		agent, _ = _make_agent(_response(200, {"token": "secret"}), _response(200), config_file=config_file)

		await agent.poll_auth_token("xyz", AbortController().signal)

		saved = yaml.safe_load(config_file.read_text())
		assert saved["server"]["token"] == "secret"

	@pytest.mark.asyncio
	async def test_rejected_code(self) -> None:
		"""Any other status rejects the handshake."""
		agent, _ = _make_agent(_response(400))

		with pytest.raises(AgentAuthError, match="rejected"):
			await agent.poll_auth_token("xyz", AbortController().signal)

	@pytest.mark.asyncio
	async def test_poll_attempts_exhausted(self) -> None:
		"""The user never approving the code ends in AgentAuthError."""
		agent, session = _make_agent(_response(202), _response(202), _response(202))

		with pytest.raises(AgentAuthError, match="3 attempts"):
			await agent.poll_auth_token("xyz", AbortController().signal)

		assert session.request.call_count == 3

	@pytest.mark.asyncio
	async def test_abort_while_waiting(self) -> None:
		"""Firing the signal between polls stops polling."""
		agent, session = _make_agent(_response(202), _response(202), _response(202))
		agent.config_loader.set("auth.poll_interval", 60)
		controller = AbortController()
		asyncio.get_running_loop().call_later(0.05, controller.abort)

		with pytest.raises(AbortError):
			await agent.poll_auth_token("xyz", controller.signal)

		assert session.request.call_count == 1

	@pytest.mark.asyncio
	async def test_aborted_signal_sends_nothing(self) -> None:
		"""An already-aborted signal prevents any request."""
		agent, session = _make_agent(_response(202))
		controller = AbortController()
		controller.abort()

		with pytest.raises(AbortError):
			await agent.poll_auth_token("xyz", controller.signal)

		session.request.assert_not_called()


@pytest.mark.unit
@pytest.mark.agent
@pytest.mark.commit
class TestGenerateCommitMessage:
	"""Chat completion requests."""

	@pytest.mark.asyncio
	async def test_generates_message(self) -> None:
		"""The diff is sent in the prompt and the message is extracted."""
		completion = {"choices": [{"message": {"role": "assistant", "content": "`feat(api): add endpoint`"}}]}
		agent, session = _make_agent(_response(200, completion))

		message = await agent.generate_commit_message(["diff --git a/api.py b/api.py\n"], AbortController().signal)

		assert message == "feat(api): add endpoint"
		method, path = _called_paths(session)[0]
		assert (method, path) == ("POST", CHAT_COMPLETIONS_PATH)
		payload = session.request.call_args.kwargs["json"]
		assert payload["stream"] is False
		assert "diff --git a/api.py b/api.py" in payload["messages"][0]["content"]

	@pytest.mark.asyncio
	async def test_unauthorized(self) -> None:
		"""A 401 marks the agent unauthorized."""
		agent, _ = _make_agent(_response(401))

		with pytest.raises(AgentAuthError):
			await agent.generate_commit_message(["diff"], AbortController().signal)

		assert agent.get_status() == AgentStatus.UNAUTHORIZED

	@pytest.mark.asyncio
	async def test_empty_message(self) -> None:
		"""An empty completion is an error, not an empty commit message."""
		agent, _ = _make_agent(_response(200, {"choices": [{"message": {"content": "  "}}]}))

		with pytest.raises(AgentResponseError, match="empty"):
			await agent.generate_commit_message(["diff"], AbortController().signal)

	@pytest.mark.asyncio
	async def test_missing_choices(self) -> None:
		"""A payload without choices is rejected."""
		agent, _ = _make_agent(_response(200, {"choices": []}))

		with pytest.raises(AgentResponseError, match="no message content"):
			await agent.generate_commit_message(["diff"], AbortController().signal)
