"""User-visible notification texts."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from .base import Host

AUTH_SUCCESS = "Congrats, you're authorized, start to use the agent now."
AUTH_ALREADY_AUTHORIZED = "You are already authorized now."
AUTH_FAILED = "Cannot connect to the server. Please check your settings or the server status."
NO_REPOSITORY = "No Git repositories found."
EMPTY_DIFF = "No changes to describe."
COMMIT_MESSAGE_FAILED = "Failed to generate a commit message."


def show_information_auth_success(host: Host) -> None:
	"""Notify that the handshake completed."""
	host.show_information(AUTH_SUCCESS)


def show_information_when_start_auth_but_already_authorized(host: Host) -> None:
	"""Notify that no handshake was needed."""
	host.show_information(AUTH_ALREADY_AUTHORIZED)


def show_information_when_auth_failed(host: Host) -> None:
	"""Notify that the handshake failed."""
	host.show_information(AUTH_FAILED)


def show_information_no_repository(host: Host) -> None:
	"""Notify that there is no repository to work on."""
	host.show_information(NO_REPOSITORY)
