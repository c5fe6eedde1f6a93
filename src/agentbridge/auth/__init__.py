"""Authorization handshake with the agent server."""

from .flow import AuthFlowController, AuthOutcome, AuthSession, AuthState, InvariantViolationError

__all__ = ["AuthFlowController", "AuthOutcome", "AuthSession", "AuthState", "InvariantViolationError"]
