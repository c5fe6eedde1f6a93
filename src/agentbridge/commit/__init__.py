"""Commit message generation."""

from .orchestrator import CommitMessageOrchestrator, CommitOutcome, CommitResult, sort_repository_choices

__all__ = ["CommitMessageOrchestrator", "CommitOutcome", "CommitResult", "sort_repository_choices"]
