"""Git repositories and diff handling."""

from .diff_prioritizer import (
	UNKNOWN_PRIORITY,
	DiffChunk,
	extract_file_path,
	prioritize_chunks,
	prioritize_diff,
	split_diff,
)
from .utils import CommitInputBox, GitError, GitRepository, discover_repositories, run_git_command

__all__ = [
	"UNKNOWN_PRIORITY",
	"CommitInputBox",
	"DiffChunk",
	"GitError",
	"GitRepository",
	"discover_repositories",
	"extract_file_path",
	"prioritize_chunks",
	"prioritize_diff",
	"run_git_command",
	"split_diff",
]
