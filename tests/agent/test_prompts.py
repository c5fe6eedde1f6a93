"""Tests for prompt building and response parsing."""

import pytest

from agentbridge.agent.prompts import build_commit_message_prompt, extract_commit_message, join_diff_chunks
from agentbridge.config.defaults import DEFAULT_RESPONSE_MATCHER


@pytest.mark.unit
@pytest.mark.agent
class TestJoinDiffChunks:
	"""Packing chunks into the length budget."""

	def test_keeps_leading_chunks_that_fit(self) -> None:
		"""Chunks are kept in order until the next one would overflow."""
		chunks = ["a" * 10, "b" * 10, "c" * 10]

		assert join_diff_chunks(chunks, 25) == "a" * 10 + "b" * 10

	def test_stops_at_first_overflowing_chunk(self) -> None:
		"""A small chunk after an overflowing one is dropped too."""
		chunks = ["a" * 10, "b" * 50, "c"]

		assert join_diff_chunks(chunks, 20) == "a" * 10

	def test_truncates_oversized_first_chunk(self) -> None:
		"""The first chunk is always represented."""
		assert join_diff_chunks(["x" * 100, "y"], 30) == "x" * 30

	def test_empty(self) -> None:
		"""No chunks gives an empty string."""
		assert join_diff_chunks([], 10) == ""


@pytest.mark.unit
@pytest.mark.agent
class TestPrompt:
	"""Template filling and response extraction."""

	def test_template_placeholder_is_replaced(self) -> None:
		"""Only {diff} is substituted; other braces survive."""
		prompt = build_commit_message_prompt("Diff:\n{diff}\nFormat: {type}", ["diff --git a/x b/x\n"], 100)

		assert prompt == "Diff:\ndiff --git a/x b/x\n\nFormat: {type}"

	@pytest.mark.parametrize(
		("response", "expected"),
		[
			("feat(auth): add browser login", "feat(auth): add browser login"),
			("Sure! Here it is:\n\n`fix: handle empty diff`\n", "fix: handle empty diff"),
			('"docs: update readme"', "docs: update readme"),
		],
	)
	def test_extracts_conventional_commit(self, response: str, expected: str) -> None:
		"""The default matcher pulls the conventional commit line out."""
		assert extract_commit_message(response, DEFAULT_RESPONSE_MATCHER) == expected

	def test_unmatched_response_is_used_verbatim(self) -> None:
		"""Without a match the stripped response is returned."""
		assert extract_commit_message("  Update things  ", DEFAULT_RESPONSE_MATCHER) == "Update things"

	def test_no_matcher(self) -> None:
		"""A missing matcher only strips wrapping characters."""
		assert extract_commit_message("'chore: bump'", None) == "chore: bump"
