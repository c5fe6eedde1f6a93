"""Prompt building for agent-side commit message generation."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from collections.abc import Sequence

logger = logging.getLogger(__name__)


# Characters models like to wrap the answer in
_WRAPPING_CHARACTERS = "\"'`"


def join_diff_chunks(diff_chunks: Sequence[str], max_length: int) -> str:
	"""
	Concatenate chunks in order until the length budget is spent.

	A chunk that does not fit is dropped along with every chunk after it, so
	the earliest chunks are the ones kept. The first chunk is always included,
	truncated if it alone exceeds the budget.

	Args:
	    diff_chunks: Diff chunks in priority order
	    max_length: Maximum number of characters

	Returns:
	    The concatenated diff

	"""
	if not diff_chunks:
		return ""

	first = diff_chunks[0]
	if len(first) > max_length:
		logger.debug("First diff chunk exceeds budget (%d > %d), truncating", len(first), max_length)
		return first[:max_length]

	parts = [first]
	used = len(first)
	for chunk in diff_chunks[1:]:
		if used + len(chunk) > max_length:
			logger.debug("Diff budget of %d characters reached, dropping remaining chunks", max_length)
			break
		parts.append(chunk)
		used += len(chunk)
	return "".join(parts)


def build_commit_message_prompt(template: str, diff_chunks: Sequence[str], max_diff_length: int) -> str:
	"""
	Fill the ``{diff}`` placeholder of ``template``.

	Plain replacement is used instead of ``str.format`` so templates may
	contain other braces.

	"""
	return template.replace("{diff}", join_diff_chunks(diff_chunks, max_diff_length))


def extract_commit_message(response: str, matcher: str | None) -> str:
	"""
	Pull the commit message out of a model response.

	Args:
	    response: Raw model output
	    matcher: Regex; its first group (or whole match) is the message

	Returns:
	    The cleaned message, possibly empty

	"""
	text = response.strip()
	if matcher:
		match = re.search(matcher, text, re.DOTALL)
		if match:
			text = match.group(1) if match.re.groups else match.group(0)
		else:
			logger.debug("Response did not match %r, using raw text", matcher)
	return text.strip().strip(_WRAPPING_CHARACTERS).strip()
