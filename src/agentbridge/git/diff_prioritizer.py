"""
Order a multi-file diff by file modification time.

The agent reads the diff in the order it is given and may truncate the
tail, so chunks are arranged oldest-edit first with a deterministic
tie-break.

"""

from __future__ import annotations

import asyncio
import logging
import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from agentbridge.utils.cancellation import AbortError

if TYPE_CHECKING:
	import os

	from agentbridge.utils.cancellation import AbortSignal

logger = logging.getLogger(__name__)

# Priority of a chunk whose path cannot be parsed or stat'ed; sorts last
UNKNOWN_PRIORITY = math.inf

FILE_HEADER_PATTERN = re.compile(r"^diff ", re.MULTILINE)
GIT_HEADER_PATH_PATTERN = re.compile(r"^diff --git a/.* b/(.*)$", re.MULTILINE)


class FileStatLookup(Protocol):
	"""Anything that can stat a path relative to a repository root."""

	async def stat(self, path: str) -> os.stat_result:
		"""Return the stat result of ``path``."""
		...


@dataclass(frozen=True)
class DiffChunk:
	"""The diff text of exactly one file, paired with its priority key."""

	content: str
	index: int
	path: str | None = None
	priority: float = UNKNOWN_PRIORITY

	@property
	def is_resolved(self) -> bool:
		"""Whether a modification time was found for this chunk."""
		return self.priority != UNKNOWN_PRIORITY


def split_diff(diff: str) -> list[str]:
	"""
	Split a unified diff into per-file chunks.

	Every line starting with ``diff `` begins a new chunk. Text before the
	first header is kept on the first chunk, so joining the result gives back
	``diff`` unchanged.

	Args:
	    diff: Unified diff covering one or more files

	Returns:
	    Chunks in original order; empty if the diff has no file header

	"""
	starts = [match.start() for match in FILE_HEADER_PATTERN.finditer(diff)]
	if not starts:
		return []
	starts[0] = 0
	ends = [*starts[1:], len(diff)]
	return [diff[start:end] for start, end in zip(starts, ends, strict=True)]


def extract_file_path(chunk: str) -> str | None:
	"""
	Get the ``b/`` path from a chunk's ``diff --git`` header.

	Args:
	    chunk: Diff text of one file

	Returns:
	    The new-side path, or None if the header is missing or malformed

	"""
	match = GIT_HEADER_PATH_PATTERN.search(chunk)
	if match is None:
		return None
	path = match.group(1).strip()
	return path or None


async def _resolve_chunk(index: int, content: str, lookup: FileStatLookup) -> DiffChunk:
	path = extract_file_path(content)
	if path is None:
		logger.debug("Chunk %d has no parseable file header", index)
		return DiffChunk(content=content, index=index)
	try:
		stat_result = await lookup.stat(path)
	except AbortError:
		raise
	except Exception as e:  # noqa: BLE001
		# Any lookup failure only demotes this chunk
		logger.debug("Could not stat %s, using lowest priority: %s", path, e)
		return DiffChunk(content=content, index=index, path=path)
	return DiffChunk(content=content, index=index, path=path, priority=float(stat_result.st_mtime))


async def prioritize_chunks(
	diff: str,
	lookup: FileStatLookup,
	signal: AbortSignal | None = None,
) -> list[DiffChunk]:
	"""
	Split ``diff`` and sort its chunks by modification time, oldest first.

	Lookups run concurrently; a failed lookup only demotes its own chunk.
	``sorted`` is stable, so equal keys (including the sentinel) keep their
	split order.

	Args:
	    diff: Unified diff covering one or more files
	    lookup: Resolves repository-relative paths to stat results
	    signal: Optional abort signal the lookups are raced against

	Returns:
	    DiffChunk objects in priority order

	Raises:
	    AbortError: If ``signal`` fires while lookups are pending

	"""
	raw_chunks = split_diff(diff)
	if not raw_chunks:
		return []

	gathered = asyncio.gather(*(_resolve_chunk(i, chunk, lookup) for i, chunk in enumerate(raw_chunks)))
	chunks = await signal.race(gathered) if signal is not None else await gathered

	ordered = sorted(chunks, key=lambda chunk: chunk.priority)
	logger.debug(
		"Prioritized %d diff chunks (%d without timestamp)",
		len(ordered),
		sum(1 for chunk in ordered if not chunk.is_resolved),
	)
	return ordered


async def prioritize_diff(
	diff: str,
	lookup: FileStatLookup,
	signal: AbortSignal | None = None,
) -> list[str]:
	"""Return the chunk texts of ``diff`` in priority order."""
	return [chunk.content for chunk in await prioritize_chunks(diff, lookup, signal)]
