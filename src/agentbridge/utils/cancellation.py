"""
Cancellation primitives for AgentBridge.

The host side hands out ``CancellationToken`` objects (one per progress
scope). Internally every suspending call takes an ``AbortSignal`` instead;
``CancellationBridge`` connects the two.

"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
	from collections.abc import Awaitable, Callable
	from types import TracebackType

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AbortError(Exception):
	"""Raised at an await point whose abort signal has fired."""

	def __init__(self, message: str = "The operation was aborted.") -> None:
		"""Initialize the error with a default message."""
		super().__init__(message)


class Disposable:
	"""Handle returned by listener registrations."""

	def __init__(self, dispose: Callable[[], None]) -> None:
		"""Wrap the callable that removes the registration."""
		self._dispose: Callable[[], None] | None = dispose

	def dispose(self) -> None:
		"""Remove the registration. Calling twice is a no-op."""
		if self._dispose is not None:
			self._dispose()
			self._dispose = None


class AbortSignal:
	"""
	One-shot cancellation notification consumed by suspending operations.

	Once aborted, the signal never resets. Listeners registered after the
	abort are invoked immediately.

	"""

	def __init__(self) -> None:
		"""Initialize an un-fired signal."""
		self._aborted = False
		self._listeners: list[Callable[[], None]] = []
		self._waiters: list[asyncio.Future[None]] = []

	@property
	def aborted(self) -> bool:
		"""Whether the signal has fired."""
		return self._aborted

	def add_listener(self, callback: Callable[[], None]) -> Disposable:
		"""
		Register a callback invoked once when the signal fires.

		Args:
		    callback: Zero-argument callable

		Returns:
		    Disposable that removes the callback

		"""
		if self._aborted:
			callback()
			return Disposable(lambda: None)
		self._listeners.append(callback)

		def _remove() -> None:
			if callback in self._listeners:
				self._listeners.remove(callback)

		return Disposable(_remove)

	def raise_if_aborted(self) -> None:
		"""Raise AbortError if the signal has fired."""
		if self._aborted:
			raise AbortError

	def _fire(self) -> None:
		if self._aborted:
			return
		self._aborted = True
		listeners, self._listeners = self._listeners, []
		for listener in listeners:
			try:
				listener()
			except Exception:
				logger.exception("Abort listener raised")
		waiters, self._waiters = self._waiters, []
		for waiter in waiters:
			if not waiter.done():
				waiter.set_result(None)

	async def wait(self) -> None:
		"""Suspend until the signal fires."""
		if self._aborted:
			return
		waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
		self._waiters.append(waiter)
		try:
			await waiter
		finally:
			if waiter in self._waiters:
				self._waiters.remove(waiter)

	async def race(self, awaitable: Awaitable[T]) -> T:
		"""
		Await ``awaitable`` unless the signal fires first.

		The awaitable is wrapped in a task. If the signal fires before it
		completes, the task is cancelled and AbortError is raised. Work
		already running in a worker thread is not interrupted; its result is
		simply discarded.

		Args:
		    awaitable: Coroutine or future to await

		Returns:
		    The awaitable's result

		Raises:
		    AbortError: If the signal fires first (or had already fired)

		"""
		if self._aborted:
			if asyncio.iscoroutine(awaitable):
				awaitable.close()
			elif asyncio.isfuture(awaitable):
				awaitable.cancel()
			raise AbortError

		task: asyncio.Future[T] = asyncio.ensure_future(awaitable)
		abort_task = asyncio.ensure_future(self.wait())
		try:
			await asyncio.wait({task, abort_task}, return_when=asyncio.FIRST_COMPLETED)
		except asyncio.CancelledError:
			task.cancel()
			raise
		finally:
			abort_task.cancel()

		if task.done():
			return task.result()

		task.cancel()
		# Let the cancelled task unwind before reporting the abort
		await asyncio.gather(task, return_exceptions=True)
		raise AbortError


class AbortController:
	"""Owner of an AbortSignal."""

	def __init__(self) -> None:
		"""Create the controller and its signal."""
		self.signal = AbortSignal()

	def abort(self) -> None:
		"""Fire the signal. Idempotent."""
		self.signal._fire()  # noqa: SLF001


class CancellationToken:
	"""Host-side cancellation token, as handed to a progress task."""

	def __init__(self) -> None:
		"""Initialize a token that has not been cancelled."""
		self._requested = False
		self._callbacks: list[Callable[[], Any]] = []

	@property
	def is_cancellation_requested(self) -> bool:
		"""Whether the host has requested cancellation."""
		return self._requested

	def on_cancellation_requested(self, callback: Callable[[], Any]) -> Disposable:
		"""
		Register a callback invoked whenever the host requests cancellation.

		Args:
		    callback: Zero-argument callable

		Returns:
		    Disposable that removes the callback

		"""
		self._callbacks.append(callback)

		def _remove() -> None:
			if callback in self._callbacks:
				self._callbacks.remove(callback)

		return Disposable(_remove)


class CancellationTokenSource:
	"""Creates and fires a CancellationToken."""

	def __init__(self) -> None:
		"""Create the source and its token."""
		self.token = CancellationToken()

	def cancel(self) -> None:
		"""
		Request cancellation.

		Hosts may call this more than once (e.g. repeated Ctrl-C); every call
		notifies the registered callbacks.

		"""
		self.token._requested = True  # noqa: SLF001
		for callback in list(self.token._callbacks):  # noqa: SLF001
			callback()


class CancellationBridge:
	"""
	Adapt a host CancellationToken into an internal AbortSignal.

	Use as a context manager scoped to one operation::

	    with CancellationBridge(token) as signal:
	        await agent.generate_commit_message(chunks, signal)

	The token's callback aborts the signal exactly once. Repeated firings,
	and firings after the bridge is closed, are no-ops.

	"""

	def __init__(self, token: CancellationToken | None) -> None:
		"""
		Initialize the bridge.

		Args:
		    token: Host token; ``None`` yields a signal that never fires

		"""
		self._controller = AbortController()
		self._closed = False
		self._registration: Disposable | None = None
		if token is not None:
			self._registration = token.on_cancellation_requested(self._on_cancellation_requested)
			if token.is_cancellation_requested:
				self._on_cancellation_requested()

	@property
	def signal(self) -> AbortSignal:
		"""The bridged abort signal."""
		return self._controller.signal

	@property
	def closed(self) -> bool:
		"""Whether the owning operation has completed."""
		return self._closed

	def _on_cancellation_requested(self) -> None:
		if self._closed or self.signal.aborted:
			return
		logger.debug("Host cancellation requested; aborting in-flight operation")
		self._controller.abort()

	def close(self) -> None:
		"""Detach from the host token."""
		self._closed = True
		if self._registration is not None:
			self._registration.dispose()
			self._registration = None

	def __enter__(self) -> AbortSignal:
		"""Enter the operation scope."""
		return self.signal

	def __exit__(
		self,
		exc_type: type[BaseException] | None,
		exc_val: BaseException | None,
		exc_tb: TracebackType | None,
	) -> None:
		"""Leave the operation scope."""
		self.close()
