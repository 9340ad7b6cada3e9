"""Cooperative cancellation shared by every operation of one user turn."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from .exceptions import OperationCancelledError
from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CancellationToken:
    """A one-shot cancellation signal.

    Callbacks registered with :meth:`on_cancel` run once when the token fires.
    A child token observes its parent and re-broadcasts the parent's
    cancellation to its own callbacks, so one ``cancel()`` on the turn token
    reaches the stream, every confirmation wait and every executor call.
    """

    def __init__(self, parent: Optional["CancellationToken"] = None) -> None:
        self._cancelled = False
        self._reason: Optional[str] = None
        self._callbacks: Dict[int, Callable[[], None]] = {}
        self._next_handle = 0
        self._detach_parent: Optional[Callable[[], None]] = None
        if parent is not None:
            self._detach_parent = parent.on_cancel(lambda: self.cancel(parent.reason))

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: Optional[str] = None) -> None:
        """Fire the token. Subsequent calls are no-ops."""
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason or "Operation was cancelled"
        callbacks = list(self._callbacks.values())
        self._callbacks.clear()
        logger.debug("Cancellation fired (%s), notifying %d listener(s).", self._reason, len(callbacks))
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.error("Cancellation listener failed.", exc_info=True)

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback for cancellation.

        Args:
            callback: Called once when the token fires. Called immediately if it already has.

        Returns:
            A function that deregisters the callback.
        """
        if self._cancelled:
            callback()
            return lambda: None

        handle = self._next_handle
        self._next_handle += 1
        self._callbacks[handle] = callback

        def remove() -> None:
            self._callbacks.pop(handle, None)

        return remove

    @property
    def listener_count(self) -> int:
        return len(self._callbacks)

    def child(self) -> "CancellationToken":
        """Create a token that is cancelled whenever this one is."""
        return CancellationToken(parent=self)

    def detach(self) -> None:
        """Stop observing the parent token."""
        if self._detach_parent is not None:
            self._detach_parent()
            self._detach_parent = None

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError(self._reason)

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        The wrapped task is cancelled as soon as the token fires and the
        cancellation surfaces as :class:`OperationCancelledError`.

        Raises:
            OperationCancelledError: If the token fired before the awaitable settled.
        """
        if self._cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelledError(self._reason)

        task = asyncio.ensure_future(awaitable)
        remove = self.on_cancel(task.cancel)
        try:
            return await task
        except asyncio.CancelledError:
            if self._cancelled:
                raise OperationCancelledError(self._reason) from None
            raise
        finally:
            remove()
