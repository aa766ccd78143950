"""CompletionBarrier — counts listener completion signals for one emit."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from async_emitter.core.exceptions import (
    DuplicateCompletionError,
    ExcessCompletionError,
    SynchronousCompletionError,
)

logger = logging.getLogger(__name__)


class CompletionBarrier:
    """Wait-group style counter that fires ``on_complete`` exactly once.

    One barrier is created per ``Emitter.emit`` call.  Each invoked
    listener receives ``signal`` and must call it exactly once when its
    work is done; ``on_complete`` runs when the last signal arrives.

    Signals may arrive from any thread.  A signal sent from the emitting
    thread while listeners are still being dispatched is a same-turn
    completion: it is logged, or raised as ``SynchronousCompletionError``
    when *strict* is set.

    Args:
        event: Name of the event being emitted, used in diagnostics.
        expected: Number of listeners that will be invoked.
        on_complete: Called without arguments once all signals arrived.
        strict: Raise on same-turn completion instead of warning.
    """

    def __init__(
        self,
        event: str,
        expected: int,
        on_complete: Callable[[], Any],
        *,
        strict: bool = False,
    ) -> None:
        """Initialise a barrier waiting for *expected* signals."""
        self.event = event
        self.expected = expected
        self._on_complete = on_complete
        self._strict = strict
        self._pending = expected
        self._completed = False
        self._dispatch_thread: int | None = None
        self._watchdog: threading.Timer | None = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> int:
        """Return the number of signals still outstanding."""
        with self._lock:
            return self._pending

    @property
    def completed(self) -> bool:
        """Return whether ``on_complete`` has been delivered."""
        with self._lock:
            return self._completed

    @contextmanager
    def dispatch(self) -> Iterator[None]:
        """Mark the listener dispatch loop as running for the calling thread.

        On exit, completes immediately if nothing is pending (the
        zero-listener case or all listeners signalled synchronously).
        """
        self._dispatch_thread = threading.get_ident()
        try:
            yield
        finally:
            self._dispatch_thread = None
        with self._lock:
            fire = self._pending == 0 and not self._completed and self._settle()
        if fire:
            self._deliver()

    def signal(self, *_args: Any, **_kwargs: Any) -> None:
        """Record one listener as done.

        Arguments are accepted and ignored so the signal can be handed to
        timers and loop schedulers directly.

        Raises:
            SynchronousCompletionError: In strict mode, when called from the
                emitting thread during dispatch.
            ExcessCompletionError: When more signals arrive than listeners.
            DuplicateCompletionError: When completion was already delivered.
        """
        if self._dispatch_thread == threading.get_ident():
            if self._strict:
                msg = f"Completion signal for '{self.event}' called synchronously during dispatch"
                raise SynchronousCompletionError(msg)
            logger.warning("Completion signal for '%s' is not asynchronous", self.event)
        with self._lock:
            self._pending -= 1
            fire = self._settle()
        if fire:
            self._deliver()

    def release(self) -> None:
        """Drop one expected signal for a listener that will not be invoked.

        Used when a one-shot listener in the dispatch snapshot was already
        consumed by another emit.  Never counts as a same-turn completion.

        Raises:
            ExcessCompletionError: If more signals arrived than listeners.
        """
        with self._lock:
            self._pending -= 1
            fire = self._settle()
        if fire:
            self._deliver()

    def check(self) -> None:
        """Re-run the completion check without consuming a signal — intended for testing only.

        Raises:
            ExcessCompletionError: If more signals arrived than listeners.
            DuplicateCompletionError: If nothing is pending and completion
                was already delivered.
        """
        with self._lock:
            fire = self._settle()
        if fire:
            self._deliver()

    def start_watchdog(self, timeout: float) -> None:
        """Report this emit as hung if it has not completed after *timeout* seconds.

        Args:
            timeout: Delay in seconds before the check runs.
        """
        timer = threading.Timer(timeout, self._report_hang, args=(timeout,))
        timer.daemon = True
        with self._lock:
            if self._completed:
                return
            self._watchdog = timer
        timer.start()

    def _settle(self) -> bool:
        """Apply the completion rules to the current pending count.

        The caller must hold ``_lock``.

        Returns:
            ``True`` when ``on_complete`` should now be delivered.

        Raises:
            ExcessCompletionError: If the count dropped below zero.
            DuplicateCompletionError: If the count is zero after delivery.
        """
        if self._pending < 0:
            msg = (
                f"More completion signals than listeners for '{self.event}' "
                f"({self.expected - self._pending} received, {self.expected} expected)"
            )
            raise ExcessCompletionError(msg)
        if self._pending > 0:
            return False
        if self._completed:
            msg = f"Completion callback for '{self.event}' has already been invoked"
            raise DuplicateCompletionError(msg)
        self._completed = True
        return True

    def _deliver(self) -> None:
        """Cancel the hang watchdog and invoke ``on_complete`` outside the lock."""
        with self._lock:
            watchdog, self._watchdog = self._watchdog, None
        if watchdog is not None:
            watchdog.cancel()
        self._on_complete()

    def _report_hang(self, timeout: float) -> None:
        """Log a warning if the emit is still pending when the watchdog fires.

        Args:
            timeout: The delay that elapsed, used in the message.
        """
        with self._lock:
            if self._completed:
                return
            pending = self._pending
        logger.warning(
            "Emit of '%s' has not completed after %.1fs (%d of %d signal(s) pending)",
            self.event,
            timeout,
            pending,
            self.expected,
        )
