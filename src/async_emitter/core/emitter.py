"""Emitter — named events whose listeners complete asynchronously."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from async_emitter.core.barrier import CompletionBarrier
from async_emitter.core.binder import call_with_named_arguments, parameter_names
from async_emitter.core.config import EmitterConfig
from async_emitter.core.exceptions import (
    InvalidCallbackError,
    MisappliedEmitterError,
    UnknownCallbackError,
)

logger = logging.getLogger(__name__)

# Type alias for listener callbacks.
Callback = Callable[..., Any]

# Bundle keys under which every listener receives its completion signal.
SIGNAL_KEYS = ("cb", "callback")


@dataclass(frozen=True, eq=False)
class Listener:
    """A registered callback and the parameter names it is bound with.

    Attributes:
        callback: The user-supplied callable.
        parameters: Positional parameter names, computed at registration.
        once: Remove this entry the first time it is invoked.
    """

    callback: Callback
    parameters: tuple[str, ...]
    once: bool = False


class Emitter:
    """Event emitter whose ``emit`` waits for every listener to signal.

    Use it directly or inherit from it.  Listeners are called with
    arguments bound by name from the emit bundle; the bundle always
    carries the per-listener completion signal as ``cb`` and ``callback``.

    Args:
        config: Strict/debug settings.  Falls back to ``default_config``.
    """

    default_config: EmitterConfig = EmitterConfig()

    def __init__(self, config: EmitterConfig | None = None) -> None:
        """Initialise an emitter with no listeners."""
        self._config = config if config is not None else type(self).default_config
        self._listeners: dict[str, list[Listener]] = {}
        self._lock = threading.RLock()

    @property
    def config(self) -> EmitterConfig:
        """Return the settings this emitter runs with."""
        self._state()
        return self._config

    def _state(self) -> dict[str, list[Listener]]:
        """Return the listener map, creating it if ``__init__`` was skipped.

        Returns:
            The event name to listener entries mapping.

        Raises:
            MisappliedEmitterError: If lazy creation is needed in strict mode.
        """
        try:
            return self._listeners
        except AttributeError:
            pass
        config = type(self).default_config
        if config.strict:
            msg = f"{type(self).__name__} used without calling Emitter.__init__"
            raise MisappliedEmitterError(msg) from None
        logger.warning("%s used without calling Emitter.__init__", type(self).__name__)
        self._config = config
        self._lock = threading.RLock()
        self._listeners = {}
        return self._listeners

    def on(self, event: str, callback: Callback) -> Emitter:
        """Register *callback* for *event*.

        Args:
            event: Name of the event.
            callback: Callable invoked each time the event fires.

        Returns:
            This emitter, for chaining.

        Raises:
            InvalidCallbackError: If *callback* is not callable.
        """
        return self._add(event, callback, once=False)

    def once(self, event: str, callback: Callback) -> Emitter:
        """Register *callback* for the next firing of *event* only.

        The entry removes itself before *callback* runs.  Deregistering
        *callback* with ``off`` does not match it.

        Args:
            event: Name of the event.
            callback: Callable invoked at most once.

        Returns:
            This emitter, for chaining.

        Raises:
            InvalidCallbackError: If *callback* is not callable.
        """
        return self._add(event, callback, once=True)

    def off(self, event: str, callback: Callback | None = None) -> Emitter:
        """Deregister *callback* from *event*, or every listener if omitted.

        Args:
            event: Name of the event.
            callback: The callable passed to ``on``.  All its registrations
                      for *event* are removed.

        Returns:
            This emitter, for chaining.

        Raises:
            UnknownCallbackError: If *callback* is not registered for *event*.
        """
        state = self._state()
        with self._lock:
            entries = state.get(event, [])
            if callback is None:
                state[event] = []
                logger.debug("Removed all %d listener(s) from '%s'", len(entries), event)
                return self
            kept = [e for e in entries if e.once or e.callback is not callback]
            if len(kept) == len(entries):
                msg = f"Callback {callback!r} is not registered for event '{event}'"
                raise UnknownCallbackError(msg)
            state[event] = kept
        logger.debug("Removed listener %r from '%s'", callback, event)
        return self

    register = on
    register_once = once
    deregister = off

    def listeners(self, event: str) -> list[Callback]:
        """Return the callbacks registered for *event*, in registration order."""
        state = self._state()
        with self._lock:
            return [entry.callback for entry in state.get(event, [])]

    def listener_count(self, event: str) -> int:
        """Return how many listeners are registered for *event*."""
        state = self._state()
        with self._lock:
            return len(state.get(event, []))

    def event_names(self) -> list[str]:
        """Return the events that currently have at least one listener."""
        state = self._state()
        with self._lock:
            return [event for event, entries in state.items() if entries]

    def emit(
        self,
        event: str,
        args: Mapping[str, Any] | None,
        on_complete: Callable[[], Any],
    ) -> None:
        """Fire *event* and call *on_complete* once every listener signalled.

        Each listener is called in registration order with positional
        arguments bound by name from *args*.  The completion signal is
        bound under ``cb`` and ``callback``; every listener must call it
        exactly once, after this method has returned.  With no listeners,
        *on_complete* runs before ``emit`` returns.

        Args:
            event: Name of the event.
            args: Named arguments for the listeners.  Not modified.
            on_complete: Called without arguments when all listeners are done.

        Raises:
            InvalidCallbackError: If *on_complete* is not callable.
            SynchronousCompletionError: In strict mode, when a listener
                signals before dispatch finished.
        """
        if not callable(on_complete):
            msg = f"emit('{event}') requires a callable completion callback, got {on_complete!r}"
            raise InvalidCallbackError(msg)
        state = self._state()
        with self._lock:
            snapshot = list(state.get(event, []))

        config = self._config
        barrier = CompletionBarrier(event, len(snapshot), on_complete, strict=config.strict)
        bundle = dict(args or {})
        signal = barrier.signal
        for key in SIGNAL_KEYS:
            bundle[key] = signal

        logger.debug("Emitting '%s' to %d listener(s)", event, len(snapshot))
        if config.debug:
            barrier.start_watchdog(config.debug_timeout)
        with barrier.dispatch():
            for entry in snapshot:
                if entry.once and not self._discard(event, entry):
                    barrier.release()
                    continue
                call_with_named_arguments(entry.callback, bundle, entry.parameters)

    fire = emit

    async def emit_async(self, event: str, args: Mapping[str, Any] | None = None) -> None:
        """Fire *event* and wait until every listener has signalled.

        Completion signals may be sent from any thread.

        Args:
            event: Name of the event.
            args: Named arguments for the listeners.
        """
        loop = asyncio.get_running_loop()
        done: asyncio.Future[None] = loop.create_future()

        def resolve() -> None:
            if not done.done():
                done.set_result(None)

        self.emit(event, args, lambda: loop.call_soon_threadsafe(resolve))
        await done

    def _add(self, event: str, callback: Callback, *, once: bool) -> Emitter:
        """Append a listener entry for *event*.

        Args:
            event: Name of the event.
            callback: The callable to register.
            once: Whether the entry removes itself on first invocation.

        Returns:
            This emitter, for chaining.

        Raises:
            InvalidCallbackError: If *callback* is not callable.
        """
        if not callable(callback):
            msg = f"Listener for event '{event}' must be callable, got {callback!r}"
            raise InvalidCallbackError(msg)
        entry = Listener(callback=callback, parameters=parameter_names(callback), once=once)
        state = self._state()
        with self._lock:
            state.setdefault(event, []).append(entry)
        logger.debug("Registered %slistener %r for '%s'", "one-shot " if once else "", callback, event)
        return self

    def _discard(self, event: str, entry: Listener) -> bool:
        """Remove a one-shot *entry* from *event* if it is still registered.

        Args:
            event: Name of the event.
            entry: The exact entry to remove.

        Returns:
            ``True`` if this call removed the entry, ``False`` if another
            emit consumed it first.
        """
        with self._lock:
            entries = self._listeners.get(event, [])
            kept = [e for e in entries if e is not entry]
            if len(kept) == len(entries):
                return False
            self._listeners[event] = kept
            return True
